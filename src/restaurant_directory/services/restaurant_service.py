"""Restaurant aggregate operations."""

import logging
import uuid
from datetime import UTC, datetime

from restaurant_directory.auth.identity import ActingIdentity
from restaurant_directory.auth.ownership import ensure_owner
from restaurant_directory.errors import NotFoundError, PersistenceError
from restaurant_directory.models.restaurant_models import (
    Restaurant,
    RestaurantCreate,
    RestaurantDetail,
    RestaurantUpdate,
)
from restaurant_directory.repositories.restaurant_repository import RestaurantRepository
from restaurant_directory.services.menu_service import MenuService

logger = logging.getLogger(__name__)


def new_restaurant_id() -> str:
    """Generate a restaurant identifier."""
    return f"rest_{uuid.uuid4().hex}"


class RestaurantService:
    """Service owning restaurant records.

    The owner recorded at creation never changes and is the only identity
    allowed to update or delete the restaurant.
    """

    def __init__(self, restaurant_repository: RestaurantRepository, menu_service: MenuService) -> None:
        """Initialize the RestaurantService.

        Args:
            restaurant_repository: Repository for restaurant records
            menu_service: Service used to join menus into read views
        """
        self.restaurant_repository = restaurant_repository
        self.menu_service = menu_service

    async def create_restaurant(self, data: RestaurantCreate, owner_id: str) -> Restaurant:
        """Register a restaurant owned by owner_id.

        Raises:
            DuplicateEmailError: If the email is already in use
            PersistenceError: If the write failed
        """
        now = datetime.now(UTC)
        restaurant = Restaurant(
            id=new_restaurant_id(),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

        if not self.restaurant_repository.create_restaurant(restaurant):
            raise PersistenceError("Failed to create restaurant")

        logger.info(f"Created restaurant {restaurant.id} for owner {owner_id}")
        return restaurant

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        """Get a restaurant by id.

        Raises:
            NotFoundError: If no such restaurant exists
        """
        restaurant = self.restaurant_repository.get_restaurant(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        return restaurant

    async def find_restaurant(self, restaurant_id: str) -> Restaurant | None:
        """Get a restaurant by id, or None if it does not exist."""
        return self.restaurant_repository.get_restaurant(restaurant_id)

    async def list_restaurants(self) -> list[Restaurant]:
        """List every restaurant."""
        return self.restaurant_repository.list_restaurants()

    async def list_by_owner(self, owner_id: str) -> list[RestaurantDetail]:
        """List an owner's restaurants, each with its menu items embedded."""
        restaurants = self.restaurant_repository.list_restaurants_for_owner(owner_id)
        return [
            RestaurantDetail.compose(restaurant, await self.menu_service.find_by_restaurant(restaurant.id))
            for restaurant in restaurants
        ]

    async def get_restaurant_detail(self, restaurant_id: str) -> RestaurantDetail:
        """Get a restaurant with its menu items embedded.

        Raises:
            NotFoundError: If no such restaurant exists
        """
        restaurant = await self.get_restaurant(restaurant_id)
        menu = await self.menu_service.find_by_restaurant(restaurant_id)
        return RestaurantDetail.compose(restaurant, menu)

    async def update_restaurant(
        self,
        restaurant_id: str,
        update: RestaurantUpdate,
        acting: ActingIdentity | None,
    ) -> Restaurant:
        """Apply a partial update as the restaurant's owner.

        Raises:
            NotFoundError: If no such restaurant exists
            UnauthorizedError: If the caller is not the owner
            DuplicateEmailError: If the new email is already in use
            PersistenceError: If the write failed
        """
        restaurant = await self.get_restaurant(restaurant_id)
        ensure_owner(restaurant, acting, "update this restaurant")
        return await self.apply_update(restaurant, update)

    async def apply_update(self, restaurant: Restaurant, update: RestaurantUpdate) -> Restaurant:
        """Apply a partial update to a restaurant whose ownership was already checked.

        Raises:
            DuplicateEmailError: If the new email is already in use
            NotFoundError: If the restaurant was deleted concurrently
            PersistenceError: If the write failed
        """
        changes = update.changes()
        if not changes:
            return restaurant

        updated = restaurant.model_copy(update={**changes, "updated_at": datetime.now(UTC)})
        if not self.restaurant_repository.save_restaurant(updated, previous_email=restaurant.email):
            raise PersistenceError("Failed to update restaurant")

        logger.info(f"Updated restaurant {restaurant.id}: {', '.join(sorted(changes))}")
        return updated

    async def delete_restaurant(self, restaurant_id: str, acting: ActingIdentity | None) -> None:
        """Delete a restaurant as its owner. The menu is not deleted.

        Raises:
            NotFoundError: If no such restaurant exists
            UnauthorizedError: If the caller is not the owner
            PersistenceError: If the delete failed
        """
        restaurant = await self.get_restaurant(restaurant_id)
        ensure_owner(restaurant, acting, "delete this restaurant")

        if not self.restaurant_repository.delete_restaurant(restaurant):
            raise PersistenceError("Failed to delete restaurant")

        logger.info(f"Deleted restaurant {restaurant_id}")
