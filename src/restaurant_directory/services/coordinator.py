"""Coordinator composing restaurants, menus, ownership checks and image uploads.

Every mutating operation follows the same sequence: validate input, resolve
the restaurant, check ownership, store any image, then write the aggregate.
The image URL is always obtained before the menu write is issued, so a
failed upload leaves the menu exactly as it was.
"""

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from restaurant_directory.auth.identity import ActingIdentity, GatewayIdentityResolver
from restaurant_directory.auth.ownership import ensure_owner
from restaurant_directory.errors import NotFoundError, UnauthorizedError, ValidationError
from restaurant_directory.models.menu_models import (
    ImageUpload,
    Menu,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
)
from restaurant_directory.models.restaurant_models import (
    Restaurant,
    RestaurantCreate,
    RestaurantDetail,
    RestaurantUpdate,
)
from restaurant_directory.observability import traced
from restaurant_directory.observability.metrics import record_menu_item_mutation
from restaurant_directory.services.image_service import ImageAttachmentService
from restaurant_directory.services.menu_service import MenuService
from restaurant_directory.services.restaurant_service import RestaurantService

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """Validate a raw payload, converting pydantic errors to ValidationError.

    Args:
        model: Write model to validate against
        data: Raw payload

    Returns:
        The validated model

    Raises:
        ValidationError: Listing every invalid or missing field
    """
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in e.errors()
        )
        raise ValidationError(f"Invalid {model.__name__}: {problems}") from e


class RestaurantMenuCoordinator:
    """Entry point for every public restaurant and menu operation."""

    def __init__(
        self,
        restaurant_service: RestaurantService,
        menu_service: MenuService,
        image_service: ImageAttachmentService,
        identity_resolver: GatewayIdentityResolver,
    ) -> None:
        """Initialize the coordinator.

        Args:
            restaurant_service: Restaurant aggregate store
            menu_service: Menu aggregate store
            image_service: Image attachment service
            identity_resolver: Decides which identities may own restaurants
        """
        self.restaurant_service = restaurant_service
        self.menu_service = menu_service
        self.image_service = image_service
        self.identity_resolver = identity_resolver

    # Restaurants

    @traced("restaurant.create")
    async def create_restaurant(
        self, data: Mapping[str, Any], acting: ActingIdentity | None
    ) -> Restaurant:
        """Register a restaurant owned by the caller."""
        if acting is None:
            raise UnauthorizedError("Not authorized, no identity supplied")
        if not self.identity_resolver.can_own_restaurants(acting):
            raise UnauthorizedError("Not authorized as a restaurant owner")

        payload = parse_payload(RestaurantCreate, data)
        return await self.restaurant_service.create_restaurant(payload, owner_id=acting.user_id)

    @traced("restaurant.list")
    async def list_restaurants(self) -> list[Restaurant]:
        """List every restaurant."""
        return await self.restaurant_service.list_restaurants()

    @traced("restaurant.detail")
    async def get_restaurant_detail(self, restaurant_id: str) -> RestaurantDetail:
        """Get a restaurant with its menu items."""
        return await self.restaurant_service.get_restaurant_detail(restaurant_id)

    @traced("restaurant.update")
    async def update_restaurant(
        self, restaurant_id: str, data: Mapping[str, Any], acting: ActingIdentity | None
    ) -> Restaurant:
        """Update the fields present in data.

        Ownership is checked before the payload is validated.
        """
        restaurant = await self.restaurant_service.get_restaurant(restaurant_id)
        ensure_owner(restaurant, acting, "update this restaurant")

        update = parse_payload(RestaurantUpdate, data)
        return await self.restaurant_service.apply_update(restaurant, update)

    @traced("restaurant.delete")
    async def delete_restaurant(self, restaurant_id: str, acting: ActingIdentity | None) -> None:
        """Delete a restaurant, leaving its menu behind."""
        await self.restaurant_service.delete_restaurant(restaurant_id, acting)

    @traced("restaurant.list_mine")
    async def list_my_restaurants(self, acting: ActingIdentity | None) -> list[RestaurantDetail]:
        """List the caller's restaurants with their menus."""
        if acting is None:
            raise UnauthorizedError("Not authorized, no identity supplied")
        return await self.restaurant_service.list_by_owner(acting.user_id)

    # Menu items

    @traced("menu.add_item")
    async def add_menu_item(
        self,
        restaurant_id: str,
        data: Mapping[str, Any],
        acting: ActingIdentity | None,
        image: ImageUpload | None = None,
    ) -> Menu:
        """Append an item to the restaurant's menu, creating the menu if needed.

        Raises:
            ValidationError: If name or price is missing or invalid, or the image is rejected
            UnauthorizedError: If the caller does not own the restaurant
            UploadFailedError: If the image could not be stored
        """
        item = parse_payload(MenuItemCreate, data)
        await self._resolve_owned(restaurant_id, acting, "add menu items to this restaurant")

        image_url = await self.image_service.attach(image) if image is not None else None

        menu = await self.menu_service.append_item(restaurant_id, item, image_url=image_url)
        record_menu_item_mutation("add")
        logger.info(f"Added item {menu.items[-1].id} to menu of restaurant {restaurant_id}")
        return menu

    @traced("menu.update_item")
    async def update_menu_item(
        self,
        restaurant_id: str,
        item_id: str,
        data: Mapping[str, Any],
        acting: ActingIdentity | None,
        image: ImageUpload | None = None,
    ) -> Menu:
        """Update the supplied fields of one menu item.

        Raises:
            ValidationError: If a supplied field is invalid or the image is rejected
            UnauthorizedError: If the caller does not own the restaurant
            NotFoundError: If the menu or the item does not exist
            UploadFailedError: If the image could not be stored
        """
        update = parse_payload(MenuItemUpdate, data)
        await self._resolve_owned(restaurant_id, acting, "update menu items for this restaurant")

        menu = await self.menu_service.find_by_restaurant(restaurant_id)
        if menu is None:
            raise NotFoundError("Menu not found")
        if menu.find_item(item_id) is None:
            raise NotFoundError("Menu item not found")

        changes = update.changes()
        if image is not None:
            changes["image_url"] = await self.image_service.attach(image)

        if not changes:
            return menu

        menu = await self.menu_service.update_item(restaurant_id, item_id, changes)
        record_menu_item_mutation("update")
        logger.info(f"Updated item {item_id} on menu of restaurant {restaurant_id}")
        return menu

    @traced("menu.remove_item")
    async def remove_menu_item(
        self, restaurant_id: str, item_id: str, acting: ActingIdentity | None
    ) -> None:
        """Remove an item from the restaurant's menu.

        Raises:
            UnauthorizedError: If the caller does not own the restaurant
            NotFoundError: If the restaurant has no menu
        """
        await self._resolve_owned(restaurant_id, acting, "delete menu items from this restaurant")

        menu = await self.menu_service.remove_item(restaurant_id, item_id)
        if menu is None:
            raise NotFoundError("Menu not found")

        record_menu_item_mutation("remove")
        logger.info(f"Removed item {item_id} from menu of restaurant {restaurant_id}")

    @traced("menu.get")
    async def get_menu_by_restaurant(self, restaurant_id: str) -> list[MenuItem]:
        """Get a restaurant's menu items; empty when it has no menu."""
        menu = await self.menu_service.find_by_restaurant(restaurant_id)
        return list(menu.items) if menu is not None else []

    async def _resolve_owned(
        self, restaurant_id: str, acting: ActingIdentity | None, action: str
    ) -> Restaurant:
        restaurant = await self.restaurant_service.find_restaurant(restaurant_id)
        return ensure_owner(restaurant, acting, action)
