"""Menu aggregate operations."""

import logging
import uuid
from typing import Any

from restaurant_directory.errors import ItemNotFoundError, PersistenceError
from restaurant_directory.models.menu_models import Menu, MenuItem, MenuItemCreate
from restaurant_directory.repositories.menu_repository import MenuRepository

logger = logging.getLogger(__name__)


def new_menu_id() -> str:
    """Generate a menu identifier."""
    return f"menu_{uuid.uuid4().hex}"


def new_item_id() -> str:
    """Generate a menu item identifier."""
    return f"item_{uuid.uuid4().hex}"


class MenuService:
    """Service owning the menu of each restaurant.

    Items are kept in insertion order and addressed by id, never by position.
    Every write goes through a version check, so two writers racing on the
    same menu cannot silently overwrite each other. This layer does no
    authorization; callers check ownership first.
    """

    def __init__(self, menu_repository: MenuRepository) -> None:
        """Initialize the MenuService.

        Args:
            menu_repository: Repository for menu documents
        """
        self.menu_repository = menu_repository

    async def find_by_restaurant(self, restaurant_id: str) -> Menu | None:
        """Get a restaurant's menu.

        Args:
            restaurant_id: The restaurant ID

        Returns:
            Menu if the restaurant has one, None if it has none yet
        """
        return self.menu_repository.get_menu(restaurant_id)

    async def get_or_create(self, restaurant_id: str) -> Menu:
        """Get a restaurant's menu, creating an empty one if it has none.

        Args:
            restaurant_id: The restaurant ID

        Returns:
            The existing or newly created menu

        Raises:
            PersistenceError: If the menu could not be read or created
        """
        menu = self.menu_repository.get_menu(restaurant_id)
        if menu is not None:
            return menu

        menu = self.menu_repository.insert_if_absent(
            Menu(id=new_menu_id(), restaurant_id=restaurant_id)
        )
        if menu is None:
            raise PersistenceError(f"Failed to create menu for restaurant {restaurant_id}")

        logger.info(f"Menu {menu.id} ready for restaurant {restaurant_id}")
        return menu

    async def append_item(
        self,
        restaurant_id: str,
        item: MenuItemCreate,
        image_url: str | None = None,
    ) -> Menu:
        """Append an item to the end of a restaurant's menu.

        Args:
            restaurant_id: The restaurant ID
            item: Validated item fields
            image_url: URL of an already stored image, if any

        Returns:
            The updated menu

        Raises:
            ConflictError: If the menu changed concurrently
            PersistenceError: If the write failed
        """
        menu = await self.get_or_create(restaurant_id)
        new_item = MenuItem(
            id=new_item_id(),
            name=item.name,
            description=item.description,
            price=item.price,
            image_url=image_url,
        )
        return self._save(menu, [*menu.items, new_item])

    async def update_item(self, restaurant_id: str, item_id: str, changes: dict[str, Any]) -> Menu:
        """Merge changes into one item, keeping its id and position.

        Args:
            restaurant_id: The restaurant ID
            item_id: The item to update
            changes: Validated fields to overwrite; absent fields are kept

        Returns:
            The updated menu

        Raises:
            ItemNotFoundError: If the menu or the item does not exist
            ConflictError: If the menu changed concurrently
            PersistenceError: If the write failed
        """
        menu = self.menu_repository.get_menu(restaurant_id)
        if menu is None or menu.find_item(item_id) is None:
            raise ItemNotFoundError("Menu item not found")

        items = [
            item.model_copy(update=changes) if item.id == item_id else item for item in menu.items
        ]
        return self._save(menu, items)

    async def remove_item(self, restaurant_id: str, item_id: str) -> Menu | None:
        """Remove an item from a restaurant's menu.

        Removing an id that is not on the menu leaves the menu untouched.

        Args:
            restaurant_id: The restaurant ID
            item_id: The item to remove

        Returns:
            The menu after removal, or None if the restaurant has no menu

        Raises:
            ConflictError: If the menu changed concurrently
            PersistenceError: If the write failed
        """
        menu = self.menu_repository.get_menu(restaurant_id)
        if menu is None:
            return None

        remaining = [item for item in menu.items if item.id != item_id]
        if len(remaining) == len(menu.items):
            return menu

        return self._save(menu, remaining)

    def _save(self, menu: Menu, items: list[MenuItem]) -> Menu:
        """Persist a new item list with a version check against the read copy."""
        updated = menu.model_copy(update={"items": items, "version": menu.version + 1})
        if not self.menu_repository.save_menu(updated, expected_version=menu.version):
            raise PersistenceError(f"Failed to save menu for restaurant {menu.restaurant_id}")
        return updated
