"""Menu data models.

A restaurant has at most one Menu, which embeds an ordered list of MenuItems.
Each item carries its own id so it can be updated or removed without relying
on its position.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Prices are stored as DynamoDB numbers with at most two decimal places
PRICE_MAX_DIGITS = 12


class MenuItem(BaseModel):
    """Menu item embedded in a menu."""

    id: str = Field(..., description="Unique identifier for the menu item")
    name: str = Field(..., min_length=1, description="Item name")
    description: str | None = Field(None, description="Item description")
    price: Decimal = Field(..., description="Item price", ge=0)
    image_url: str | None = Field(None, description="URL to item image")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to a DynamoDB map attribute.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "item_id": self.id,
            "name": self.name,
            "price": self.price,
        }

        if self.description is not None:
            item["description"] = self.description

        if self.image_url is not None:
            item["image_url"] = self.image_url

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from a DynamoDB map attribute.

        Args:
            item: DynamoDB map dictionary

        Returns:
            MenuItem: Parsed model instance
        """
        return cls(
            id=item["item_id"],
            name=item["name"],
            description=item.get("description"),
            price=Decimal(str(item["price"])),
            image_url=item.get("image_url"),
        )


class Menu(BaseModel):
    """Menu aggregate for exactly one restaurant.

    Stored in DynamoDB with restaurant_id as partition key, which makes the
    one-menu-per-restaurant rule a storage-level constraint. ``version`` is
    incremented on every write and checked on save.
    """

    id: str = Field(..., description="Unique identifier for the menu")
    restaurant_id: str = Field(..., description="Restaurant this menu belongs to")
    items: list[MenuItem] = Field(default_factory=list, description="Items in display order")
    version: int = Field(default=0, description="Optimistic concurrency version", ge=0)

    def find_item(self, item_id: str) -> MenuItem | None:
        """Locate an item by id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "restaurant_id": self.restaurant_id,
            "menu_id": self.id,
            "items": [item.to_dynamodb_item() for item in self.items],
            "version": self.version,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Menu":
        """Create Menu from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Menu: Parsed model instance
        """
        return cls(
            id=item["menu_id"],
            restaurant_id=item["restaurant_id"],
            items=[MenuItem.from_dynamodb_item(entry) for entry in item.get("items", [])],
            version=int(item.get("version", 0)),
        )


class MenuItemCreate(BaseModel):
    """Payload for appending an item to a menu."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1)
    description: str | None = None
    price: Decimal = Field(..., ge=0, allow_inf_nan=False, max_digits=PRICE_MAX_DIGITS, decimal_places=2)


class MenuItemUpdate(BaseModel):
    """Partial update for a menu item.

    A field that is absent from the payload keeps its previous value. Name
    and price can be changed but not cleared; description can be cleared
    with null.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    price: Decimal | None = Field(
        None, ge=0, allow_inf_nan=False, max_digits=PRICE_MAX_DIGITS, decimal_places=2
    )

    @field_validator("name", "price")
    @classmethod
    def reject_clearing(cls, v: Any) -> Any:
        """Reject explicit nulls for required fields."""
        if v is None:
            raise ValueError("field cannot be cleared")
        return v

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller supplied."""
        return self.model_dump(exclude_unset=True)


class ImageUpload(BaseModel):
    """Binary image plus the metadata needed to store it."""

    content: bytes = Field(..., description="Raw image bytes")
    filename: str = Field(..., description="Original file name supplied by the client")
    content_type: str = Field(..., description="MIME type declared by the client")

    @property
    def size(self) -> int:
        """Size of the payload in bytes."""
        return len(self.content)
