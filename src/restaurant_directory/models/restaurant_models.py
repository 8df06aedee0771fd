"""Restaurant data models.

These models represent a restaurant record, the payloads used to create and
update one, and the read-time view that embeds the restaurant's menu items.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from restaurant_directory.models.menu_models import Menu, MenuItem


def normalize_email(value: str) -> str:
    """Normalize an email address for storage and uniqueness checks.

    Args:
        value: Raw email address

    Returns:
        str: Trimmed, lower-cased address

    Raises:
        ValueError: If the value does not look like an email address
    """
    email = value.strip().lower()
    local, _, domain = email.partition("@")
    if not local or not domain or " " in email:
        raise ValueError("email must be a valid email address")
    return email


class Restaurant(BaseModel):
    """Canonical restaurant record.

    Stored in DynamoDB with restaurant_id as partition key and a global
    secondary index on owner_id.
    """

    id: str = Field(..., description="Unique identifier for the restaurant")
    name: str = Field(..., min_length=1, description="Restaurant name")
    address: str | None = Field(None, description="Street address")
    phone_number: str | None = Field(None, description="Contact phone number")
    email: str = Field(..., description="Contact email, unique across restaurants")
    description: str | None = Field(None, description="Free-text description")
    owner_id: str = Field(..., description="Identity that created and owns the restaurant")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last modification timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "restaurant_id": self.id,
            "name": self.name,
            "email": self.email,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if self.address is not None:
            item["address"] = self.address

        if self.phone_number is not None:
            item["phone_number"] = self.phone_number

        if self.description is not None:
            item["description"] = self.description

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Restaurant":
        """Create Restaurant from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Restaurant: Parsed model instance
        """
        return cls(
            id=item["restaurant_id"],
            name=item["name"],
            address=item.get("address"),
            phone_number=item.get("phone_number"),
            email=item["email"],
            description=item.get("description"),
            owner_id=item["owner_id"],
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class RestaurantCreate(BaseModel):
    """Payload for registering a new restaurant."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., min_length=1)
    address: str | None = None
    phone_number: str | None = None
    email: str
    description: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize the email address."""
        return normalize_email(v)


class RestaurantUpdate(BaseModel):
    """Partial update for a restaurant.

    Only fields present in the payload are applied. Name and email may be
    changed but never cleared; the other fields may be cleared with null.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(None, min_length=1)
    address: str | None = None
    phone_number: str | None = None
    email: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str:
        """Reject clearing the name."""
        if v is None:
            raise ValueError("name cannot be cleared")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str:
        """Reject clearing the email and normalize a new one."""
        if v is None:
            raise ValueError("email cannot be cleared")
        return normalize_email(v)

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller supplied."""
        return self.model_dump(exclude_unset=True)


class RestaurantDetail(Restaurant):
    """Restaurant with its menu items joined at read time.

    ``items`` is always a list so callers can render it even when the
    restaurant has no menu yet.
    """

    menu_id: str | None = Field(None, description="Identifier of the restaurant's menu, if any")
    items: list[MenuItem] = Field(default_factory=list, description="Menu items in display order")

    @classmethod
    def compose(cls, restaurant: Restaurant, menu: Menu | None) -> "RestaurantDetail":
        """Embed a menu's items into a restaurant view.

        Args:
            restaurant: The restaurant record
            menu: The restaurant's menu, or None if it has none

        Returns:
            RestaurantDetail: Combined view
        """
        return cls(
            **restaurant.model_dump(),
            menu_id=menu.id if menu else None,
            items=list(menu.items) if menu else [],
        )
