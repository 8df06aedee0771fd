"""Shared pytest fixtures and configuration for all tests."""

import copy
import os
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

# Must be set before src.main / src.lambda_handler are imported by test modules
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from botocore.exceptions import ClientError  # noqa: E402

from restaurant_directory.auth.identity import ActingIdentity  # noqa: E402
from restaurant_directory.models.menu_models import Menu, MenuItem  # noqa: E402
from restaurant_directory.models.restaurant_models import Restaurant  # noqa: E402


def conditional_check_failed(operation: str) -> ClientError:
    """Build the ClientError DynamoDB raises when a ConditionExpression fails."""
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        operation,
    )


class InMemoryTable:
    """Dict-backed stand-in for a boto3 DynamoDB Table.

    Understands the handful of condition expressions the repositories use.
    """

    def __init__(self, key_name: str, indexes: dict[str, str] | None = None) -> None:
        self.key_name = key_name
        self.indexes = indexes or {}
        self.items: dict[str, dict[str, Any]] = {}

    def _check(self, key: str, condition: str | None, values: dict[str, Any]) -> None:
        existing = self.items.get(key)
        if condition is None:
            return
        if condition.startswith("attribute_not_exists") and existing is not None:
            raise conditional_check_failed("PutItem")
        if condition.startswith("attribute_exists") and existing is None:
            raise conditional_check_failed("PutItem")
        if condition == "#version = :expected_version":
            if existing is None or existing.get("version") != values[":expected_version"]:
                raise conditional_check_failed("PutItem")

    def put_item(
        self,
        Item: dict[str, Any],
        ConditionExpression: str | None = None,
        ExpressionAttributeNames: dict[str, str] | None = None,
        ExpressionAttributeValues: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        key = Item[self.key_name]
        self._check(key, ConditionExpression, ExpressionAttributeValues or {})
        self.items[key] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key: dict[str, Any], ConsistentRead: bool = False) -> dict[str, Any]:
        item = self.items.get(Key[self.key_name])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def delete_item(self, Key: dict[str, Any]) -> dict[str, Any]:
        self.items.pop(Key[self.key_name], None)
        return {}

    def scan(self, **_kwargs: Any) -> dict[str, Any]:
        return {"Items": [copy.deepcopy(item) for item in self.items.values()]}

    def query(
        self,
        IndexName: str,
        KeyConditionExpression: str,
        ExpressionAttributeValues: dict[str, Any],
        **_kwargs: Any,
    ) -> dict[str, Any]:
        attribute = self.indexes[IndexName]
        wanted = next(iter(ExpressionAttributeValues.values()))
        return {
            "Items": [
                copy.deepcopy(item) for item in self.items.values() if item.get(attribute) == wanted
            ]
        }


class InMemoryDynamoDB:
    """Stand-in for a boto3 DynamoDB service resource."""

    def __init__(self) -> None:
        self.tables: dict[str, InMemoryTable] = {
            "restaurants": InMemoryTable("restaurant_id", {"owner_id-index": "owner_id"}),
            "emails": InMemoryTable("email"),
            "menus": InMemoryTable("restaurant_id"),
        }

    def Table(self, name: str) -> InMemoryTable:  # noqa: N802
        return self.tables[name]


@pytest.fixture
def in_memory_dynamodb() -> InMemoryDynamoDB:
    """Fixture providing empty in-memory restaurants, emails and menus tables."""
    return InMemoryDynamoDB()


@pytest.fixture
def owner() -> ActingIdentity:
    """Fixture providing the identity that owns the sample restaurant."""
    return ActingIdentity(user_id="user_owner", role="restaurant_owner")


@pytest.fixture
def stranger() -> ActingIdentity:
    """Fixture providing an authenticated identity that owns nothing."""
    return ActingIdentity(user_id="user_stranger", role="restaurant_owner")


@pytest.fixture
def sample_restaurant() -> Restaurant:
    """Fixture providing a restaurant owned by user_owner."""
    now = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    return Restaurant(
        id="rest_123",
        name="Cafe A",
        address="12 Brick Lane",
        phone_number="555-0100",
        email="a@x.com",
        description="Coffee and cake",
        owner_id="user_owner",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_menu() -> Menu:
    """Fixture providing a two-item menu for rest_123."""
    return Menu(
        id="menu_1",
        restaurant_id="rest_123",
        items=[
            MenuItem(
                id="item_1",
                name="Tea",
                description="Black tea",
                price=Decimal("3"),
                image_url="https://bucket.s3.us-east-1.amazonaws.com/uploads/tea.png",
            ),
            MenuItem(id="item_2", name="Scone", description=None, price=Decimal("4.50")),
        ],
        version=2,
    )
