"""DynamoDB repository for menus.

The menus table is keyed by restaurant_id, so a restaurant can hold at most
one menu document. Creation is an insert-if-absent; updates are a
compare-and-swap on the menu's version attribute.
"""

import logging

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from restaurant_directory.errors import ConflictError, PersistenceError
from restaurant_directory.models.menu_models import Menu
from restaurant_directory.repositories.restaurant_repository import is_conditional_check_failure

logger = logging.getLogger(__name__)


class MenuRepository:
    """Repository for menu documents."""

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the menus table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_menu(self, restaurant_id: str) -> Menu | None:
        """Retrieve the menu for a restaurant.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            Menu if found, None otherwise

        Raises:
            PersistenceError: If the read failed
        """
        try:
            response = self.table.get_item(Key={"restaurant_id": restaurant_id}, ConsistentRead=True)

            if "Item" not in response:
                return None

            return Menu.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu for restaurant {restaurant_id}: {e}")
            raise PersistenceError("Failed to read menu") from e

    def insert_if_absent(self, menu: Menu) -> Menu | None:
        """Create a menu unless the restaurant already has one.

        If another writer created the restaurant's menu first, that menu is
        returned instead of the one passed in.

        Args:
            menu: New, empty menu

        Returns:
            The stored menu, or None on storage failure
        """
        try:
            self.table.put_item(
                Item=menu.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(restaurant_id)",
            )
            return menu

        except ClientError as e:
            if is_conditional_check_failure(e):
                logger.info(f"Menu for restaurant {menu.restaurant_id} already exists, reusing it")
                return self.get_menu(menu.restaurant_id)
            logger.error(f"Failed to create menu for restaurant {menu.restaurant_id}: {e}")
            return None

    def save_menu(self, menu: Menu, expected_version: int) -> bool:
        """Write a menu if nobody else has written it since it was read.

        Args:
            menu: Menu to store, already carrying its new version
            expected_version: Version the caller read

        Returns:
            bool: True if save succeeded, False on storage failure

        Raises:
            ConflictError: If the stored version no longer matches
        """
        try:
            self.table.put_item(
                Item=menu.to_dynamodb_item(),
                ConditionExpression="#version = :expected_version",
                ExpressionAttributeNames={"#version": "version"},
                ExpressionAttributeValues={":expected_version": expected_version},
            )
            return True

        except ClientError as e:
            if is_conditional_check_failure(e):
                logger.warning(f"Concurrent update detected on menu for restaurant {menu.restaurant_id}")
                raise ConflictError("Menu was modified concurrently, please retry") from e
            logger.error(f"Failed to save menu for restaurant {menu.restaurant_id}: {e}")
            return False
