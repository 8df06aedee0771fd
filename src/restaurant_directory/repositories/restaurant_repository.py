"""DynamoDB repository for restaurant records.

Restaurants live in one table keyed by restaurant_id, with a global secondary
index on owner_id. Email uniqueness is enforced by a second table keyed by
email: a restaurant may only be written after a conditional put claims its
email there. Failed writes are logged and reported as False, failed reads
raise PersistenceError so an outage never looks like a missing record. A
lost uniqueness race raises DuplicateEmailError.
"""

import logging
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from restaurant_directory.errors import DuplicateEmailError, NotFoundError, PersistenceError
from restaurant_directory.models.restaurant_models import Restaurant

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def is_conditional_check_failure(error: ClientError) -> bool:
    """Return True if a ClientError came from a failed ConditionExpression."""
    return error.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


class RestaurantRepository:
    """Repository for restaurant CRUD operations."""

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        email_table_name: str,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the restaurants table
            email_table_name: Name of the table holding email claims
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.email_table_name = email_table_name
        self.table: Table = dynamodb_resource.Table(table_name)
        self.email_table: Table = dynamodb_resource.Table(email_table_name)

    def claim_email(self, email: str, restaurant_id: str) -> bool:
        """Reserve an email for a restaurant.

        Args:
            email: Normalized email address
            restaurant_id: Restaurant that will use the email

        Returns:
            bool: True if the claim was written, False on storage failure

        Raises:
            DuplicateEmailError: If the email is already claimed
        """
        try:
            self.email_table.put_item(
                Item={"email": email, "restaurant_id": restaurant_id},
                ConditionExpression="attribute_not_exists(email)",
            )
            return True

        except ClientError as e:
            if is_conditional_check_failure(e):
                raise DuplicateEmailError(f"A restaurant with email {email} already exists") from e
            logger.error(f"Failed to claim email for restaurant {restaurant_id}: {e}")
            return False

    def release_email(self, email: str) -> bool:
        """Release an email claim so another restaurant can use it.

        Args:
            email: Normalized email address

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.email_table.delete_item(Key={"email": email})
            return True

        except ClientError as e:
            logger.error(f"Failed to release email claim: {e}")
            return False

    def create_restaurant(self, restaurant: Restaurant) -> bool:
        """Persist a new restaurant after claiming its email.

        Args:
            restaurant: Restaurant to create

        Returns:
            bool: True if the restaurant was written, False otherwise

        Raises:
            DuplicateEmailError: If another restaurant already uses the email
        """
        if not self.claim_email(restaurant.email, restaurant.id):
            return False

        try:
            self.table.put_item(
                Item=restaurant.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(restaurant_id)",
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to create restaurant {restaurant.id}: {e}")
            self.release_email(restaurant.email)
            return False

    def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        """Retrieve a restaurant by id.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            Restaurant if found, None otherwise

        Raises:
            PersistenceError: If the read failed
        """
        try:
            response = self.table.get_item(Key={"restaurant_id": restaurant_id})

            if "Item" not in response:
                return None

            return Restaurant.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get restaurant {restaurant_id}: {e}")
            raise PersistenceError("Failed to read restaurant") from e

    def list_restaurants(self) -> list[Restaurant]:
        """List every restaurant.

        Returns:
            list: All restaurants (empty list if none)

        Raises:
            PersistenceError: If the scan failed
        """
        try:
            return [Restaurant.from_dynamodb_item(item) for item in self._collect(self.table.scan)]

        except ClientError as e:
            logger.error(f"Failed to list restaurants: {e}")
            raise PersistenceError("Failed to list restaurants") from e

    def list_restaurants_for_owner(self, owner_id: str) -> list[Restaurant]:
        """List restaurants owned by an identity.

        Uses a Global Secondary Index on owner_id.

        Args:
            owner_id: Owning identity

        Returns:
            list: Restaurants owned by owner_id (empty list if none)

        Raises:
            PersistenceError: If the query failed
        """
        try:
            items = self._collect(
                self.table.query,
                IndexName="owner_id-index",
                KeyConditionExpression="owner_id = :oid",
                ExpressionAttributeValues={":oid": owner_id},
            )
            return [Restaurant.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list restaurants for owner {owner_id}: {e}")
            raise PersistenceError("Failed to list restaurants") from e

    def save_restaurant(self, restaurant: Restaurant, previous_email: str | None = None) -> bool:
        """Overwrite an existing restaurant record.

        When the email changes, the new email is claimed before the write and
        the previous claim is released after it.

        Args:
            restaurant: Updated restaurant
            previous_email: Email stored before this update

        Returns:
            bool: True if the write succeeded, False otherwise

        Raises:
            DuplicateEmailError: If the new email belongs to another restaurant
            NotFoundError: If the restaurant was deleted concurrently
        """
        email_changed = previous_email is not None and previous_email != restaurant.email

        if email_changed and not self.claim_email(restaurant.email, restaurant.id):
            return False

        try:
            self.table.put_item(
                Item=restaurant.to_dynamodb_item(),
                ConditionExpression="attribute_exists(restaurant_id)",
            )

        except ClientError as e:
            if email_changed:
                self.release_email(restaurant.email)
            if is_conditional_check_failure(e):
                raise NotFoundError("Restaurant not found") from e
            logger.error(f"Failed to save restaurant {restaurant.id}: {e}")
            return False

        if email_changed:
            self.release_email(previous_email)  # type: ignore[arg-type]
        return True

    def delete_restaurant(self, restaurant: Restaurant) -> bool:
        """Delete a restaurant and release its email.

        The restaurant's menu is left in place.

        Args:
            restaurant: Restaurant to delete

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"restaurant_id": restaurant.id})

        except ClientError as e:
            logger.error(f"Failed to delete restaurant {restaurant.id}: {e}")
            return False

        self.release_email(restaurant.email)
        return True

    @staticmethod
    def _collect(operation: Any, **kwargs: Any) -> list[dict[str, Any]]:
        """Run a scan or query, following LastEvaluatedKey until exhausted."""
        items: list[dict[str, Any]] = []
        while True:
            response = operation(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key
