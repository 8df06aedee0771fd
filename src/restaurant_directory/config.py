"""Environment-driven settings shared by the uvicorn and Lambda entry points."""

import os
from dataclasses import dataclass, field

from restaurant_directory.services.image_service import DEFAULT_MAX_IMAGE_BYTES


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class DirectorySettings:
    """Runtime configuration.

    Attributes:
        region: AWS region for DynamoDB and S3
        dynamodb_endpoint: Local DynamoDB endpoint, None for AWS
        restaurants_table: Table holding restaurant records
        emails_table: Table holding restaurant email claims
        menus_table: Table holding menus
        bucket_name: S3 bucket for menu item images
        s3_endpoint: Local S3 endpoint, None for AWS
        s3_public_base_url: Base URL for image links, None for the bucket URL
        max_image_bytes: Largest accepted image upload
        gateway_api_keys: Keys that make identity headers trusted
        owner_roles: Roles allowed to register restaurants
        log_level: Root log level
    """

    bucket_name: str
    region: str = "us-east-1"
    dynamodb_endpoint: str | None = None
    restaurants_table: str = "restaurant-directory-restaurants"
    emails_table: str = "restaurant-directory-emails"
    menus_table: str = "restaurant-directory-menus"
    s3_endpoint: str | None = None
    s3_public_base_url: str | None = None
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    gateway_api_keys: list[str] = field(default_factory=list)
    owner_roles: list[str] = field(default_factory=lambda: ["restaurant_owner", "admin"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "DirectorySettings":
        """Read settings from environment variables.

        Raises:
            ValueError: If AWS_S3_BUCKET_NAME is not set
        """
        bucket_name = os.getenv("AWS_S3_BUCKET_NAME")
        if not bucket_name:
            raise ValueError("AWS_S3_BUCKET_NAME must be set in environment")

        return cls(
            bucket_name=bucket_name,
            region=os.getenv("AWS_REGION", "us-east-1"),
            dynamodb_endpoint=os.getenv("DYNAMODB_ENDPOINT") or None,
            restaurants_table=os.getenv(
                "DYNAMODB_RESTAURANTS_TABLE", "restaurant-directory-restaurants"
            ),
            emails_table=os.getenv("DYNAMODB_RESTAURANT_EMAILS_TABLE", "restaurant-directory-emails"),
            menus_table=os.getenv("DYNAMODB_MENUS_TABLE", "restaurant-directory-menus"),
            s3_endpoint=os.getenv("S3_ENDPOINT") or None,
            s3_public_base_url=os.getenv("S3_PUBLIC_BASE_URL") or None,
            max_image_bytes=int(os.getenv("MAX_IMAGE_BYTES", str(DEFAULT_MAX_IMAGE_BYTES))),
            gateway_api_keys=_split_csv(os.getenv("GATEWAY_API_KEYS", "")),
            owner_roles=_split_csv(os.getenv("RESTAURANT_OWNER_ROLES", "restaurant_owner,admin")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
