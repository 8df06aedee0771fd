"""Object graph construction shared by the uvicorn and Lambda entry points."""

import logging
from typing import Any

import boto3

from restaurant_directory.auth.identity import GatewayIdentityResolver
from restaurant_directory.config import DirectorySettings
from restaurant_directory.repositories.menu_repository import MenuRepository
from restaurant_directory.repositories.restaurant_repository import RestaurantRepository
from restaurant_directory.services.coordinator import RestaurantMenuCoordinator
from restaurant_directory.services.image_service import ImageAttachmentService
from restaurant_directory.services.menu_service import MenuService
from restaurant_directory.services.restaurant_service import RestaurantService

logger = logging.getLogger(__name__)

DEVELOPMENT_API_KEY = "dummy-key-for-development"


def create_dynamodb_resource(settings: DirectorySettings) -> Any:
    """Create a DynamoDB resource for AWS or a local endpoint.

    Args:
        settings: Runtime configuration

    Returns:
        Boto3 DynamoDB resource
    """
    if settings.dynamodb_endpoint:
        logger.info(f"Using local DynamoDB at {settings.dynamodb_endpoint}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=settings.dynamodb_endpoint,
            region_name=settings.region,
        )

    logger.info(f"Using AWS DynamoDB in region {settings.region}")
    return boto3.resource("dynamodb", region_name=settings.region)


def create_s3_client(settings: DirectorySettings) -> Any:
    """Create an S3 client for AWS or a local endpoint.

    Args:
        settings: Runtime configuration

    Returns:
        Boto3 S3 client
    """
    if settings.s3_endpoint:
        logger.info(f"Using local S3 at {settings.s3_endpoint}")
        return boto3.client("s3", endpoint_url=settings.s3_endpoint, region_name=settings.region)

    return boto3.client("s3", region_name=settings.region)


def create_identity_resolver(settings: DirectorySettings) -> GatewayIdentityResolver:
    """Create the identity resolver, falling back to a development key."""
    api_keys = settings.gateway_api_keys
    if not api_keys:
        logger.warning("No GATEWAY_API_KEYS configured - using development key")
        api_keys = [DEVELOPMENT_API_KEY]

    return GatewayIdentityResolver(api_keys=api_keys, owner_roles=settings.owner_roles)


def create_coordinator(
    settings: DirectorySettings,
    dynamodb_resource: Any,
    s3_client: Any,
    identity_resolver: GatewayIdentityResolver,
) -> RestaurantMenuCoordinator:
    """Wire repositories and services into a coordinator.

    Args:
        settings: Runtime configuration
        dynamodb_resource: Boto3 DynamoDB resource
        s3_client: Boto3 S3 client
        identity_resolver: Resolver deciding who may own restaurants

    Returns:
        Ready-to-use RestaurantMenuCoordinator
    """
    restaurant_repository = RestaurantRepository(
        dynamodb_resource=dynamodb_resource,
        table_name=settings.restaurants_table,
        email_table_name=settings.emails_table,
    )
    menu_repository = MenuRepository(
        dynamodb_resource=dynamodb_resource, table_name=settings.menus_table
    )
    logger.info(
        f"Repositories configured - restaurants: {settings.restaurants_table}, "
        f"emails: {settings.emails_table}, menus: {settings.menus_table}"
    )

    menu_service = MenuService(menu_repository=menu_repository)
    restaurant_service = RestaurantService(
        restaurant_repository=restaurant_repository, menu_service=menu_service
    )
    image_service = ImageAttachmentService(
        s3_client=s3_client,
        bucket_name=settings.bucket_name,
        region=settings.region,
        public_base_url=settings.s3_public_base_url,
        max_bytes=settings.max_image_bytes,
    )

    return RestaurantMenuCoordinator(
        restaurant_service=restaurant_service,
        menu_service=menu_service,
        image_service=image_service,
        identity_resolver=identity_resolver,
    )
