"""Cached dependency factory for the Lambda handler.

Dependencies are created once per Lambda container and reused across
invocations to keep warm starts cheap.
"""

import logging
from typing import Any

from fastapi import FastAPI

from restaurant_directory.auth.identity import GatewayIdentityResolver
from restaurant_directory.bootstrap import (
    create_coordinator,
    create_dynamodb_resource,
    create_identity_resolver,
    create_s3_client,
)
from restaurant_directory.config import DirectorySettings
from restaurant_directory.handlers.api_handler import create_app
from restaurant_directory.observability import configure_logging, setup_observability
from restaurant_directory.services.coordinator import RestaurantMenuCoordinator

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_settings: DirectorySettings | None = None
_dynamodb_resource: Any | None = None
_s3_client: Any | None = None
_identity_resolver: GatewayIdentityResolver | None = None
_coordinator: RestaurantMenuCoordinator | None = None
_fastapi_app: FastAPI | None = None


def get_settings() -> DirectorySettings:
    """Read settings from the environment once."""
    global _settings

    if _settings is None:
        _settings = DirectorySettings.from_env()
    return _settings


def get_dynamodb_resource() -> Any:
    """Create or retrieve the cached DynamoDB resource."""
    global _dynamodb_resource

    if _dynamodb_resource is None:
        _dynamodb_resource = create_dynamodb_resource(get_settings())
    return _dynamodb_resource


def get_s3_client() -> Any:
    """Create or retrieve the cached S3 client."""
    global _s3_client

    if _s3_client is None:
        _s3_client = create_s3_client(get_settings())
    return _s3_client


def get_identity_resolver() -> GatewayIdentityResolver:
    """Create or retrieve the cached identity resolver."""
    global _identity_resolver

    if _identity_resolver is None:
        _identity_resolver = create_identity_resolver(get_settings())
    return _identity_resolver


def get_coordinator() -> RestaurantMenuCoordinator:
    """Create or retrieve the cached coordinator."""
    global _coordinator

    if _coordinator is not None:
        return _coordinator

    _coordinator = create_coordinator(
        get_settings(),
        dynamodb_resource=get_dynamodb_resource(),
        s3_client=get_s3_client(),
        identity_resolver=get_identity_resolver(),
    )

    logger.info("Coordinator initialized")
    return _coordinator


def get_fastapi_app() -> FastAPI:
    """Create or retrieve the cached FastAPI application."""
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    _fastapi_app = create_app(
        coordinator=get_coordinator(),
        identity_resolver=get_identity_resolver(),
        max_image_bytes=get_settings().max_image_bytes,
    )
    setup_observability(_fastapi_app)

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Configure logging. Called once during Lambda cold start."""
    configure_logging(get_settings().log_level)

    logger.info("Lambda environment initialized")
