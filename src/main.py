"""Main application entry point for the restaurant directory.

This module provides the FastAPI application factory for running the service
locally with uvicorn or behind any ASGI server.
"""

import logging
import os

from fastapi import FastAPI

from restaurant_directory.bootstrap import (
    create_coordinator,
    create_dynamodb_resource,
    create_identity_resolver,
    create_s3_client,
)
from restaurant_directory.config import DirectorySettings
from restaurant_directory.handlers.api_handler import create_app
from restaurant_directory.observability import configure_logging, setup_observability

logger = logging.getLogger(__name__)


def create_application(settings: DirectorySettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    Args:
        settings: Runtime configuration, read from the environment when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or DirectorySettings.from_env()
    configure_logging(settings.log_level)

    logger.info("Initializing restaurant directory...")

    identity_resolver = create_identity_resolver(settings)
    coordinator = create_coordinator(
        settings,
        dynamodb_resource=create_dynamodb_resource(settings),
        s3_client=create_s3_client(settings),
        identity_resolver=identity_resolver,
    )

    app = create_app(
        coordinator=coordinator,
        identity_resolver=identity_resolver,
        max_image_bytes=settings.max_image_bytes,
    )
    setup_observability(app)

    logger.info("Restaurant directory initialized successfully")
    return app


# The real application is only built outside of tests so that importing this
# module during test collection does not need AWS configuration.
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
