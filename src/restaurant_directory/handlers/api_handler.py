"""FastAPI application exposing restaurant and menu operations."""

import logging
from typing import Any

from fastapi import Body, Depends, FastAPI, File, Form, Header, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from restaurant_directory.auth.identity import ActingIdentity, GatewayIdentityResolver
from restaurant_directory.errors import DirectoryError, ValidationError
from restaurant_directory.models.menu_models import ImageUpload, Menu, MenuItem
from restaurant_directory.models.restaurant_models import Restaurant, RestaurantDetail
from restaurant_directory.services.coordinator import RestaurantMenuCoordinator
from restaurant_directory.services.image_service import DEFAULT_MAX_IMAGE_BYTES

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 64 * 1024


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class MenuItemsResponse(BaseModel):
    """A restaurant's menu items, always present even when empty."""

    items: list[MenuItem]


class MessageResponse(BaseModel):
    """Confirmation for operations without a resource body."""

    message: str


def form_fields(**fields: str | None) -> dict[str, str]:
    """Keep only form fields the client actually filled in.

    Multipart forms cannot express null, so an omitted field and an empty
    field both mean "not supplied".
    """
    return {name: value for name, value in fields.items() if value is not None and value != ""}


async def read_upload(image: UploadFile | None, max_bytes: int) -> ImageUpload | None:
    """Read an optional uploaded file into an ImageUpload.

    The file is read in chunks and rejected as soon as it grows past
    max_bytes, so an oversized upload is never held in memory whole.

    Raises:
        ValidationError: If the file is larger than max_bytes
    """
    if image is None or not image.filename:
        return None

    too_large = f"Image exceeds the maximum size of {max_bytes} bytes"
    if image.size is not None and image.size > max_bytes:
        raise ValidationError(too_large)

    chunks: list[bytes] = []
    received = 0
    while True:
        chunk = await image.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        received += len(chunk)
        if received > max_bytes:
            raise ValidationError(too_large)
        chunks.append(chunk)

    return ImageUpload(
        content=b"".join(chunks),
        filename=image.filename,
        content_type=image.content_type or "application/octet-stream",
    )


def create_app(
    coordinator: RestaurantMenuCoordinator,
    identity_resolver: GatewayIdentityResolver,
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        coordinator: Coordinator implementing every operation
        identity_resolver: Resolves the caller from trusted gateway headers
        max_image_bytes: Largest image upload read from a request

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Directory API",
        description="Restaurants, their owners and their menus",
        version="1.0.0",
    )

    app.state.coordinator = coordinator
    app.state.identity_resolver = identity_resolver

    @app.exception_handler(DirectoryError)
    async def handle_directory_error(_request: Request, exc: DirectoryError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
        )

    def current_identity(
        x_api_key: str | None = Header(None),
        x_user_id: str | None = Header(None),
        x_user_role: str | None = Header(None),
    ) -> ActingIdentity | None:
        """Dependency resolving the caller, None when unauthenticated."""
        return app.state.identity_resolver.resolve(x_api_key, x_user_id, x_user_role)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    # Restaurants

    @app.get("/api/restaurants", response_model=list[Restaurant], tags=["Restaurants"])
    async def list_restaurants() -> list[Restaurant]:
        """List every restaurant."""
        restaurants: list[Restaurant] = await app.state.coordinator.list_restaurants()
        return restaurants

    @app.post(
        "/api/restaurants",
        response_model=Restaurant,
        status_code=201,
        tags=["Restaurants"],
    )
    async def create_restaurant(
        payload: dict[str, Any] = Body(...),
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> Restaurant:
        """Register a restaurant owned by the caller."""
        restaurant: Restaurant = await app.state.coordinator.create_restaurant(payload, identity)
        return restaurant

    @app.get(
        "/api/restaurants/myrestaurants",
        response_model=list[RestaurantDetail],
        tags=["Restaurants"],
    )
    async def list_my_restaurants(
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> list[RestaurantDetail]:
        """List the caller's restaurants with their menus."""
        restaurants: list[RestaurantDetail] = await app.state.coordinator.list_my_restaurants(identity)
        return restaurants

    @app.get(
        "/api/restaurants/{restaurant_id}",
        response_model=RestaurantDetail,
        tags=["Restaurants"],
    )
    async def get_restaurant(restaurant_id: str) -> RestaurantDetail:
        """Get a restaurant with its menu items."""
        detail: RestaurantDetail = await app.state.coordinator.get_restaurant_detail(restaurant_id)
        return detail

    @app.put(
        "/api/restaurants/{restaurant_id}",
        response_model=Restaurant,
        tags=["Restaurants"],
    )
    async def update_restaurant(
        restaurant_id: str,
        payload: dict[str, Any] = Body(...),
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> Restaurant:
        """Update a restaurant's details."""
        restaurant: Restaurant = await app.state.coordinator.update_restaurant(
            restaurant_id, payload, identity
        )
        return restaurant

    @app.delete(
        "/api/restaurants/{restaurant_id}",
        response_model=MessageResponse,
        tags=["Restaurants"],
    )
    async def delete_restaurant(
        restaurant_id: str,
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> MessageResponse:
        """Delete a restaurant."""
        await app.state.coordinator.delete_restaurant(restaurant_id, identity)
        return MessageResponse(message="Restaurant removed")

    # Menus

    @app.post(
        "/api/restaurants/{restaurant_id}/menu",
        response_model=Menu,
        status_code=201,
        tags=["Menus"],
    )
    async def add_menu_item(
        restaurant_id: str,
        name: str | None = Form(None),
        description: str | None = Form(None),
        price: str | None = Form(None),
        image: UploadFile | None = File(None),
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> Menu:
        """Add an item, optionally with an image, to a restaurant's menu."""
        menu: Menu = await app.state.coordinator.add_menu_item(
            restaurant_id,
            form_fields(name=name, description=description, price=price),
            identity,
            image=await read_upload(image, max_image_bytes),
        )
        return menu

    @app.put(
        "/api/restaurants/{restaurant_id}/menu/{item_id}",
        response_model=Menu,
        tags=["Menus"],
    )
    async def update_menu_item(
        restaurant_id: str,
        item_id: str,
        name: str | None = Form(None),
        description: str | None = Form(None),
        price: str | None = Form(None),
        image: UploadFile | None = File(None),
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> Menu:
        """Update a menu item; omitted fields keep their values."""
        menu: Menu = await app.state.coordinator.update_menu_item(
            restaurant_id,
            item_id,
            form_fields(name=name, description=description, price=price),
            identity,
            image=await read_upload(image, max_image_bytes),
        )
        return menu

    @app.delete(
        "/api/restaurants/{restaurant_id}/menu/{item_id}",
        response_model=MessageResponse,
        tags=["Menus"],
    )
    async def remove_menu_item(
        restaurant_id: str,
        item_id: str,
        identity: ActingIdentity | None = Depends(current_identity),
    ) -> MessageResponse:
        """Remove a menu item."""
        await app.state.coordinator.remove_menu_item(restaurant_id, item_id, identity)
        return MessageResponse(message="Menu item removed")

    @app.get("/api/menu/{restaurant_id}", response_model=MenuItemsResponse, tags=["Menus"])
    async def get_menu(restaurant_id: str) -> MenuItemsResponse:
        """Get a restaurant's menu items."""
        items: list[MenuItem] = await app.state.coordinator.get_menu_by_restaurant(restaurant_id)
        return MenuItemsResponse(items=items)

    return app
