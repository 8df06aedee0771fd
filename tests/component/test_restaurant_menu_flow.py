"""Component tests running the coordinator against in-memory tables.

Repositories, services and the coordinator are real; only DynamoDB and S3
are replaced.
"""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from botocore.exceptions import ClientError

from conftest import InMemoryDynamoDB
from restaurant_directory.auth.identity import ActingIdentity
from restaurant_directory.bootstrap import create_coordinator, create_identity_resolver
from restaurant_directory.config import DirectorySettings
from restaurant_directory.errors import (
    ConflictError,
    DuplicateEmailError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    UploadFailedError,
    ValidationError,
)
from restaurant_directory.models.menu_models import ImageUpload
from restaurant_directory.models.restaurant_models import Restaurant
from restaurant_directory.services.coordinator import RestaurantMenuCoordinator
from restaurant_directory.services.menu_service import MenuService

CAFE = {"name": "Cafe A", "email": "a@x.com", "address": "12 Brick Lane"}


@pytest.fixture
def mock_s3() -> MagicMock:
    """Create a mock S3 client that accepts every upload."""
    return MagicMock()


@pytest.fixture
def coordinator(in_memory_dynamodb: InMemoryDynamoDB, mock_s3: MagicMock) -> RestaurantMenuCoordinator:
    """Build the full object graph over in-memory tables."""
    settings = DirectorySettings(
        bucket_name="menu-images",
        restaurants_table="restaurants",
        emails_table="emails",
        menus_table="menus",
        gateway_api_keys=["test-api-key"],
    )
    return create_coordinator(
        settings,
        dynamodb_resource=in_memory_dynamodb,
        s3_client=mock_s3,
        identity_resolver=create_identity_resolver(settings),
    )


@pytest.fixture
def image() -> ImageUpload:
    """Fixture providing a small PNG upload."""
    return ImageUpload(content=b"\x89PNG\r\n\x1a\n", filename="tea.png", content_type="image/png")


@pytest_asyncio.fixture
async def restaurant(coordinator: RestaurantMenuCoordinator, owner: ActingIdentity) -> Restaurant:
    """Create Cafe A owned by user_owner."""
    return await coordinator.create_restaurant(CAFE, owner)


@pytest.mark.component
class TestRestaurantOwnership:
    """Ownership rules across restaurant operations."""

    @pytest.mark.asyncio
    async def test_only_owner_can_update(
        self,
        coordinator: RestaurantMenuCoordinator,
        restaurant: Restaurant,
        owner: ActingIdentity,
        stranger: ActingIdentity,
    ) -> None:
        """Test that a stranger's update is rejected and the owner's applied."""
        with pytest.raises(UnauthorizedError):
            await coordinator.update_restaurant(restaurant.id, {"name": "Stolen"}, stranger)

        detail = await coordinator.get_restaurant_detail(restaurant.id)
        assert detail.name == "Cafe A"

        updated = await coordinator.update_restaurant(restaurant.id, {"name": "Cafe B"}, owner)
        assert updated.name == "Cafe B"
        assert updated.owner_id == "user_owner"
        assert updated.address == "12 Brick Lane"

    @pytest.mark.asyncio
    async def test_invalid_update_from_stranger_is_unauthorized(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, stranger: ActingIdentity
    ) -> None:
        """Test that ownership is decided before the body is validated."""
        with pytest.raises(UnauthorizedError):
            await coordinator.update_restaurant(restaurant.id, {"email": "not-an-email"}, stranger)

        with pytest.raises(NotFoundError):
            await coordinator.update_restaurant("rest_missing", {"name": None}, stranger)

    @pytest.mark.asyncio
    async def test_update_missing_restaurant(self, coordinator: RestaurantMenuCoordinator, owner: ActingIdentity) -> None:
        """Test that updating an unknown restaurant raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await coordinator.update_restaurant("rest_missing", {"name": "X"}, owner)

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected_once(
        self, coordinator: RestaurantMenuCoordinator, owner: ActingIdentity, stranger: ActingIdentity
    ) -> None:
        """Test that two restaurants cannot share an email, whatever its case."""
        results = await asyncio.gather(
            coordinator.create_restaurant(CAFE, owner),
            coordinator.create_restaurant({**CAFE, "email": "A@X.COM"}, stranger),
            return_exceptions=True,
        )

        errors = [result for result in results if isinstance(result, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateEmailError)
        assert len(await coordinator.list_restaurants()) == 1

    @pytest.mark.asyncio
    async def test_email_change_to_taken_address(
        self,
        coordinator: RestaurantMenuCoordinator,
        restaurant: Restaurant,
        owner: ActingIdentity,
    ) -> None:
        """Test that an update cannot steal another restaurant's email."""
        await coordinator.create_restaurant({"name": "Deli", "email": "deli@x.com"}, owner)

        with pytest.raises(DuplicateEmailError):
            await coordinator.update_restaurant(restaurant.id, {"email": "deli@x.com"}, owner)

    @pytest.mark.asyncio
    async def test_delete_frees_email_and_keeps_menu(
        self,
        coordinator: RestaurantMenuCoordinator,
        in_memory_dynamodb: InMemoryDynamoDB,
        restaurant: Restaurant,
        owner: ActingIdentity,
        stranger: ActingIdentity,
    ) -> None:
        """Test that deletion releases the email and leaves the menu document."""
        await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)

        with pytest.raises(UnauthorizedError):
            await coordinator.delete_restaurant(restaurant.id, stranger)

        await coordinator.delete_restaurant(restaurant.id, owner)

        with pytest.raises(NotFoundError):
            await coordinator.get_restaurant_detail(restaurant.id)
        assert restaurant.id in in_memory_dynamodb.tables["menus"].items
        await coordinator.create_restaurant(CAFE, stranger)

    @pytest.mark.asyncio
    async def test_list_my_restaurants(
        self,
        coordinator: RestaurantMenuCoordinator,
        restaurant: Restaurant,
        owner: ActingIdentity,
        stranger: ActingIdentity,
    ) -> None:
        """Test that each owner only sees their own restaurants."""
        await coordinator.create_restaurant({"name": "Deli", "email": "deli@x.com"}, stranger)
        await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)

        mine = await coordinator.list_my_restaurants(owner)

        assert [detail.id for detail in mine] == [restaurant.id]
        assert [item.name for item in mine[0].items] == ["Tea"]


@pytest.mark.component
class TestMenuItems:
    """Menu item lifecycle through the coordinator."""

    @pytest.mark.asyncio
    async def test_get_menu_without_menu(self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant) -> None:
        """Test that a restaurant without a menu has no items."""
        assert await coordinator.get_menu_by_restaurant(restaurant.id) == []

    @pytest.mark.asyncio
    async def test_append_items(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test that each addition appends one item with a fresh id."""
        first = await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)
        second = await coordinator.add_menu_item(restaurant.id, {"name": "Scone", "price": "4.50"}, owner)

        assert len(second.items) == len(first.items) + 1
        assert second.id == first.id
        assert [item.name for item in second.items] == ["Tea", "Scone"]
        assert len({item.id for item in second.items}) == 2
        assert all(item.image_url is None for item in second.items)

    @pytest.mark.asyncio
    async def test_add_item_with_image(
        self,
        coordinator: RestaurantMenuCoordinator,
        mock_s3: MagicMock,
        restaurant: Restaurant,
        owner: ActingIdentity,
        image: ImageUpload,
    ) -> None:
        """Test that the stored image URL is recorded on the item."""
        menu = await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner, image=image)

        key = mock_s3.put_object.call_args.kwargs["Key"]
        assert menu.items[0].image_url == f"https://menu-images.s3.us-east-1.amazonaws.com/{key}"

    @pytest.mark.asyncio
    async def test_failed_upload_creates_nothing(
        self,
        coordinator: RestaurantMenuCoordinator,
        in_memory_dynamodb: InMemoryDynamoDB,
        mock_s3: MagicMock,
        restaurant: Restaurant,
        owner: ActingIdentity,
        image: ImageUpload,
    ) -> None:
        """Test that a failed upload on the first item leaves no menu behind."""
        mock_s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
        )

        with pytest.raises(UploadFailedError):
            await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner, image=image)

        assert in_memory_dynamodb.tables["menus"].items == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", ["1e400", "0.1234567890123456789012345678901234567890"])
    async def test_unstorable_price_rejected_before_upload(
        self,
        coordinator: RestaurantMenuCoordinator,
        in_memory_dynamodb: InMemoryDynamoDB,
        mock_s3: MagicMock,
        restaurant: Restaurant,
        owner: ActingIdentity,
        image: ImageUpload,
        price: str,
    ) -> None:
        """Test that a price DynamoDB cannot hold fails validation and uploads nothing."""
        with pytest.raises(ValidationError, match="price"):
            await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": price}, owner, image=image)

        mock_s3.put_object.assert_not_called()
        assert in_memory_dynamodb.tables["menus"].items == {}

    @pytest.mark.asyncio
    async def test_rejected_image_type(
        self,
        coordinator: RestaurantMenuCoordinator,
        mock_s3: MagicMock,
        restaurant: Restaurant,
        owner: ActingIdentity,
    ) -> None:
        """Test that a GIF is rejected before reaching S3."""
        gif = ImageUpload(content=b"GIF89a", filename="tea.gif", content_type="image/gif")

        with pytest.raises(ValidationError):
            await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner, image=gif)

        mock_s3.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_only_price(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity, image: ImageUpload
    ) -> None:
        """Test that a price-only update keeps every other field."""
        menu = await coordinator.add_menu_item(
            restaurant.id, {"name": "Tea", "description": "Black tea", "price": "3"}, owner, image=image
        )
        before = menu.items[0]

        menu = await coordinator.update_menu_item(restaurant.id, before.id, {"price": "9.5"}, owner)

        after = menu.items[0]
        assert after.price == Decimal("9.5")
        assert (after.id, after.name, after.description, after.image_url) == (
            before.id,
            before.name,
            before.description,
            before.image_url,
        )

    @pytest.mark.asyncio
    async def test_update_to_zero_price(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test that a price can be set to zero."""
        menu = await coordinator.add_menu_item(restaurant.id, {"name": "Water", "price": "1"}, owner)

        menu = await coordinator.update_menu_item(restaurant.id, menu.items[0].id, {"price": "0"}, owner)

        assert menu.items[0].price == Decimal("0")

    @pytest.mark.asyncio
    async def test_failed_upload_on_update_keeps_item(
        self,
        coordinator: RestaurantMenuCoordinator,
        mock_s3: MagicMock,
        restaurant: Restaurant,
        owner: ActingIdentity,
        image: ImageUpload,
    ) -> None:
        """Test that the item is unchanged when its new image fails to upload."""
        menu = await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)
        item = menu.items[0]
        mock_s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "InternalError", "Message": "S3 unavailable"}}, "PutObject"
        )

        with pytest.raises(UploadFailedError):
            await coordinator.update_menu_item(restaurant.id, item.id, {"name": "Green tea"}, owner, image=image)

        (stored,) = await coordinator.get_menu_by_restaurant(restaurant.id)
        assert stored == item

    @pytest.mark.asyncio
    async def test_update_unknown_item(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test that updating an unknown item id raises NotFoundError."""
        await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)

        with pytest.raises(NotFoundError, match="Menu item not found"):
            await coordinator.update_menu_item(restaurant.id, "item_missing", {"name": "X"}, owner)

    @pytest.mark.asyncio
    async def test_remove_keeps_order_and_ignores_unknown_ids(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test removal order and the no-op for an absent id."""
        for name in ("Tea", "Scone", "Latte"):
            menu = await coordinator.add_menu_item(restaurant.id, {"name": name, "price": "3"}, owner)
        scone_id = menu.items[1].id

        await coordinator.remove_menu_item(restaurant.id, scone_id, owner)
        await coordinator.remove_menu_item(restaurant.id, "item_missing", owner)

        items = await coordinator.get_menu_by_restaurant(restaurant.id)
        assert [item.name for item in items] == ["Tea", "Latte"]

    @pytest.mark.asyncio
    async def test_remove_without_menu(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test that removing from a restaurant without a menu raises NotFoundError."""
        with pytest.raises(NotFoundError, match="Menu not found"):
            await coordinator.remove_menu_item(restaurant.id, "item_1", owner)

    @pytest.mark.asyncio
    async def test_stranger_cannot_touch_menu(
        self,
        coordinator: RestaurantMenuCoordinator,
        restaurant: Restaurant,
        owner: ActingIdentity,
        stranger: ActingIdentity,
    ) -> None:
        """Test that every menu mutation is owner-only."""
        menu = await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)
        item_id = menu.items[0].id

        with pytest.raises(UnauthorizedError):
            await coordinator.add_menu_item(restaurant.id, {"name": "Spam", "price": "1"}, stranger)
        with pytest.raises(UnauthorizedError):
            await coordinator.update_menu_item(restaurant.id, item_id, {"price": "0"}, stranger)
        with pytest.raises(UnauthorizedError):
            await coordinator.remove_menu_item(restaurant.id, item_id, stranger)

        assert await coordinator.get_menu_by_restaurant(restaurant.id) == menu.items


@pytest.mark.component
class TestConcurrentMenuWrites:
    """Races on the same menu resolve without losing writes silently."""

    @pytest.mark.asyncio
    async def test_concurrent_menu_creation_converges(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant
    ) -> None:
        """Test that two creators who both saw no menu end up with the same one."""
        menu_service: MenuService = coordinator.menu_service
        repository = menu_service.menu_repository
        real_get_menu = repository.get_menu
        calls = {"count": 0}

        def get_menu(restaurant_id: str):
            # Both creators see no menu on their first read
            calls["count"] += 1
            return None if calls["count"] <= 2 else real_get_menu(restaurant_id)

        with patch.object(repository, "get_menu", side_effect=get_menu):
            first = await menu_service.get_or_create(restaurant.id)
            second = await menu_service.get_or_create(restaurant.id)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_stale_write_conflicts(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test that a writer holding an outdated menu gets ConflictError."""
        menu = await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)
        menu_service: MenuService = coordinator.menu_service
        await coordinator.add_menu_item(restaurant.id, {"name": "Scone", "price": "4"}, owner)

        with patch.object(menu_service.menu_repository, "get_menu", return_value=menu):
            with pytest.raises(ConflictError):
                await menu_service.update_item(restaurant.id, menu.items[0].id, {"price": Decimal("5")})

        items = await coordinator.get_menu_by_restaurant(restaurant.id)
        assert [item.price for item in items] == [Decimal("3"), Decimal("4")]


@pytest.mark.component
class TestStorageOutages:
    """Failed reads surface as PersistenceError instead of missing records."""

    @staticmethod
    def outage(operation: str) -> ClientError:
        return ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "DynamoDB unavailable"}}, operation
        )

    @pytest.mark.asyncio
    async def test_restaurant_read_failure_on_menu_mutation(
        self,
        coordinator: RestaurantMenuCoordinator,
        mock_s3: MagicMock,
        restaurant: Restaurant,
        owner: ActingIdentity,
        image: ImageUpload,
    ) -> None:
        """Test that the owner is not told they are unauthorized during an outage."""
        table = coordinator.restaurant_service.restaurant_repository.table

        with patch.object(table, "get_item", side_effect=self.outage("GetItem")):
            with pytest.raises(PersistenceError):
                await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner, image=image)

        mock_s3.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_menu_read_failure_is_not_an_empty_menu(
        self, coordinator: RestaurantMenuCoordinator, restaurant: Restaurant, owner: ActingIdentity
    ) -> None:
        """Test that menu reads and removals fail loudly when the menus table is down."""
        await coordinator.add_menu_item(restaurant.id, {"name": "Tea", "price": "3"}, owner)
        table = coordinator.menu_service.menu_repository.table

        with patch.object(table, "get_item", side_effect=self.outage("GetItem")):
            with pytest.raises(PersistenceError):
                await coordinator.get_menu_by_restaurant(restaurant.id)
            with pytest.raises(PersistenceError):
                await coordinator.remove_menu_item(restaurant.id, "item_1", owner)

        assert [item.name for item in await coordinator.get_menu_by_restaurant(restaurant.id)] == ["Tea"]
