from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import select

from inventory_service.app.core.exceptions import (
    InsufficientStockError,
    InventoryAlreadyExistsError,
    InventoryDeletedError,
    InventoryNotFoundError,
)
from inventory_service.app.events.event_producers import InventoryEventProducer
from inventory_service.app.models.inventory import InventoryMovement, MovementType
from inventory_service.app.services.inventory_service import InventoryService


class TestInventoryService:
    """Test suite for InventoryService"""

    @pytest.fixture
    def event_producer(self):
        producer = Mock(spec=InventoryEventProducer)
        producer.publish_inventory_adjusted = AsyncMock()
        return producer

    @pytest.fixture
    def inventory_service(self, db_session, event_producer):
        return InventoryService(db_session, event_producer)

    async def _movements(self, db_session, inventory_id):
        result = await db_session.execute(
            select(InventoryMovement)
            .where(InventoryMovement.inventory_id == inventory_id)
            .order_by(InventoryMovement.id)
        )
        return list(result.scalars().all())

    @pytest.mark.asyncio
    async def test_create_inventory_records_initial_stock(
        self, inventory_service, db_session
    ):
        # Act
        inventory = await inventory_service.create_inventory("prod-1", 25, "admin-1")

        # Assert
        assert inventory.quantity == 25
        movements = await self._movements(db_session, inventory.id)
        assert len(movements) == 1
        assert movements[0].type == MovementType.IN
        assert movements[0].reason == "Initial stock"
        assert movements[0].quantity_after == 25

    @pytest.mark.asyncio
    async def test_create_inventory_without_stock_has_no_movement(
        self, inventory_service, db_session
    ):
        inventory = await inventory_service.create_inventory("prod-1", 0, "admin-1")

        assert inventory.quantity == 0
        assert await self._movements(db_session, inventory.id) == []

    @pytest.mark.asyncio
    async def test_create_inventory_twice_raises(self, inventory_service):
        await inventory_service.create_inventory("prod-1", 5, "admin-1")

        with pytest.raises(InventoryAlreadyExistsError):
            await inventory_service.create_inventory("prod-1", 5, "admin-1")

    @pytest.mark.asyncio
    async def test_get_unknown_inventory_raises(self, inventory_service):
        with pytest.raises(InventoryNotFoundError):
            await inventory_service.get_inventory_by_product("missing")

    @pytest.mark.asyncio
    async def test_adjust_inventory_commits_and_publishes(
        self, inventory_service, event_producer, session_factory
    ):
        # Arrange
        await inventory_service.create_inventory("prod-1", 10, "admin-1")

        # Act
        inventory, movement = await inventory_service.adjust_inventory(
            "prod-1",
            MovementType.OUT,
            3,
            user_id="user-1",
            reference="SO-9",
            correlation_id="corr-1",
        )

        # Assert
        assert inventory.quantity == 7
        assert movement.quantity == -3
        event_producer.publish_inventory_adjusted.assert_awaited_once_with(
            inventory_id=inventory.id,
            product_id="prod-1",
            old_quantity=10,
            new_quantity=7,
            movement_type="OUT",
            created_by="user-1",
            reference="SO-9",
            correlation_id="corr-1",
        )
        async with session_factory() as other:
            reloaded = await InventoryService(other).get_inventory_by_product("prod-1")
            assert reloaded.quantity == 7

    @pytest.mark.asyncio
    async def test_rejected_adjustment_is_not_published(
        self, inventory_service, event_producer, db_session
    ):
        # Arrange
        inventory = await inventory_service.create_inventory("prod-1", 2, "admin-1")
        inventory_id = inventory.id

        # Act
        with pytest.raises(InsufficientStockError):
            await inventory_service.adjust_inventory(
                "prod-1", MovementType.DAMAGE, 5, user_id="user-1"
            )

        # Assert
        event_producer.publish_inventory_adjusted.assert_not_awaited()
        reloaded = await inventory_service.get_inventory_by_product("prod-1")
        assert reloaded.quantity == 2
        assert len(await self._movements(db_session, inventory_id)) == 1

    @pytest.mark.asyncio
    async def test_adjust_without_producer(self, db_session):
        service = InventoryService(db_session)
        await service.create_inventory("prod-1", 1, "admin-1")

        inventory, _ = await service.adjust_inventory(
            "prod-1", MovementType.RETURN, 4, user_id="user-1"
        )

        assert inventory.quantity == 5

    @pytest.mark.asyncio
    async def test_movement_history_for_product(self, inventory_service):
        await inventory_service.create_inventory("prod-1", 10, "admin-1")
        await inventory_service.adjust_inventory(
            "prod-1", MovementType.ADJUSTMENT, -1, user_id="user-1", reason="Recount"
        )

        page = await inventory_service.get_movement_history("prod-1")

        assert page.total == 2
        assert page.items[0].reason == "Recount"

    @pytest.mark.asyncio
    async def test_deactivate_then_recreate_restores_row(self, inventory_service):
        # Arrange
        original = await inventory_service.create_inventory("prod-1", 4, "admin-1")
        await inventory_service.deactivate_inventory("prod-1", "admin-1")

        # Act
        with pytest.raises(InventoryNotFoundError):
            await inventory_service.get_inventory_by_product("prod-1")
        restored = await inventory_service.create_inventory("prod-1", 6, "admin-2")

        # Assert
        assert restored.id == original.id
        assert restored.quantity == 10
        assert restored.deleted_at is None

    @pytest.mark.asyncio
    async def test_deactivate_unknown_inventory_raises(self, inventory_service):
        with pytest.raises(InventoryNotFoundError):
            await inventory_service.deactivate_inventory("missing", "admin-1")

    @pytest.mark.asyncio
    async def test_movement_on_deleted_inventory_is_not_retryable(
        self, inventory_service
    ):
        await inventory_service.create_inventory("prod-1", 4, "admin-1")
        await inventory_service.deactivate_inventory("prod-1", "admin-1")

        with pytest.raises(InventoryDeletedError) as exc_info:
            await inventory_service.record_movement(
                "prod-1", MovementType.OUT, 1, created_by="system"
            )

        assert exc_info.value.retryable is False
        assert isinstance(exc_info.value, InventoryNotFoundError)

    @pytest.mark.asyncio
    async def test_movement_on_unknown_inventory_is_retryable(self, inventory_service):
        with pytest.raises(InventoryNotFoundError) as exc_info:
            await inventory_service.record_movement(
                "missing", MovementType.OUT, 1, created_by="system"
            )

        assert exc_info.value.retryable is True


class TestInventoryEventProducer:
    @pytest.mark.asyncio
    async def test_publishes_adjusted_event_to_inventory_topic(self):
        # Arrange
        publisher = Mock()
        publisher.publish = AsyncMock()
        producer = InventoryEventProducer(publisher)

        # Act
        await producer.publish_inventory_adjusted(
            inventory_id=1,
            product_id="prod-1",
            old_quantity=10,
            new_quantity=7,
            movement_type="OUT",
            created_by="user-1",
            correlation_id="corr-1",
        )

        # Assert
        event = publisher.publish.await_args.args[0]
        assert publisher.publish.await_args.kwargs["topic"] == "inventory.events"
        assert event.event_type == "inventory.adjusted"
        assert event.correlation_id == "corr-1"
        assert event.data["old_quantity"] == 10
        assert event.data["new_quantity"] == 7
