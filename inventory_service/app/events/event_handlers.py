"""
Inventory Service Event Handlers
================================

Domain reactions to product and order events. The consumer looks handlers
up by event type in the registry built by ``build_handler_registry``.
"""

from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import PoisonMessageError
from ..models.inventory import MovementType
from ..services.inventory_service import InventoryService
from ..utils.logging import setup_inventory_logging as setup_logging
from .base import EventHandler, IntegrationEvent
from .schemas import (
    ORDER_FULFILLED,
    PRODUCT_CREATED,
    PRODUCT_DELETED,
    PRODUCT_UPDATED,
    OrderFulfilledEventData,
    ProductCreatedEventData,
    ProductDeletedEventData,
    ProductUpdatedEventData,
)

logger = setup_logging("inventory_service.events.handlers")


class ProductCreatedHandler(EventHandler):
    """Create an inventory record for a new product"""

    event_type = PRODUCT_CREATED
    data_model = ProductCreatedEventData

    async def handle(
        self,
        data: ProductCreatedEventData,
        session: AsyncSession,
        event: IntegrationEvent,
    ) -> None:
        service = InventoryService(session)
        inventory, created = await service.provision_inventory(
            data.product_id, data.initial_quantity, data.created_by
        )

        if created:
            logger.info(
                "Inventory created for new product",
                extra={
                    "product_id": data.product_id,
                    "sku": data.sku,
                    "inventory_id": inventory.id,
                    "initial_quantity": data.initial_quantity,
                    "correlation_id": event.correlation_id,
                },
            )
        else:
            logger.info(
                "Inventory already exists for product",
                extra={"product_id": data.product_id, "inventory_id": inventory.id},
            )


class ProductUpdatedHandler(EventHandler):
    """Product updates carry no stock change; only logged"""

    event_type = PRODUCT_UPDATED
    data_model = ProductUpdatedEventData

    async def handle(
        self,
        data: ProductUpdatedEventData,
        session: AsyncSession,
        event: IntegrationEvent,
    ) -> None:
        logger.info(
            "Product updated",
            extra={
                "product_id": data.product_id,
                "changed_fields": sorted(data.changes.keys()),
                "correlation_id": event.correlation_id,
            },
        )


class ProductDeletedHandler(EventHandler):
    """Soft delete the inventory of a removed product"""

    event_type = PRODUCT_DELETED
    data_model = ProductDeletedEventData

    async def handle(
        self,
        data: ProductDeletedEventData,
        session: AsyncSession,
        event: IntegrationEvent,
    ) -> None:
        service = InventoryService(session)
        inventory = await service.remove_inventory(data.product_id, data.deleted_by)

        if inventory is None:
            logger.warning(
                "No active inventory for deleted product",
                extra={"product_id": data.product_id, "sku": data.sku},
            )
            return

        logger.info(
            "Inventory deactivated for deleted product",
            extra={
                "product_id": data.product_id,
                "inventory_id": inventory.id,
                "deleted_by": data.deleted_by,
                "correlation_id": event.correlation_id,
            },
        )


class OrderFulfilledHandler(EventHandler):
    """Take shipped quantities out of stock, one OUT movement per item"""

    event_type = ORDER_FULFILLED
    data_model = OrderFulfilledEventData

    async def handle(
        self,
        data: OrderFulfilledEventData,
        session: AsyncSession,
        event: IntegrationEvent,
    ) -> None:
        service = InventoryService(session)
        for item in data.items:
            await service.record_movement(
                item.product_id,
                MovementType.OUT,
                item.quantity,
                created_by=data.fulfilled_by,
                reason="Order fulfilled",
                reference=data.order_id,
                metadata={"event_type": event.event_type},
            )

        logger.info(
            "Stock deducted for fulfilled order",
            extra={
                "order_id": data.order_id,
                "items": len(data.items),
                "correlation_id": event.correlation_id,
            },
        )


def build_handler_registry() -> Dict[str, EventHandler]:
    """Dispatch table from event type to handler"""
    handlers = [
        ProductCreatedHandler(),
        ProductUpdatedHandler(),
        ProductDeletedHandler(),
        OrderFulfilledHandler(),
    ]
    return {handler.event_type: handler for handler in handlers}


def resolve_handler(
    registry: Dict[str, EventHandler], event: IntegrationEvent
) -> EventHandler:
    handler = registry.get(event.event_type)
    if handler is None:
        raise PoisonMessageError(
            f"No handler registered for event type {event.event_type}",
            details={"event_type": event.event_type},
        )
    return handler
