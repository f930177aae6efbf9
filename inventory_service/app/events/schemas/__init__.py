"""
Inventory Service Event Schemas
"""

from .event_schemas import (
    INVENTORY_ADJUSTED,
    ORDER_FULFILLED,
    PRODUCT_CREATED,
    PRODUCT_DELETED,
    PRODUCT_UPDATED,
    FulfilledItem,
    InventoryAdjustedEventData,
    OrderFulfilledEventData,
    ProductCreatedEventData,
    ProductDeletedEventData,
    ProductUpdatedEventData,
)

__all__ = [
    "PRODUCT_CREATED",
    "PRODUCT_UPDATED",
    "PRODUCT_DELETED",
    "ORDER_FULFILLED",
    "INVENTORY_ADJUSTED",
    "FulfilledItem",
    "InventoryAdjustedEventData",
    "OrderFulfilledEventData",
    "ProductCreatedEventData",
    "ProductDeletedEventData",
    "ProductUpdatedEventData",
]
