"""
Inventory Service Event Schemas
===============================

Payload schemas for the events this service consumes and publishes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Event type constants
PRODUCT_CREATED = "product.created"
PRODUCT_UPDATED = "product.updated"
PRODUCT_DELETED = "product.deleted"
ORDER_FULFILLED = "order.fulfilled"
INVENTORY_ADJUSTED = "inventory.adjusted"


class InboundEventData(BaseModel):
    """Base for consumed payloads; producers send camelCase or snake_case keys"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("product_id", mode="before", check_fields=False)
    @classmethod
    def coerce_product_id(cls, value: Any) -> Any:
        # Product ids arrive as integers from some producers
        if isinstance(value, int):
            return str(value)
        return value


class ProductCreatedEventData(InboundEventData):
    product_id: str = Field(min_length=1, alias="productId")
    name: str
    sku: str
    category: Optional[str] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    initial_quantity: int = Field(default=0, ge=0, alias="initialQuantity")
    created_by: str = Field(default="system", alias="createdBy")


class ProductUpdatedEventData(InboundEventData):
    product_id: str = Field(min_length=1, alias="productId")
    changes: Dict[str, Any] = {}


class ProductDeletedEventData(InboundEventData):
    product_id: str = Field(min_length=1, alias="productId")
    sku: Optional[str] = None
    deleted_by: str = Field(default="system", alias="deletedBy")


class FulfilledItem(InboundEventData):
    product_id: str = Field(min_length=1, alias="productId")
    quantity: int = Field(gt=0)


class OrderFulfilledEventData(InboundEventData):
    order_id: str = Field(min_length=1, alias="orderId")
    items: List[FulfilledItem] = Field(min_length=1)
    fulfilled_by: str = Field(default="system", alias="fulfilledBy")

    @field_validator("order_id", mode="before")
    @classmethod
    def coerce_order_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class InventoryAdjustedEventData(BaseModel):
    """Payload of the inventory.adjusted event"""

    inventory_id: int
    product_id: str
    old_quantity: int
    new_quantity: int
    movement_type: str
    created_by: str
    reference: Optional[str] = None
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
