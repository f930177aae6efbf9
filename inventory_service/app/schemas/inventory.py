from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.inventory import MovementType


class InventoryCreate(BaseModel):
    initial_quantity: int = Field(default=0, ge=0)


class InventoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: str
    quantity: int
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InventoryAdjustment(BaseModel):
    """Schema for a stock movement request"""

    type: MovementType
    quantity: int = Field(
        ...,
        description="Positive magnitude, or a signed delta for ADJUSTMENT movements",
    )
    reason: Optional[str] = Field(default=None, max_length=500)
    reference: Optional[str] = Field(default=None, max_length=255)
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_quantity(self) -> "InventoryAdjustment":
        if self.type == MovementType.ADJUSTMENT:
            if self.quantity == 0:
                raise ValueError("quantity must be non-zero for ADJUSTMENT")
        elif self.quantity <= 0:
            raise ValueError(f"quantity must be positive for {self.type.value}")
        return self


class MovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    inventory_id: int
    type: MovementType
    quantity: int
    quantity_before: int
    quantity_after: int
    reason: Optional[str] = None
    reference: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias="movement_metadata"
    )
    created_by: str
    created_at: datetime


class InventoryAdjustmentResponse(BaseModel):
    inventory: InventoryResponse
    movement: MovementResponse


class MovementHistoryResponse(BaseModel):
    items: List[MovementResponse]
    total: int
    page: int
    limit: int
    pages: int
