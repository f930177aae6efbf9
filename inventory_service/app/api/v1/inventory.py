"""Inventory API endpoints"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, status

from ...schemas.inventory import (
    InventoryAdjustment,
    InventoryAdjustmentResponse,
    InventoryCreate,
    InventoryResponse,
    MovementHistoryResponse,
    MovementResponse,
)
from ...services.inventory_service import InventoryService
from ..dependencies import (
    AdminUserDep,
    AuthenticatedUserDep,
    CorrelationIdDep,
    InventoryServiceDep,
)

router = APIRouter(prefix="/inventory")


@router.get("/products/{product_id}", response_model=InventoryResponse)
async def get_product_inventory(
    product_id: str,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
    user: Dict[str, Any] = AuthenticatedUserDep,
):
    """Get inventory for a specific product"""
    inventory = await service.get_inventory_by_product(
        product_id, correlation_id=correlation_id
    )
    return InventoryResponse.model_validate(inventory)


@router.post(
    "/products/{product_id}",
    response_model=InventoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_product_inventory(
    product_id: str,
    inventory_data: InventoryCreate,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
    user: Dict[str, Any] = AdminUserDep,
):
    """Create inventory for a product (admin only)"""
    inventory = await service.create_inventory(
        product_id,
        inventory_data.initial_quantity,
        user_id=user["user_id"],
        correlation_id=correlation_id,
    )
    return InventoryResponse.model_validate(inventory)


@router.post(
    "/products/{product_id}/adjust", response_model=InventoryAdjustmentResponse
)
async def adjust_product_inventory(
    product_id: str,
    adjustment: InventoryAdjustment,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
    user: Dict[str, Any] = AuthenticatedUserDep,
):
    """Apply a stock movement to a product's inventory"""
    inventory, movement = await service.adjust_inventory(
        product_id,
        adjustment.type,
        adjustment.quantity,
        user_id=user["user_id"],
        reason=adjustment.reason,
        reference=adjustment.reference,
        metadata=adjustment.metadata,
        correlation_id=correlation_id,
    )
    return InventoryAdjustmentResponse(
        inventory=InventoryResponse.model_validate(inventory),
        movement=MovementResponse.model_validate(movement),
    )


@router.get(
    "/products/{product_id}/movements", response_model=MovementHistoryResponse
)
async def get_movement_history(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    service: InventoryService = InventoryServiceDep,
    user: Dict[str, Any] = AuthenticatedUserDep,
):
    """Movement history for a product, newest first"""
    history = await service.get_movement_history(product_id, page=page, limit=limit)
    return MovementHistoryResponse(
        items=[MovementResponse.model_validate(item) for item in history.items],
        total=history.total,
        page=history.page,
        limit=history.limit,
        pages=history.pages,
    )


@router.delete("/products/{product_id}", response_model=InventoryResponse)
async def deactivate_product_inventory(
    product_id: str,
    correlation_id: Optional[str] = CorrelationIdDep,
    service: InventoryService = InventoryServiceDep,
    user: Dict[str, Any] = AdminUserDep,
):
    """Soft delete a product's inventory (admin only)"""
    inventory = await service.deactivate_inventory(
        product_id, deleted_by=user["user_id"], correlation_id=correlation_id
    )
    return InventoryResponse.model_validate(inventory)
