"""
Inventory movement ledger.

Every quantity change goes through ``apply_movement``, which appends an
immutable movement row next to the updated inventory row in the caller's
transaction. The movement log of an inventory row always folds back to its
current quantity.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    InsufficientStockError,
    InvalidMovementError,
    InventoryNotFoundError,
    LedgerIntegrityError,
)
from ..models.inventory import InventoryMovement, MovementType
from ..repository.inventory_repository import InventoryRepository
from ..repository.pagination import Page
from ..utils.logging import setup_inventory_logging as setup_logging

logger = setup_logging("inventory_service.ledger")

INCREASING_MOVEMENTS = {MovementType.IN, MovementType.RETURN}
DECREASING_MOVEMENTS = {MovementType.OUT, MovementType.DAMAGE}


def signed_delta(movement_type: MovementType, quantity: int) -> int:
    """Translate a movement type and quantity into the delta applied to stock.

    IN/RETURN/OUT/DAMAGE take a positive magnitude; ADJUSTMENT takes the
    signed delta itself.
    """
    try:
        movement_type = MovementType(movement_type)
    except ValueError:
        raise InvalidMovementError(f"Unknown movement type: {movement_type}")

    if movement_type == MovementType.ADJUSTMENT:
        if quantity == 0:
            raise InvalidMovementError("Adjustment quantity must be non-zero")
        return quantity

    if quantity <= 0:
        raise InvalidMovementError(
            f"{movement_type.value} movement quantity must be positive"
        )
    if movement_type in INCREASING_MOVEMENTS:
        return quantity
    return -quantity


class InventoryLedger:
    """Append-only stock-change log backed by ``inventory_movements``"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = InventoryRepository(db)

    async def apply_movement(
        self,
        inventory_id: int,
        movement_type: MovementType,
        quantity: int,
        created_by: str,
        reason: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> InventoryMovement:
        """Change an inventory quantity and append the matching movement.

        Flushes but never commits. Raises InsufficientStockError before
        touching either row when the result would be negative.
        """
        delta = signed_delta(movement_type, quantity)

        inventory = await self.repository.get_by_id(inventory_id, lock=True)
        if inventory is None or inventory.is_deleted:
            raise InventoryNotFoundError(inventory_id=inventory_id)

        quantity_before = inventory.quantity
        quantity_after = quantity_before + delta
        if quantity_after < 0:
            logger.warning(
                "Movement rejected for insufficient stock",
                extra={
                    "inventory_id": inventory_id,
                    "movement_type": MovementType(movement_type).value,
                    "available": quantity_before,
                    "requested": abs(delta),
                    "reference": reference,
                },
            )
            raise InsufficientStockError(inventory_id, quantity_before, abs(delta))

        inventory.quantity = quantity_after
        inventory.updated_by = created_by

        movement = InventoryMovement(
            inventory_id=inventory_id,
            type=MovementType(movement_type),
            quantity=delta,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            reason=reason,
            reference=reference,
            movement_metadata=metadata,
            created_by=created_by,
        )
        await self.repository.add_movement(movement)

        logger.info(
            "Inventory movement applied",
            extra={
                "inventory_id": inventory_id,
                "movement_id": movement.id,
                "movement_type": movement.type.value,
                "quantity_before": quantity_before,
                "quantity_after": quantity_after,
                "reference": reference,
                "created_by": created_by,
            },
        )
        return movement

    async def get_movement_history(
        self, inventory_id: int, page: int = 1, limit: int = 50
    ) -> Page[InventoryMovement]:
        return await self.repository.get_movements(inventory_id, page=page, limit=limit)

    async def replay(self, inventory_id: int) -> int:
        """Fold the movement log and return the quantity it implies."""
        movements = await self.repository.get_all_movements_chronological(inventory_id)

        quantity = 0
        for movement in movements:
            if movement.quantity_before != quantity:
                raise LedgerIntegrityError(
                    f"Movement {movement.id} starts at {movement.quantity_before}, "
                    f"expected {quantity}",
                    details={"inventory_id": inventory_id, "movement_id": movement.id},
                )
            if movement.quantity_after != movement.quantity_before + movement.quantity:
                raise LedgerIntegrityError(
                    f"Movement {movement.id} is unbalanced",
                    details={"inventory_id": inventory_id, "movement_id": movement.id},
                )
            quantity = movement.quantity_after

        return quantity

    async def verify(self, inventory_id: int) -> int:
        """Replay the log and check it against the stored quantity."""
        inventory = await self.repository.get_by_id(inventory_id)
        if inventory is None:
            raise InventoryNotFoundError(inventory_id=inventory_id)

        replayed = await self.replay(inventory_id)
        if replayed != inventory.quantity:
            raise LedgerIntegrityError(
                f"Inventory {inventory_id} holds {inventory.quantity} "
                f"but its movements add up to {replayed}",
                details={"inventory_id": inventory_id},
            )
        return replayed
