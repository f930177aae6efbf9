"""Inventory service for business logic"""

from typing import Any, Dict, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    InventoryAlreadyExistsError,
    InventoryDeletedError,
    InventoryNotFoundError,
)
from ..events.event_producers import InventoryEventProducer
from ..models.inventory import Inventory, InventoryMovement, MovementType
from ..repository.inventory_repository import InventoryRepository
from ..repository.pagination import Page
from ..utils.logging import setup_inventory_logging as setup_logging
from .inventory_ledger import InventoryLedger

logger = setup_logging("inventory_service.inventory")

INITIAL_STOCK_REASON = "Initial stock"


class InventoryService:
    """Service class for inventory business logic.

    Methods named after a use case commit; the ``provision``/``record``/
    ``remove`` helpers only flush so event handlers can run them inside the
    idempotency transaction.
    """

    def __init__(
        self, db: AsyncSession, event_producer: Optional[InventoryEventProducer] = None
    ):
        self.db = db
        self.repository = InventoryRepository(db)
        self.ledger = InventoryLedger(db)
        self.event_producer = event_producer

    async def provision_inventory(
        self, product_id: str, initial_quantity: int, created_by: str
    ) -> Tuple[Inventory, bool]:
        """Ensure an active inventory row exists for a product.

        Returns the row and whether it was created (or restored).
        """
        inventory = await self.repository.get_by_product_id(
            product_id, include_deleted=True
        )
        if inventory is not None and not inventory.is_deleted:
            return inventory, False

        if inventory is None:
            inventory = await self.repository.add(
                Inventory(product_id=product_id, quantity=0, created_by=created_by)
            )
        else:
            await self.repository.restore(inventory, created_by)

        if initial_quantity > 0:
            await self.ledger.apply_movement(
                inventory.id,
                MovementType.IN,
                initial_quantity,
                created_by=created_by,
                reason=INITIAL_STOCK_REASON,
            )
        return inventory, True

    async def record_movement(
        self,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        created_by: str,
        reason: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Inventory, InventoryMovement]:
        inventory = await self.repository.get_by_product_id(
            product_id, include_deleted=True
        )
        if inventory is None:
            raise InventoryNotFoundError(product_id=product_id)
        if inventory.is_deleted:
            raise InventoryDeletedError(product_id)

        movement = await self.ledger.apply_movement(
            inventory.id,
            movement_type,
            quantity,
            created_by=created_by,
            reason=reason,
            reference=reference,
            metadata=metadata,
        )
        return inventory, movement

    async def remove_inventory(
        self, product_id: str, deleted_by: str
    ) -> Optional[Inventory]:
        inventory = await self.repository.get_by_product_id(product_id)
        if inventory is None:
            return None
        return await self.repository.soft_delete(inventory, deleted_by)

    async def create_inventory(
        self,
        product_id: str,
        initial_quantity: int,
        user_id: str,
        correlation_id: Optional[str] = None,
    ) -> Inventory:
        """Create new inventory record"""
        existing = await self.repository.get_by_product_id(product_id)
        if existing is not None:
            raise InventoryAlreadyExistsError(product_id)

        try:
            inventory, _ = await self.provision_inventory(
                product_id, initial_quantity, user_id
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Failed to create inventory: {str(e)}",
                extra={
                    "product_id": product_id,
                    "user_id": user_id,
                    "correlation_id": correlation_id,
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        logger.info(
            "Inventory created successfully",
            extra={
                "inventory_id": inventory.id,
                "product_id": product_id,
                "quantity": inventory.quantity,
                "user_id": user_id,
                "correlation_id": correlation_id,
            },
        )
        return inventory

    async def get_inventory_by_product(
        self, product_id: str, correlation_id: Optional[str] = None
    ) -> Inventory:
        """Get inventory by product ID"""
        inventory = await self.repository.get_by_product_id(product_id)
        if inventory is None:
            raise InventoryNotFoundError(product_id=product_id)

        logger.info(
            "Inventory retrieved",
            extra={
                "product_id": product_id,
                "inventory_id": inventory.id,
                "correlation_id": correlation_id,
            },
        )
        return inventory

    async def adjust_inventory(
        self,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        user_id: str,
        reason: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[Union[str, int]] = None,
    ) -> Tuple[Inventory, InventoryMovement]:
        """Apply a stock movement and publish inventory.adjusted once committed"""
        try:
            inventory, movement = await self.record_movement(
                product_id,
                movement_type,
                quantity,
                created_by=user_id,
                reason=reason,
                reference=reference,
                metadata=metadata,
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Failed to adjust inventory: {str(e)}",
                extra={
                    "product_id": product_id,
                    "movement_type": str(movement_type),
                    "quantity": quantity,
                    "user_id": user_id,
                    "correlation_id": correlation_id,
                    "error": str(e),
                },
            )
            raise

        logger.info(
            "Inventory adjusted successfully",
            extra={
                "inventory_id": inventory.id,
                "product_id": product_id,
                "old_quantity": movement.quantity_before,
                "new_quantity": movement.quantity_after,
                "user_id": user_id,
                "correlation_id": correlation_id,
            },
        )

        if self.event_producer:
            await self.event_producer.publish_inventory_adjusted(
                inventory_id=inventory.id,
                product_id=inventory.product_id,
                old_quantity=movement.quantity_before,
                new_quantity=movement.quantity_after,
                movement_type=movement.type.value,
                created_by=user_id,
                reference=reference,
                correlation_id=correlation_id,
            )

        return inventory, movement

    async def get_movement_history(
        self, product_id: str, page: int = 1, limit: int = 50
    ) -> Page[InventoryMovement]:
        inventory = await self.get_inventory_by_product(product_id)
        return await self.ledger.get_movement_history(
            inventory.id, page=page, limit=limit
        )

    async def deactivate_inventory(
        self, product_id: str, deleted_by: str, correlation_id: Optional[str] = None
    ) -> Inventory:
        """Soft delete the inventory of a product"""
        try:
            inventory = await self.remove_inventory(product_id, deleted_by)
            if inventory is None:
                raise InventoryNotFoundError(product_id=product_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Inventory deactivated",
            extra={
                "inventory_id": inventory.id,
                "product_id": product_id,
                "deleted_by": deleted_by,
                "correlation_id": correlation_id,
            },
        )
        return inventory
