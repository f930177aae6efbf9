"""Inventory repository for database operations

Methods only flush; the calling service owns the transaction.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utc_now
from ..models.inventory import Inventory, InventoryMovement
from .pagination import Page


class InventoryRepository:
    """Repository for inventory and movement database operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(
        self, inventory_id: int, lock: bool = False
    ) -> Optional[Inventory]:
        """Get inventory by ID, optionally taking a row lock"""
        query = select(Inventory).where(Inventory.id == inventory_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_product_id(
        self, product_id: str, include_deleted: bool = False
    ) -> Optional[Inventory]:
        """Get inventory by product ID"""
        query = select(Inventory).where(Inventory.product_id == product_id)
        if not include_deleted:
            query = query.where(Inventory.deleted_at.is_(None))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add(self, inventory: Inventory) -> Inventory:
        self.db.add(inventory)
        await self.db.flush()
        return inventory

    async def soft_delete(self, inventory: Inventory, deleted_by: str) -> Inventory:
        inventory.deleted_at = utc_now()
        inventory.deleted_by = deleted_by
        inventory.updated_by = deleted_by
        await self.db.flush()
        return inventory

    async def restore(self, inventory: Inventory, restored_by: str) -> Inventory:
        inventory.deleted_at = None
        inventory.deleted_by = None
        inventory.updated_by = restored_by
        await self.db.flush()
        return inventory

    async def add_movement(self, movement: InventoryMovement) -> InventoryMovement:
        self.db.add(movement)
        await self.db.flush()
        return movement

    async def get_movements(
        self, inventory_id: int, page: int = 1, limit: int = 50
    ) -> Page[InventoryMovement]:
        """Movements for an inventory row, newest first"""
        total = (
            await self.db.execute(
                select(func.count())
                .select_from(InventoryMovement)
                .where(InventoryMovement.inventory_id == inventory_id)
            )
        ).scalar_one()

        result = await self.db.execute(
            select(InventoryMovement)
            .where(InventoryMovement.inventory_id == inventory_id)
            .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return Page(items=list(result.scalars().all()), total=total, page=page, limit=limit)

    async def get_all_movements_chronological(self, inventory_id: int):
        """Every movement for an inventory row in application order"""
        result = await self.db.execute(
            select(InventoryMovement)
            .where(InventoryMovement.inventory_id == inventory_id)
            .order_by(InventoryMovement.created_at.asc(), InventoryMovement.id.asc())
        )
        return list(result.scalars().all())
