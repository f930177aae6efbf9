import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import InventoryServiceBase, InventoryServiceBaseModel, utc_now


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    RETURN = "RETURN"
    DAMAGE = "DAMAGE"
    ADJUSTMENT = "ADJUSTMENT"


class Inventory(InventoryServiceBaseModel):
    __tablename__ = "inventory"

    product_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    deleted_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    movements: Mapped[List["InventoryMovement"]] = relationship(
        back_populates="inventory", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="inventory_quantity_non_negative"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class InventoryMovement(InventoryServiceBase):
    """Immutable record of a single quantity change."""

    __tablename__ = "inventory_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inventory_id: Mapped[int] = mapped_column(
        ForeignKey("inventory.id", ondelete="RESTRICT"), nullable=False
    )
    type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, name="movement_type", native_enum=False, length=20),
        nullable=False,
    )
    # Signed delta actually applied to the inventory quantity
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    quantity_before: Mapped[int] = mapped_column(BigInteger, nullable=False)
    quantity_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    movement_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utc_now, nullable=False
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    inventory: Mapped[Inventory] = relationship(
        back_populates="movements", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint(
            "quantity_after = quantity_before + quantity",
            name="inventory_movement_balanced",
        ),
        CheckConstraint(
            "quantity_after >= 0", name="inventory_movement_non_negative"
        ),
        Index("idx_inventory_movements_inventory_id", "inventory_id"),
        Index("idx_inventory_movements_type", "type"),
        Index("idx_inventory_movements_created_at", "created_at"),
        Index("idx_inventory_movements_reference", "reference"),
    )
