from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Naive UTC timestamp, the format every Inventory Service column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class InventoryServiceBase(DeclarativeBase):
    """Base class for all Inventory Service database models."""

    pass


class InventoryServiceBaseModel(InventoryServiceBase):
    """Base model with common fields for Inventory Service."""

    __abstract__ = True
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utc_now, onupdate=utc_now, nullable=False
    )
