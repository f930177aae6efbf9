import enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import InventoryServiceBase, utc_now


class ProcessingResult(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class ProcessedEvent(InventoryServiceBase):
    """Idempotency record, one row per inbound event id."""

    __tablename__ = "processed_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    event_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utc_now, nullable=False
    )
    processing_result: Mapped[ProcessingResult] = mapped_column(
        Enum(
            ProcessingResult,
            name="processing_result",
            native_enum=False,
            length=50,
            values_callable=lambda e: [member.value for member in e],
        ),
        default=ProcessingResult.SUCCESS,
        nullable=False,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_processed_events_event_id", "event_id"),
        Index("idx_processed_events_event_type", "event_type"),
        Index("idx_processed_events_type_created", "event_type", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProcessedEvent event_id={self.event_id} "
            f"type={self.event_type} result={self.processing_result}>"
        )
