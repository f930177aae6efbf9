"""Idempotency store: persistent record of processed event ids"""

from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DuplicateEventError, EventRecordConflictError
from ..models.base import utc_now
from ..models.processed_event import ProcessedEvent, ProcessingResult
from .pagination import Page


class ProcessedEventRepository:
    """Repository for processed event records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_event_id(
        self, event_id: str, lock: bool = False
    ) -> Optional[ProcessedEvent]:
        """Get the processing record for an event id"""
        query = select(ProcessedEvent).where(ProcessedEvent.event_id == event_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def is_event_processed(self, event_id: str, lock: bool = False) -> bool:
        """True only when the event has a successful processing record"""
        record = await self.get_by_event_id(event_id, lock=lock)
        return (
            record is not None
            and record.processing_result == ProcessingResult.SUCCESS
        )

    async def record_processed_event(
        self,
        event_id: str,
        event_type: str,
        event_data: Optional[Dict[str, Any]] = None,
        result: ProcessingResult = ProcessingResult.SUCCESS,
        error_message: Optional[str] = None,
    ) -> ProcessedEvent:
        """
        Persist the outcome of processing an event and commit.

        Anything already pending on the session (handler writes) is committed
        in the same transaction. A previous failure record is superseded in
        place; a previous success raises DuplicateEventError.
        """
        existing = await self.get_by_event_id(event_id, lock=True)
        if existing is not None:
            if existing.processing_result == ProcessingResult.SUCCESS:
                raise DuplicateEventError(event_id)

            existing.event_type = event_type
            existing.event_data = event_data
            existing.processing_result = result
            existing.error_message = error_message
            record = existing
        else:
            record = ProcessedEvent(
                event_id=event_id,
                event_type=event_type,
                event_data=event_data,
                processing_result=result,
                error_message=error_message,
            )
            self.db.add(record)

        try:
            await self.db.commit()
        except IntegrityError:
            # Unique key on event_id: a concurrent delivery recorded it first
            await self.db.rollback()
            if await self.is_event_processed(event_id):
                raise DuplicateEventError(event_id)
            raise EventRecordConflictError(event_id)

        return record

    async def get_event_history(
        self, event_type: Optional[str] = None, page: int = 1, limit: int = 100
    ) -> Page[ProcessedEvent]:
        """Processed events, newest first"""
        query = select(ProcessedEvent)
        count_query = select(func.count()).select_from(ProcessedEvent)
        if event_type:
            query = query.where(ProcessedEvent.event_type == event_type)
            count_query = count_query.where(ProcessedEvent.event_type == event_type)

        total = (await self.db.execute(count_query)).scalar_one()

        query = (
            query.order_by(ProcessedEvent.created_at.desc(), ProcessedEvent.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return Page(items=list(result.scalars().all()), total=total, page=page, limit=limit)

    async def cleanup_old_events(self, retention_days: int) -> int:
        """Delete records older than the retention window, returning the count"""
        if retention_days < 1:
            raise ValueError("retention_days must be at least 1")

        cutoff = utc_now() - timedelta(days=retention_days)
        result = await self.db.execute(
            delete(ProcessedEvent).where(ProcessedEvent.created_at < cutoff)
        )
        await self.db.commit()
        return result.rowcount or 0
