"""
Idempotency service.

Runs each inbound event's handler at most once per event id, even though
the bus may deliver the same event several times.
"""

import enum
import hashlib
import json
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DuplicateEventError
from ..events.base import IntegrationEvent
from ..models.processed_event import ProcessedEvent, ProcessingResult
from ..repository.pagination import Page
from ..repository.processed_event_repository import ProcessedEventRepository
from ..utils.logging import setup_inventory_logging as setup_logging

logger = setup_logging("inventory_service.idempotency")

EventCallback = Callable[[IntegrationEvent], Awaitable[Any]]


class ProcessingOutcome(str, enum.Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"


class IdempotencyService:
    """Exactly-once handler execution on top of the processed event store"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = ProcessedEventRepository(db)

    @staticmethod
    def generate_event_id(event: IntegrationEvent) -> str:
        """Dedup key for an event.

        The envelope's own id wins. Otherwise the SHA-256 of the canonical
        JSON of type and data, so redeliveries of the same content collide.
        """
        if event.event_id:
            return event.event_id

        canonical = json.dumps(
            {"eventType": event.event_type, "data": event.data},
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    async def is_event_processed(self, event_id: str) -> bool:
        return await self.repository.is_event_processed(event_id)

    async def process_event(
        self, event: IntegrationEvent, handler: EventCallback
    ) -> ProcessingOutcome:
        """Run ``handler`` for ``event`` unless it already succeeded.

        The handler's writes and the success record commit together. When a
        concurrent delivery records success first, the handler's writes are
        rolled back and the event counts as skipped. A handler exception is
        recorded as a failure and re-raised so the delivery is retried.
        """
        event_id = self.generate_event_id(event)
        log_context = {
            "event_id": event_id,
            "event_type": event.event_type,
            "correlation_id": event.correlation_id,
        }

        if await self.repository.is_event_processed(event_id, lock=True):
            await self.db.rollback()
            logger.info("Event already processed, skipping", extra=log_context)
            return ProcessingOutcome.SKIPPED

        try:
            await handler(event)
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Event handler failed: {str(e)}",
                extra={**log_context, "error": str(e)},
                exc_info=True,
            )
            if await self._record_failure(event_id, event, e):
                raise
            return ProcessingOutcome.SKIPPED

        try:
            await self.repository.record_processed_event(
                event_id=event_id,
                event_type=event.event_type,
                event_data=event.data,
                result=ProcessingResult.SUCCESS,
            )
        except DuplicateEventError:
            await self.db.rollback()
            logger.info(
                "Event processed concurrently by another consumer, changes discarded",
                extra=log_context,
            )
            return ProcessingOutcome.SKIPPED

        logger.info("Event processed successfully", extra=log_context)
        return ProcessingOutcome.PROCESSED

    async def _record_failure(
        self, event_id: str, event: IntegrationEvent, error: Exception
    ) -> bool:
        """Store a failure record. False when a success record already exists."""
        try:
            await self.repository.record_processed_event(
                event_id=event_id,
                event_type=event.event_type,
                event_data=event.data,
                result=ProcessingResult.FAILURE,
                error_message=str(error)[:2000],
            )
        except DuplicateEventError:
            await self.db.rollback()
            logger.info(
                "Failed event was processed concurrently by another consumer",
                extra={"event_id": event_id, "event_type": event.event_type},
            )
            return False
        except Exception as record_error:
            await self.db.rollback()
            logger.error(
                "Could not record event failure",
                extra={
                    "event_id": event_id,
                    "event_type": event.event_type,
                    "error": str(record_error),
                },
                exc_info=True,
            )
        return True

    async def get_event_history(
        self, event_type: Optional[str] = None, page: int = 1, limit: int = 100
    ) -> Page[ProcessedEvent]:
        return await self.repository.get_event_history(
            event_type=event_type, page=page, limit=limit
        )

    async def cleanup_old_events(self, retention_days: int = 30) -> int:
        """Delete processed event records older than ``retention_days``."""
        deleted = await self.repository.cleanup_old_events(retention_days)
        logger.info(
            "Old processed events cleaned up",
            extra={"retention_days": retention_days, "deleted_count": deleted},
        )
        return deleted
