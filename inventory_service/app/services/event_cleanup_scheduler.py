"""
Scheduled retention cleanup for processed event records.

Runs as its own asyncio task, firing on a cron expression evaluated in a
configurable timezone. A failed run is logged and never stops the schedule.
"""

import asyncio
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from croniter import croniter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..utils.logging import setup_inventory_logging as setup_logging
from .idempotency_service import IdempotencyService

logger = setup_logging("inventory_service.scheduler")


class EventCleanupScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retention_days: int = 30,
        cron_expression: str = "0 2 * * *",
        timezone_name: str = "UTC",
        run_timeout: float = 300.0,
    ):
        if retention_days < 1:
            raise ValueError("retention_days must be at least 1")
        if not croniter.is_valid(cron_expression):
            raise ValueError(f"Invalid cron expression: {cron_expression!r}")

        self.session_factory = session_factory
        self.retention_days = retention_days
        self.cron_expression = cron_expression
        self.timezone = ZoneInfo(timezone_name)
        self.run_timeout = run_timeout
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run_time(self, now: Optional[datetime] = None) -> datetime:
        """Next fire time after ``now`` in the scheduler's timezone"""
        if now is None:
            now = datetime.now(self.timezone)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=self.timezone)
        else:
            now = now.astimezone(self.timezone)
        return croniter(self.cron_expression, now).get_next(datetime)

    async def run_cleanup(self) -> Optional[int]:
        """Run one cleanup pass. Returns the deleted count, or None on failure."""
        started = datetime.now(self.timezone)
        try:
            async with self.session_factory() as session:
                service = IdempotencyService(session)
                deleted = await asyncio.wait_for(
                    service.cleanup_old_events(self.retention_days),
                    timeout=self.run_timeout,
                )
        except asyncio.TimeoutError:
            logger.error(
                "Processed event cleanup timed out",
                extra={
                    "retention_days": self.retention_days,
                    "timeout_seconds": self.run_timeout,
                },
            )
            return None
        except Exception as e:
            logger.error(
                f"Processed event cleanup failed: {str(e)}",
                extra={"retention_days": self.retention_days, "error": str(e)},
                exc_info=True,
            )
            return None

        logger.info(
            "Processed event cleanup completed",
            extra={
                "retention_days": self.retention_days,
                "deleted_count": deleted,
                "duration_ms": int(
                    (datetime.now(self.timezone) - started).total_seconds() * 1000
                ),
            },
        )
        return deleted

    async def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_forever())
        logger.info(
            "Event cleanup scheduler started",
            extra={
                "cron": self.cron_expression,
                "timezone": str(self.timezone),
                "retention_days": self.retention_days,
                "next_run": self.next_run_time().isoformat(),
            },
        )

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Event cleanup scheduler stopped")

    async def _run_forever(self) -> None:
        while not self._stop_event.is_set():
            now = datetime.now(self.timezone)
            delay = max((self.next_run_time(now) - now).total_seconds(), 0.0)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                return
            except asyncio.TimeoutError:
                pass
            await self.run_cleanup()
