"""
Inventory Service Event Consumer
================================

Reads product and order events from Kafka and runs them through the
idempotency service. Offsets are committed manually, and only once a record
is either processed, skipped as a duplicate, or classified as poison. A
retryable failure seeks the partition back so the record is redelivered.
"""

import asyncio
import json
from functools import partial
from typing import Any, Dict, List, Optional

from aiokafka import AIOKafkaConsumer, TopicPartition  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.exceptions import InventoryServiceError, PoisonMessageError
from ..core.setting import get_settings
from ..services.idempotency_service import IdempotencyService, ProcessingOutcome
from ..utils.logging import setup_inventory_logging as setup_logging
from .base import EventHandler, IntegrationEvent
from .base.kafka_client import start_with_backoff
from .event_handlers import resolve_handler

settings = get_settings()
logger = setup_logging(
    "inventory_service.events.consumer", log_level=settings.LOG_LEVEL
)


class InventoryEventConsumer:
    """Kafka consumer driving the inventory event handlers"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        handlers: Dict[str, EventHandler],
        topics: List[str],
        bootstrap_servers: str,
        group_id: str,
        client_id: str,
        retry_backoff_seconds: float = 0.3,
        max_retries: int = 10,
        poll_timeout_ms: int = 1000,
    ):
        self.session_factory = session_factory
        self.handlers = handlers
        self.topics = topics
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.client_id = client_id
        self.retry_backoff_seconds = retry_backoff_seconds
        self.max_retries = max_retries
        self.poll_timeout_ms = poll_timeout_ms
        self.consumer: Optional[AIOKafkaConsumer] = None
        self.is_running = False
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def start(self, timeout: float = 30.0) -> None:
        """Connect with exponential backoff and start the consume loop"""
        self.consumer = AIOKafkaConsumer(
            *self.topics,
            bootstrap_servers=self.bootstrap_servers,
            group_id=self.group_id,
            client_id=self.client_id,
            enable_auto_commit=False,
            auto_offset_reset="earliest",
            session_timeout_ms=settings.KAFKA_SESSION_TIMEOUT_MS,
            heartbeat_interval_ms=settings.KAFKA_HEARTBEAT_INTERVAL_MS,
            request_timeout_ms=settings.KAFKA_REQUEST_TIMEOUT_MS,
        )

        connected = await start_with_backoff(
            self.consumer,
            "consumer",
            self.max_retries,
            self.retry_backoff_seconds,
            timeout=timeout,
            context={"topics": self.topics, "group_id": self.group_id},
        )
        if not connected:
            raise KafkaConnectionError(
                f"Could not connect consumer to Kafka at {self.bootstrap_servers}"
            )

        self._stop_event.clear()
        self.is_running = True
        self._task = asyncio.create_task(self._consume_loop())
        logger.info(
            "Inventory event consumer started",
            extra={"topics": self.topics, "handlers": sorted(self.handlers)},
        )

    async def stop(self) -> None:
        """Finish the in-flight record, then leave the consumer group"""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

        if self.consumer is not None:
            try:
                await self.consumer.stop()  # type: ignore
            except KafkaError as e:
                logger.warning(
                    "Error stopping Kafka consumer",
                    extra={"error": str(e), "operation": "stop_consumer"},
                )
            self.consumer = None

        self.is_running = False
        logger.info("Inventory event consumer stopped")

    async def _consume_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                batches = await self.consumer.getmany(timeout_ms=self.poll_timeout_ms)  # type: ignore
            except KafkaError as e:
                logger.error(
                    "Kafka fetch failed",
                    extra={"error": str(e), "operation": "consumer_fetch"},
                )
                await self._backoff()
                continue

            for records in batches.values():
                for message in records:
                    if self._stop_event.is_set():
                        return
                    if not await self.handle_message(message):
                        # Partition rewound; the rest of this batch comes again
                        await self._backoff()
                        break

    async def _backoff(self) -> None:
        try:
            await asyncio.wait_for(
                self._stop_event.wait(), timeout=self.retry_backoff_seconds
            )
        except asyncio.TimeoutError:
            pass

    def decode_event(self, raw_value: Any) -> IntegrationEvent:
        """Deserialize a record value into an event envelope"""
        try:
            if isinstance(raw_value, (bytes, bytearray)):
                raw_value = raw_value.decode("utf-8")
            payload = json.loads(raw_value) if isinstance(raw_value, str) else raw_value
            return IntegrationEvent.model_validate(payload)
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise PoisonMessageError(f"Malformed event message: {e}")

    async def handle_message(self, message: Any) -> bool:
        """Process one Kafka record.

        Returns True when the offset was committed and False when the
        partition was rewound for redelivery.
        """
        tp = TopicPartition(message.topic, message.partition)
        log_context = {
            "topic": message.topic,
            "partition": message.partition,
            "offset": message.offset,
        }

        try:
            event = self.decode_event(message.value)
            log_context["event_type"] = event.event_type
            handler = resolve_handler(self.handlers, event)
            try:
                data = handler.data_model.model_validate(event.data)
            except ValidationError as e:
                raise PoisonMessageError(
                    f"Invalid {event.event_type} payload: {e}"
                )

            async with self.session_factory() as session:
                service = IdempotencyService(session)
                outcome = await service.process_event(
                    event, partial(handler.handle, data, session)
                )
            log_context["outcome"] = outcome.value

        except PoisonMessageError as e:
            logger.error(
                f"Discarding poison message: {e.message}",
                extra={**log_context, "error_code": e.error_code},
            )
            outcome = None
        except InventoryServiceError as e:
            if e.retryable:
                return await self._rewind(tp, message.offset, e, log_context)
            logger.error(
                f"Event rejected by domain rules, discarding: {e.message}",
                extra={**log_context, "error_code": e.error_code},
            )
            outcome = None
        except Exception as e:
            return await self._rewind(tp, message.offset, e, log_context)

        try:
            await self.consumer.commit({tp: message.offset + 1})  # type: ignore
        except KafkaError as e:
            # Revoked partition: the next owner redelivers from the last commit
            logger.warning(
                f"Offset commit failed: {e}",
                extra={**log_context, "operation": "consumer_commit"},
            )
            return True

        if outcome == ProcessingOutcome.PROCESSED:
            logger.info("Event message processed", extra=log_context)
        elif outcome == ProcessingOutcome.SKIPPED:
            logger.info("Duplicate event message acknowledged", extra=log_context)
        return True

    async def _rewind(
        self,
        tp: TopicPartition,
        offset: int,
        error: Exception,
        log_context: Dict[str, Any],
    ) -> bool:
        logger.warning(
            f"Event processing failed, will be redelivered: {error}",
            extra={**log_context, "error_type": type(error).__name__},
        )
        try:
            self.consumer.seek(tp, offset)  # type: ignore
        except KafkaError as e:
            logger.warning(
                f"Seek failed, partition no longer assigned: {e}",
                extra={**log_context, "operation": "consumer_seek"},
            )
        return False
