"""
Kafka client plumbing shared by the inventory publisher and consumer.
"""

import asyncio
from typing import Any, Dict, Optional

from aiokafka import AIOKafkaProducer  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore

from ...core.setting import get_settings
from ...utils.logging import setup_inventory_logging as setup_logging
from . import BaseEvent, EventPublisher

settings = get_settings()
logger = setup_logging("inventory_service.events.kafka", log_level=settings.LOG_LEVEL)


def topic_for_event(event_type: str) -> str:
    """Every event this service emits goes to the inventory topic"""
    routes: Dict[str, str] = {
        "inventory.adjusted": settings.KAFKA_TOPIC_INVENTORY_EVENTS,
    }
    return routes.get(event_type, settings.KAFKA_TOPIC_INVENTORY_EVENTS)


async def start_with_backoff(
    client: Any,
    role: str,
    max_retries: int,
    base_delay: float,
    timeout: float = 30.0,
    context: Optional[Dict[str, Any]] = None,
) -> bool:
    """Start an aiokafka client, doubling the delay after each failed attempt.

    Returns False once every attempt has failed.
    """
    for attempt in range(max_retries):
        try:
            logger.info(
                f"Connecting Kafka {role}",
                extra={
                    **(context or {}),
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "operation": f"{role}_connect",
                },
            )
            await asyncio.wait_for(client.start(), timeout=timeout)
            logger.info(f"Kafka {role} connected", extra={"attempts": attempt + 1})
            return True
        except (KafkaConnectionError, asyncio.TimeoutError) as e:
            if attempt == max_retries - 1:
                break
            delay = base_delay * (2**attempt)
            logger.warning(
                f"Kafka {role} connection failed, retrying in {delay:.1f}s: {e}",
                extra={"attempt": attempt + 1, "operation": f"{role}_connect"},
            )
            await asyncio.sleep(delay)
    return False


class KafkaEventPublisher(EventPublisher):
    """aiokafka producer for inventory events.

    When Kafka cannot be reached and graceful degradation is on, events are
    written to the log instead of failing the caller.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        max_retries: int = 10,
        retry_delay: float = 0.3,
        request_timeout_ms: int = 30000,
        enable_graceful_degradation: bool = True,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.request_timeout_ms = request_timeout_ms
        self.enable_graceful_degradation = enable_graceful_degradation
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False
        self._lock = asyncio.Lock()

    async def start(self, timeout: float = 30.0) -> None:
        async with self._lock:
            if self.is_connected:
                return

            self.producer = AIOKafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                client_id=self.client_id,
                key_serializer=lambda key: key.encode("utf-8") if key else None,  # type: ignore
                request_timeout_ms=self.request_timeout_ms,
                acks="all",
            )
            self.is_connected = await start_with_backoff(
                self.producer,
                "producer",
                self.max_retries,
                self.retry_delay,
                timeout=timeout,
            )
            if self.is_connected:
                return

            logger.error(
                "Kafka producer unavailable, inventory events will only be logged",
                extra={
                    "bootstrap_servers": self.bootstrap_servers,
                    "max_retries": self.max_retries,
                },
            )
            if not self.enable_graceful_degradation:
                raise KafkaConnectionError(
                    f"Could not connect to Kafka at {self.bootstrap_servers}"
                )

    async def stop(self) -> None:
        async with self._lock:
            producer, self.producer = self.producer, None
            self.is_connected = False
            if producer is None:
                return
            try:
                await producer.stop()  # type: ignore
            except KafkaError as e:
                logger.warning(
                    "Kafka producer did not stop cleanly",
                    extra={"error": str(e), "operation": "producer_stop"},
                )
            else:
                logger.info("Kafka producer stopped")

    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        """Send one event, keyed by product so a product's events stay ordered"""
        log_context = {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "correlation_id": event.correlation_id,
        }

        if not (self.is_connected and self.producer):
            if not self.enable_graceful_degradation:
                raise KafkaConnectionError("Kafka producer not connected")
            logger.warning(
                "Kafka unavailable, event logged instead of published",
                extra={**log_context, "event": event.model_dump(mode="json")},
            )
            return

        topic = topic or topic_for_event(event.event_type)
        key = str(event.data.get("product_id") or event.event_id)
        try:
            await self.producer.send_and_wait(  # type: ignore
                topic=topic,
                value=event.model_dump_json().encode("utf-8"),
                key=key,
            )
        except KafkaError as e:
            logger.error(
                f"Publishing {event.event_type} failed: {e}",
                extra={**log_context, "topic": topic, "operation": "publish_failed"},
            )
            if not self.enable_graceful_degradation:
                raise
            return

        logger.info(
            "Event published",
            extra={**log_context, "topic": topic, "key": key, "operation": "publish"},
        )

    async def health_check(self) -> bool:
        if not (self.is_connected and self.producer):
            return False
        try:
            await self.producer.client.fetch_all_metadata()  # type: ignore
        except KafkaError as e:
            logger.warning(
                "Kafka metadata fetch failed",
                extra={"error": str(e), "operation": "health_check"},
            )
            return False
        return True
