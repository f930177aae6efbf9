"""
Inventory Service Event Management
Initializes and manages Kafka event publishing for the inventory service.
"""

from typing import Optional

from ..events.base.kafka_client import KafkaEventPublisher
from ..events.event_producers import InventoryEventProducer
from ..utils.logging import setup_inventory_logging as setup_logging
from .setting import get_settings

logger = setup_logging("inventory_service.events", log_level=get_settings().LOG_LEVEL)

# Global instances
_kafka_publisher: Optional[KafkaEventPublisher] = None
_inventory_event_producer: Optional[InventoryEventProducer] = None


async def init_events() -> None:
    """Initialize event publishing infrastructure"""
    global _kafka_publisher, _inventory_event_producer

    settings = get_settings()
    logger.info(
        "Initializing event publishing infrastructure",
        extra={
            "operation": "init_events",
            "kafka_servers": settings.KAFKA_BOOTSTRAP_SERVERS,
        },
    )

    _kafka_publisher = KafkaEventPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.KAFKA_CLIENT_ID}-producer",
        max_retries=settings.KAFKA_MAX_RETRIES,
        retry_delay=settings.KAFKA_RETRY_BACKOFF_MS / 1000,
        request_timeout_ms=settings.KAFKA_REQUEST_TIMEOUT_MS,
        enable_graceful_degradation=True,
    )
    await _kafka_publisher.start(timeout=30.0)
    _inventory_event_producer = InventoryEventProducer(_kafka_publisher)

    logger.info(
        "Event publishing infrastructure initialized",
        extra={
            "operation": "init_events_complete",
            "connected": _kafka_publisher.is_connected,
        },
    )


async def close_events() -> None:
    """Close event publishing infrastructure"""
    global _kafka_publisher, _inventory_event_producer

    try:
        if _kafka_publisher:
            await _kafka_publisher.stop()
            logger.info(
                "Event publishing infrastructure closed",
                extra={"operation": "close_events"},
            )
    finally:
        _kafka_publisher = None
        _inventory_event_producer = None


def get_event_producer() -> Optional[InventoryEventProducer]:
    """Get the inventory event producer instance"""
    return _inventory_event_producer


async def health_check_events() -> bool:
    """Check event publishing health"""
    if _kafka_publisher is None:
        return False
    return await _kafka_publisher.health_check()
