"""
Inventory Service Event Producers
=================================

Publishes inventory events to other microservices.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from ..core.setting import get_settings
from ..utils.logging import setup_inventory_logging as setup_logging
from .base import BaseEvent
from .base.kafka_client import KafkaEventPublisher
from .schemas import INVENTORY_ADJUSTED, InventoryAdjustedEventData

settings = get_settings()
logger = setup_logging(
    "inventory_service.events.producers", log_level=settings.LOG_LEVEL
)


class InventoryEventProducer:
    """Inventory service event producer"""

    def __init__(self, kafka_publisher: KafkaEventPublisher):
        self.kafka_publisher = kafka_publisher

    async def publish_inventory_adjusted(
        self,
        inventory_id: int,
        product_id: str,
        old_quantity: int,
        new_quantity: int,
        movement_type: str,
        created_by: str,
        reference: Optional[str] = None,
        correlation_id: Optional[Union[str, int]] = None,
    ) -> None:
        """Publish inventory adjusted event"""
        event_data = InventoryAdjustedEventData(
            inventory_id=inventory_id,
            product_id=product_id,
            old_quantity=old_quantity,
            new_quantity=new_quantity,
            movement_type=movement_type,
            created_by=created_by,
            reference=reference,
            timestamp=datetime.now(timezone.utc),
        )
        event = BaseEvent(
            event_type=INVENTORY_ADJUSTED,
            data=event_data.to_dict(),
            correlation_id=correlation_id,
        )

        await self.kafka_publisher.publish(
            event, topic=settings.KAFKA_TOPIC_INVENTORY_EVENTS
        )
        logger.info(
            "Published inventory adjusted event",
            extra={
                "inventory_id": inventory_id,
                "product_id": product_id,
                "old_quantity": old_quantity,
                "new_quantity": new_quantity,
                "correlation_id": correlation_id,
            },
        )
