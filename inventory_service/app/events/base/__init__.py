"""
Inventory Service event envelopes and handler/publisher interfaces.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession


class BaseEvent(BaseModel):
    """Outbound domain event published by this service"""

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0"
    source_service: str = "inventory-service"
    correlation_id: Optional[Union[str, int]] = None
    data: Dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class IntegrationEvent(BaseModel):
    """Inbound event envelope as read from the bus.

    Producers differ in casing and in naming the body ``data`` or
    ``payload``; both are accepted.
    """

    event_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("event_id", "eventId")
    )
    event_type: str = Field(
        min_length=1, validation_alias=AliasChoices("event_type", "eventType")
    )
    data: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("data", "payload")
    )
    timestamp: Optional[datetime] = None
    source_service: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("source_service", "sourceService")
    )
    correlation_id: Optional[Union[str, int]] = Field(
        default=None, validation_alias=AliasChoices("correlation_id", "correlationId")
    )

    model_config = ConfigDict(extra="ignore")


class EventHandler(ABC):
    """Handles one event type.

    Handlers write through the session they are given and never commit; the
    idempotency service commits their writes together with the processing
    record.
    """

    event_type: ClassVar[str]
    data_model: ClassVar[Type[BaseModel]]

    @abstractmethod
    async def handle(
        self, data: BaseModel, session: AsyncSession, event: IntegrationEvent
    ) -> None:
        """Handle the event"""
        pass


class EventPublisher(ABC):
    """Abstract base class for event publishers"""

    @abstractmethod
    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        """Publish an event"""
        pass
