from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from ..models.processed_event import ProcessingResult


class ProcessedEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: str
    event_type: str
    event_data: Optional[Dict[str, Any]] = None
    processing_result: ProcessingResult
    error_message: Optional[str] = None
    created_at: datetime


class ProcessedEventHistoryResponse(BaseModel):
    items: List[ProcessedEventResponse]
    total: int
    page: int
    limit: int
    pages: int


class EventCleanupResponse(BaseModel):
    retention_days: int
    deleted_count: int
