"""Processed event administration endpoints"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from ...core.setting import get_settings
from ...schemas.processed_event import (
    EventCleanupResponse,
    ProcessedEventHistoryResponse,
    ProcessedEventResponse,
)
from ...services.idempotency_service import IdempotencyService
from ..dependencies import AdminUserDep, IdempotencyServiceDep

router = APIRouter(prefix="/events")


@router.get("/processed", response_model=ProcessedEventHistoryResponse)
async def get_processed_events(
    event_type: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    service: IdempotencyService = IdempotencyServiceDep,
    user: Dict[str, Any] = AdminUserDep,
):
    """Processing history of inbound events, newest first"""
    history = await service.get_event_history(event_type=event_type, page=page, limit=limit)
    return ProcessedEventHistoryResponse(
        items=[ProcessedEventResponse.model_validate(item) for item in history.items],
        total=history.total,
        page=history.page,
        limit=history.limit,
        pages=history.pages,
    )


@router.post("/cleanup", response_model=EventCleanupResponse)
async def cleanup_processed_events(
    retention_days: Optional[int] = Query(None, ge=1),
    service: IdempotencyService = IdempotencyServiceDep,
    user: Dict[str, Any] = AdminUserDep,
):
    """Delete processed event records past the retention window"""
    retention_days = retention_days or get_settings().EVENT_RETENTION_DAYS
    deleted = await service.cleanup_old_events(retention_days)
    return EventCleanupResponse(retention_days=retention_days, deleted_count=deleted)
