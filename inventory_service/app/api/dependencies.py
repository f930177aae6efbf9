"""
FastAPI dependency injection for Inventory Service

Provides database sessions, services, authentication and correlation IDs.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db_session
from ..core.event_management import get_event_producer
from ..events.event_producers import InventoryEventProducer
from ..middleware.auth.auth_middleware import admin_user, authenticated_user
from ..services.idempotency_service import IdempotencyService
from ..services.inventory_service import InventoryService

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in get_db_session():
        yield session


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_inventory_event_producer() -> Optional[InventoryEventProducer]:
    """Provide InventoryEventProducer instance"""
    return get_event_producer()


def get_inventory_service(
    session: AsyncSession = Depends(get_async_session),
    event_producer: Optional[InventoryEventProducer] = Depends(
        get_inventory_event_producer
    ),
) -> InventoryService:
    """Provide InventoryService instance with database and event publishing"""
    return InventoryService(session, event_producer)


def get_idempotency_service(
    session: AsyncSession = Depends(get_async_session),
) -> IdempotencyService:
    return IdempotencyService(session)


# =====================================================
# REQUEST CONTEXT DEPENDENCIES
# =====================================================


def get_correlation_id(request: Request) -> Optional[str]:
    """Extract correlation ID from request headers"""
    return (
        request.headers.get("X-Correlation-ID")
        or request.headers.get("correlation-id")
        or request.headers.get("x-request-id")
    )


# =====================================================
# COMMON DEPENDENCY ALIASES
# =====================================================

CorrelationIdDep = Depends(get_correlation_id)
AuthenticatedUserDep = Depends(authenticated_user)
AdminUserDep = Depends(admin_user)

InventoryServiceDep = Depends(get_inventory_service)
IdempotencyServiceDep = Depends(get_idempotency_service)
