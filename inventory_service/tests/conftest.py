"""
Pytest configuration and fixtures for inventory service tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, Optional

import pytest
from jose import jwt

# Set up test environment variables before importing anything else
os.environ.setdefault("APP_NAME", "Inventory Service Test")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("INVENTORY_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("KAFKA_GROUP_ID", "inventory-service-test")

from inventory_service.app.core.database import InventoryServiceDatabaseManager  # noqa: E402
from inventory_service.app.core.setting import get_settings  # noqa: E402
from inventory_service.app.models.base import utc_now  # noqa: E402
from inventory_service.app.models.inventory import Inventory  # noqa: E402
from inventory_service.app.models.processed_event import (  # noqa: E402
    ProcessedEvent,
    ProcessingResult,
)
from inventory_service.app.utils.jwt_handler import JWTHandler  # noqa: E402


@pytest.fixture
async def test_database_manager() -> AsyncGenerator[InventoryServiceDatabaseManager, None]:
    """Fresh in-memory database per test."""
    settings = get_settings()
    manager = InventoryServiceDatabaseManager(
        database_url=settings.TEST_DATABASE_URL or "sqlite+aiosqlite:///:memory:"
    )
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def session_factory(test_database_manager: InventoryServiceDatabaseManager) -> Any:
    return test_database_manager.async_session_maker


@pytest.fixture
async def db_session(session_factory: Any) -> AsyncGenerator[Any, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_inventory(db_session):
    """Insert an inventory row directly, bypassing the ledger."""

    async def _make(product_id: str = "prod-1", quantity: int = 0) -> Inventory:
        inventory = Inventory(product_id=product_id, quantity=quantity, created_by="tester")
        db_session.add(inventory)
        await db_session.commit()
        return inventory

    return _make


@pytest.fixture
def make_processed_event(db_session):
    """Insert a processed event record created ``age_days`` ago."""

    async def _make(
        event_id: str,
        event_type: str = "product.created",
        age_days: float = 0,
        result: ProcessingResult = ProcessingResult.SUCCESS,
        error_message: Optional[str] = None,
    ) -> ProcessedEvent:
        record = ProcessedEvent(
            event_id=event_id,
            event_type=event_type,
            event_data={"product_id": event_id},
            processing_result=result,
            error_message=error_message,
            created_at=utc_now() - timedelta(days=age_days),
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make


@pytest.fixture
def jwt_handler() -> JWTHandler:
    settings = get_settings()
    return JWTHandler(secret_key=settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def issue_token():
    """Mint access tokens the way the user service does."""
    settings = get_settings()

    def _issue(
        claims: Dict[str, Any], expires_delta: Optional[timedelta] = None
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "exp": now + (expires_delta or timedelta(minutes=30)),
            "iat": now,
            "type": "access",
        }
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    return _issue


@pytest.fixture
def user_headers(issue_token):
    token = issue_token({"user_id": "user-1", "roles": ["user"]})
    return {"Authorization": f"Bearer {token}", "X-Correlation-ID": "corr-user"}


@pytest.fixture
def admin_headers(issue_token):
    token = issue_token({"user_id": "admin-1", "roles": ["admin"]})
    return {"Authorization": f"Bearer {token}", "X-Correlation-ID": "corr-admin"}
