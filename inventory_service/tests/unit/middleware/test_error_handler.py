"""
Unit tests for Inventory Service error handling.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from inventory_service.app.core.exceptions import (
    InsufficientStockError,
    LedgerIntegrityError,
)
from inventory_service.app.middleware.error.error_handler import (
    setup_inventory_error_handling,
)


@pytest.fixture
def error_app():
    """Minimal app raising each error type."""
    app = FastAPI()
    setup_inventory_error_handling(app)

    @app.get("/stock")
    async def stock():
        raise InsufficientStockError(inventory_id=1, available=2, requested=5)

    @app.get("/ledger")
    async def ledger():
        raise LedgerIntegrityError("Movement 3 does not continue from 7")

    @app.get("/value")
    async def value():
        raise ValueError("bad value")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("secret internals")

    return app


@pytest.fixture
async def client(error_app):
    transport = ASGITransport(app=error_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestInventoryServiceErrorHandler:
    @pytest.mark.asyncio
    async def test_domain_error_uses_declared_status(self, client):
        response = await client.get("/stock", headers={"X-Correlation-ID": "corr-9"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "INSUFFICIENT_STOCK"
        assert error["correlation_id"] == "corr-9"
        assert error["user_id"] == "anonymous"
        assert error["details"]["requested"] == 5

    @pytest.mark.asyncio
    async def test_ledger_integrity_error_is_server_error(self, client):
        response = await client.get("/ledger")

        assert response.status_code == 500
        assert response.json()["error"]["type"] == "LEDGER_INTEGRITY_ERROR"

    @pytest.mark.asyncio
    async def test_value_error_is_bad_request(self, client):
        response = await client.get("/value")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "bad value"

    @pytest.mark.asyncio
    async def test_unhandled_error_hides_details(self, client):
        response = await client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["type"] == "internal_server_error"
        assert "secret" not in response.text
