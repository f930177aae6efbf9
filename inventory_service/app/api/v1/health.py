from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ...core.database import database_manager
from ...core.event_management import health_check_events
from ...core.setting import get_settings
from ...utils.service_health import InventoryServiceHealthChecker

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Health of the database, event publishing and background workers"""
    settings = get_settings()
    checker = InventoryServiceHealthChecker(settings.SERVICE_NAME)

    async def database_check() -> Dict[str, Any]:
        async with database_manager.async_session_maker() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "healthy"}

    async def event_publisher_check() -> Dict[str, Any]:
        # Publishing degrades to logging when Kafka is down
        connected = await health_check_events()
        return {"status": "healthy" if connected else "degraded"}

    async def event_consumer_check() -> Dict[str, Any]:
        consumer = getattr(request.app.state, "event_consumer", None)
        running = consumer is not None and consumer.is_running
        return {"status": "healthy" if running else "degraded"}

    async def cleanup_scheduler_check() -> Dict[str, Any]:
        scheduler = getattr(request.app.state, "cleanup_scheduler", None)
        running = scheduler is not None and scheduler.is_running
        return {"status": "healthy" if running else "degraded"}

    checker.add_check("database", database_check)
    checker.add_check("event_publisher", event_publisher_check)
    checker.add_check("event_consumer", event_consumer_check)
    checker.add_check("cleanup_scheduler", cleanup_scheduler_check)

    result = await checker.run_checks()
    result["version"] = settings.APP_VERSION
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=result)
