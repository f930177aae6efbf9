"""
Inventory Service FastAPI Application
=====================================

Main application entry point for the Inventory Service microservice.
Tracks stock through an append-only movement ledger, consumes product and
order events exactly once per event id, and periodically cleans up the
processed event records.
"""

import socket
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.events import router as events_router
from .api.v1.health import router as health_router
from .api.v1.inventory import router as inventory_router
from .core.database import database_manager
from .core.event_management import close_events, init_events
from .core.setting import get_settings
from .events.event_consumers import InventoryEventConsumer
from .events.event_handlers import build_handler_registry
from .middleware.auth.auth_middleware import setup_inventory_auth_middleware
from .middleware.error.error_handler import setup_inventory_error_handling
from .services.event_cleanup_scheduler import EventCleanupScheduler
from .utils.logging import setup_inventory_logging

settings = get_settings()
enable_file_logging = settings.ENVIRONMENT.lower() in ["production", "staging"]

logger = setup_inventory_logging(
    "inventory_service.app",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()

    try:
        await _initialize_services(app, startup_start)
    except Exception as e:
        logger.error(
            "Failed to start inventory service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    await _shutdown_services(app)


async def _initialize_services(app: FastAPI, startup_start: float) -> None:
    """Initialize all application services during startup."""
    logger.info(
        "Starting inventory service initialization",
        extra={
            "environment": settings.ENVIRONMENT,
            "debug_mode": settings.DEBUG,
            "service_version": settings.APP_VERSION,
        },
    )

    db_duration = await _init_database()

    kafka_available = _kafka_reachable(settings.KAFKA_BOOTSTRAP_SERVERS)
    event_duration = 0
    consumer_duration = 0
    if kafka_available:
        event_duration = await _init_event_publisher()
        consumer_duration = await _init_event_consumer(app)
    else:
        logger.warning(
            "Kafka not available, skipping event publisher and consumer initialization"
        )

    if settings.EVENT_CLEANUP_ENABLED:
        _init_cleanup_scheduler(app)
        await app.state.cleanup_scheduler.start()

    logger.info(
        "Inventory service started successfully",
        extra={
            "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
            "database_init_ms": db_duration,
            "event_publisher_init_ms": event_duration,
            "event_consumer_init_ms": consumer_duration,
        },
    )


def _kafka_reachable(bootstrap_servers: str) -> bool:
    """Quick TCP probe of the first bootstrap server."""
    first_server = bootstrap_servers.split(",")[0].strip()
    if ":" not in first_server:
        return False
    host, port = first_server.rsplit(":", 1)
    try:
        with socket.create_connection((host, int(port)), timeout=1.0):
            return True
    except (OSError, ValueError):
        return False


async def _init_database() -> int:
    """Initialize database and return duration in ms."""
    start_time = time.time()
    await database_manager.create_tables()
    duration = int((time.time() - start_time) * 1000)
    logger.info("Database initialization completed", extra={"duration_ms": duration})
    return duration


async def _init_event_publisher() -> int:
    start_time = time.time()
    await init_events()
    duration = int((time.time() - start_time) * 1000)
    logger.info("Event publisher started", extra={"duration_ms": duration})
    return duration


async def _init_event_consumer(app: FastAPI) -> int:
    """Start the event consumer and return duration in ms."""
    start_time = time.time()
    consumer = InventoryEventConsumer(
        session_factory=database_manager.async_session_maker,
        handlers=build_handler_registry(),
        topics=settings.consumer_topics,
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        group_id=settings.KAFKA_GROUP_ID,
        client_id=settings.KAFKA_CLIENT_ID,
        retry_backoff_seconds=settings.KAFKA_RETRY_BACKOFF_MS / 1000,
        max_retries=settings.KAFKA_MAX_RETRIES,
    )
    await consumer.start()
    app.state.event_consumer = consumer

    duration = int((time.time() - start_time) * 1000)
    logger.info("Event consumer started", extra={"duration_ms": duration})
    return duration


def _init_cleanup_scheduler(app: FastAPI) -> None:
    app.state.cleanup_scheduler = EventCleanupScheduler(
        session_factory=database_manager.async_session_maker,
        retention_days=settings.EVENT_RETENTION_DAYS,
        cron_expression=settings.EVENT_CLEANUP_CRON,
        timezone_name=settings.EVENT_CLEANUP_TIMEZONE,
        run_timeout=settings.EVENT_CLEANUP_TIMEOUT_SECONDS,
    )


async def _shutdown_services(app: FastAPI) -> None:
    """Shutdown all application services gracefully."""
    shutdown_start = time.time()
    logger.info("Starting inventory service shutdown")

    try:
        consumer = getattr(app.state, "event_consumer", None)
        if consumer is not None:
            await consumer.stop()

        scheduler = getattr(app.state, "cleanup_scheduler", None)
        if scheduler is not None:
            await scheduler.stop()

        await close_events()
        await database_manager.close()
    except Exception as e:
        logger.error(
            "Error during inventory service shutdown",
            exc_info=True,
            extra={
                "shutdown_duration_ms": int((time.time() - shutdown_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    logger.info(
        "Inventory service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


# Application factory
def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    setup_inventory_error_handling(app)
    setup_inventory_auth_middleware(app)
    _setup_cors(app)
    _setup_routers(app)

    return app


def _setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )


def _setup_routers(app: FastAPI) -> None:
    """Configure all application routers."""
    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": ""})

    app.include_router(
        inventory_router, prefix="/api/v1", tags=["Inventory Management"]
    )
    routers_info.append({"router": "inventory", "prefix": "/api/v1"})

    app.include_router(events_router, prefix="/api/v1", tags=["Event Processing"])
    routers_info.append({"router": "events", "prefix": "/api/v1"})

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(  # type: ignore
        "inventory_service.app.main:app",
        host="0.0.0.0",
        port=8003,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
