from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..models import InventoryServiceBase
from ..utils.logging import setup_inventory_logging as setup_logging
from .setting import get_settings

logger = setup_logging(
    "inventory_service.database", log_level=get_settings().LOG_LEVEL
)


class InventoryServiceDatabaseManager:
    """Database manager for Inventory Service."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 40,
        command_timeout: int = 30,
    ) -> None:
        logger.info(
            "Initializing Inventory Service database manager",
            extra={
                "operation": "database_manager_init",
                "database_url": database_url.replace(
                    "postgresql+asyncpg://", "postgresql://"
                ).split("@")[0]
                + "@***",  # Mask credentials
                "echo": echo,
            },
        )

        engine_kwargs: Dict[str, Any] = {"echo": echo}

        if "sqlite" in database_url:
            # SQLite for development and tests
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
            if ":memory:" in database_url:
                # Keep a single connection so the in-memory schema survives
                engine_kwargs["poolclass"] = StaticPool
            logger.info(
                "Configured SQLite database settings",
                extra={"database_type": "sqlite", "timeout": 60},
            )
        else:
            engine_kwargs.update(
                {
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                    "pool_timeout": 45,
                    "pool_recycle": 3600,
                    "pool_pre_ping": True,
                    "pool_reset_on_return": "rollback",
                    "connect_args": {
                        "command_timeout": command_timeout,
                        "prepared_statement_cache_size": 0,
                    },
                }
            )
            logger.info(
                "Configured PostgreSQL database settings",
                extra={
                    "database_type": "postgresql",
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                    "command_timeout": command_timeout,
                },
            )

        self.async_engine = create_async_engine(database_url, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_tables(self) -> None:
        """Create all Inventory Service database tables."""
        try:
            async with self.async_engine.begin() as conn:
                await conn.run_sync(
                    InventoryServiceBase.metadata.create_all, checkfirst=True
                )
            logger.info(
                "Database tables created successfully",
                extra={"operation": "create_tables"},
            )
        except Exception as e:
            # Tables might already exist from another instance
            logger.warning(
                "Database table creation failed",
                extra={"operation": "create_tables", "error": str(e)},
            )

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session for Inventory Service."""
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Close the engine and its pooled connections."""
        logger.info(
            "Closing Inventory Service database connections",
            extra={"operation": "database_close"},
        )
        await self.async_engine.dispose()


settings = get_settings()
if not settings.INVENTORY_DATABASE_URL:
    error_msg = (
        "INVENTORY_DATABASE_URL is required for Inventory Service but not configured"
    )
    logger.error(error_msg, extra={"operation": "global_database_init"})
    raise ValueError(error_msg)

database_manager = InventoryServiceDatabaseManager(
    database_url=settings.INVENTORY_DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    command_timeout=settings.DATABASE_COMMAND_TIMEOUT,
)


# Dependency injection function for FastAPI
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    async for session in database_manager.get_async_session():
        yield session
