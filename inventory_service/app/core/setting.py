"""
Inventory Service configuration
"""

from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the inventory service directory path
INVENTORY_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = INVENTORY_SERVICE_DIR / ".env"


class InventorySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Inventory Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Service specific
    SERVICE_NAME: str = "inventory-service"

    # Database
    INVENTORY_DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_COMMAND_TIMEOUT: int = 30

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str
    KAFKA_GROUP_ID: str = "inventory-consumer-group"
    KAFKA_CLIENT_ID: str = "inventory-service"
    KAFKA_SESSION_TIMEOUT_MS: int = 30000
    KAFKA_HEARTBEAT_INTERVAL_MS: int = 3000
    KAFKA_REQUEST_TIMEOUT_MS: int = 30000
    KAFKA_RETRY_BACKOFF_MS: int = 300
    KAFKA_MAX_RETRIES: int = 10

    # Kafka topics
    KAFKA_TOPIC_PRODUCT_EVENTS: str = "product.events"
    KAFKA_TOPIC_ORDER_EVENTS: str = "order.events"
    KAFKA_TOPIC_INVENTORY_EVENTS: str = "inventory.events"

    # Processed event retention
    EVENT_RETENTION_DAYS: int = Field(default=30, ge=1)
    EVENT_CLEANUP_CRON: str = "0 2 * * *"
    EVENT_CLEANUP_TIMEZONE: str = "UTC"
    EVENT_CLEANUP_TIMEOUT_SECONDS: float = 300.0
    EVENT_CLEANUP_ENABLED: bool = True

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["*"]
    CORS_HEADERS: List[str] = ["*"]

    # Testing
    TEST_DATABASE_URL: Optional[str] = None

    @field_validator("EVENT_CLEANUP_CRON")
    @classmethod
    def validate_cleanup_cron(cls, value: str) -> str:
        if not croniter.is_valid(value):
            raise ValueError(f"Invalid cron expression: {value!r}")
        return value

    @field_validator("EVENT_CLEANUP_TIMEZONE")
    @classmethod
    def validate_cleanup_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value!r}")
        return value

    @property
    def consumer_topics(self) -> List[str]:
        return [self.KAFKA_TOPIC_PRODUCT_EVENTS, self.KAFKA_TOPIC_ORDER_EVENTS]


# Create a singleton instance
_settings_instance = None


def get_settings() -> InventorySettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = InventorySettings()
    return _settings_instance
