"""
Inventory Service Logging Module
================================
Structured JSON logging setup for Inventory Service.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

_RESERVED_RECORD_FIELDS = [
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
]


class InventoryJSONFormatter(logging.Formatter):
    """JSON formatter for Inventory Service structured logging"""

    def __init__(self, exclude_fields: Optional[List[str]] = None):
        super().__init__()
        self.exclude_fields = exclude_fields or []

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": "inventory_service",
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Extra fields passed through `extra={...}`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS + self.exclude_fields:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_inventory_logging(
    service_name: str = "inventory_service",
    log_level: str = "INFO",
    enable_file_logging: bool = False,
    log_dir: Optional[str] = None,
    max_file_size: int = 100 * 1024 * 1024,  # 100MB
    backup_count: int = 5,
    exclude_fields: Optional[List[str]] = None,
) -> logging.Logger:
    """
    Setup logging for an Inventory Service component

    Returns:
        Configured logger instance
    """
    level = getattr(logging, log_level.upper())
    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    # setup may run more than once per name
    logger.handlers.clear()

    formatter = InventoryJSONFormatter(exclude_fields=exclude_fields)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setLevel(level)

    if enable_file_logging:
        log_path = Path(log_dir) if log_dir else Path(__file__).parent.parent / "logs"
        log_path.mkdir(exist_ok=True)
        for suffix, file_level in (("", level), ("_errors", logging.ERROR)):
            handler = RotatingFileHandler(
                log_path / f"{service_name}{suffix}.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
            )
            handler.setLevel(file_level)
            handlers.append(handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug(
        "Inventory Service logging configured",
        extra={
            "logger_name": service_name,
            "log_level": log_level,
            "file_logging": enable_file_logging,
            "handlers": len(logger.handlers),
        },
    )

    return logger
