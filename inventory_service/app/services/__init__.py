"""Service layer for Inventory Service"""

from .event_cleanup_scheduler import EventCleanupScheduler
from .idempotency_service import IdempotencyService, ProcessingOutcome
from .inventory_ledger import InventoryLedger
from .inventory_service import InventoryService

__all__ = [
    "EventCleanupScheduler",
    "IdempotencyService",
    "InventoryLedger",
    "InventoryService",
    "ProcessingOutcome",
]
