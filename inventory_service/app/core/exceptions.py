"""
Inventory Service exception hierarchy.

Every domain error carries the HTTP status it maps to and whether the event
consumer may retry the message that raised it.
"""

from typing import Any, Dict, Optional


class InventoryServiceError(Exception):
    """Base class for Inventory Service domain errors"""

    error_code = "INVENTORY_SERVICE_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InventoryNotFoundError(InventoryServiceError):
    error_code = "INVENTORY_NOT_FOUND"
    status_code = 404
    # Order events can overtake the product event that creates the inventory
    retryable = True

    def __init__(self, product_id: Optional[str] = None, inventory_id: Optional[int] = None):
        if product_id is not None:
            message = f"Inventory not found for product {product_id}"
        else:
            message = f"Inventory {inventory_id} not found"
        super().__init__(
            message, details={"product_id": product_id, "inventory_id": inventory_id}
        )


class InventoryDeletedError(InventoryNotFoundError):
    """The product's inventory was soft deleted, so redelivery cannot help"""

    error_code = "INVENTORY_DELETED"
    retryable = False

    def __init__(self, product_id: str):
        InventoryServiceError.__init__(
            self,
            f"Inventory for product {product_id} has been deleted",
            details={"product_id": product_id, "inventory_id": None},
        )


class InventoryAlreadyExistsError(InventoryServiceError):
    error_code = "INVENTORY_ALREADY_EXISTS"
    status_code = 409

    def __init__(self, product_id: str):
        super().__init__(
            f"Inventory already exists for product {product_id}",
            details={"product_id": product_id},
        )


class InsufficientStockError(InventoryServiceError):
    """Raised when a movement would leave a negative quantity"""

    error_code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, inventory_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for inventory {inventory_id}: "
            f"available {available}, requested {requested}",
            details={
                "inventory_id": inventory_id,
                "available": available,
                "requested": requested,
            },
        )
        self.inventory_id = inventory_id
        self.available = available
        self.requested = requested


class InvalidMovementError(InventoryServiceError):
    error_code = "INVALID_MOVEMENT"
    status_code = 400


class LedgerIntegrityError(InventoryServiceError):
    """Raised when stored movements do not chain into a consistent history"""

    error_code = "LEDGER_INTEGRITY_ERROR"
    status_code = 500


class DuplicateEventError(InventoryServiceError):
    """Raised when an event id already has a successful processing record"""

    error_code = "DUPLICATE_EVENT"
    status_code = 409

    def __init__(self, event_id: str):
        super().__init__(
            f"Event {event_id} has already been processed",
            details={"event_id": event_id},
        )
        self.event_id = event_id


class PoisonMessageError(InventoryServiceError):
    """A message that can never be processed, however often it is redelivered"""

    error_code = "POISON_MESSAGE"
    status_code = 422


class EventRecordConflictError(InventoryServiceError):
    """Another delivery inserted a non-success record for the same event id"""

    error_code = "EVENT_RECORD_CONFLICT"
    status_code = 409
    retryable = True

    def __init__(self, event_id: str):
        super().__init__(
            f"Event {event_id} was recorded concurrently, retry the delivery",
            details={"event_id": event_id},
        )
        self.event_id = event_id
