from .base import InventoryServiceBase, InventoryServiceBaseModel
from .inventory import Inventory, InventoryMovement, MovementType
from .processed_event import ProcessedEvent, ProcessingResult

__all__ = [
    "InventoryServiceBase",
    "InventoryServiceBaseModel",
    "Inventory",
    "InventoryMovement",
    "MovementType",
    "ProcessedEvent",
    "ProcessingResult",
]
