"""Repository layer for Inventory Service"""

from .inventory_repository import InventoryRepository
from .pagination import Page
from .processed_event_repository import ProcessedEventRepository

__all__ = ["InventoryRepository", "Page", "ProcessedEventRepository"]
