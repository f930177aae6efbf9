"""
Authentication middleware for Inventory Service.
"""

from .auth_middleware import (
    AuthenticatedUser,
    InventoryServiceAuthMiddleware,
    admin_user,
    authenticated_user,
    setup_inventory_auth_middleware,
)

__all__ = [
    "InventoryServiceAuthMiddleware",
    "AuthenticatedUser",
    "setup_inventory_auth_middleware",
    "authenticated_user",
    "admin_user",
]
