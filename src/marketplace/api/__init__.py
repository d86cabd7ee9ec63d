"""Marketplace HTTP API package."""

from marketplace.api.errors import register_exception_handlers
from marketplace.api.routes import order_router, settlement_router, supplier_router, transfer_router

__all__ = [
    "order_router",
    "supplier_router",
    "transfer_router",
    "settlement_router",
    "register_exception_handlers",
]
