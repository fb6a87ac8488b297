"""Routers package."""

from .adjustments import router as adjustments_router
from .billing import router as billing_router
from .contracts import router as contracts_router

__all__ = [
    "adjustments_router",
    "billing_router",
    "contracts_router",
]
