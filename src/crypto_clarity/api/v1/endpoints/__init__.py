"""API endpoint modules for version 1."""

from .account import router as account_router
from .admin import router as admin_router
from .expert import router as expert_router
from .scan import router as scan_router
from .translate import router as translate_router

__all__ = [
    "account_router",
    "admin_router",
    "expert_router",
    "scan_router",
    "translate_router",
]
