"""Version 1 API endpoints."""

from .endpoints import (
    account_router,
    admin_router,
    expert_router,
    scan_router,
    translate_router,
)

__all__ = [
    "account_router",
    "admin_router",
    "expert_router",
    "scan_router",
    "translate_router",
]
