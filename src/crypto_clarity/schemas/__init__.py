"""
Pydantic schemas for API request/response models.

Requests and responses use camelCase keys on the wire.
"""

from .account import (
    AdminAddRequest,
    AdminCheckResponse,
    AdminEmailsResponse,
    BonusActivateRequest,
    BonusActivateResponse,
    SubscribeRequest,
    SubscribeResponse,
    UsageStatsResponse,
)
from .expert import (
    ExpertRequestCreate,
    ExpertRequestCreated,
    ExpertRequestResponse,
    ExpertStatusUpdate,
)
from .scan import ScanRequest, ScanResponse
from .translate import RecentTermResponse, TranslateRequest, TranslateResponse

__all__ = [
    "AdminAddRequest", "AdminCheckResponse", "AdminEmailsResponse",
    "BonusActivateRequest", "BonusActivateResponse",
    "ExpertRequestCreate", "ExpertRequestCreated", "ExpertRequestResponse", "ExpertStatusUpdate",
    "RecentTermResponse", "TranslateRequest", "TranslateResponse",
    "ScanRequest", "ScanResponse",
    "SubscribeRequest", "SubscribeResponse",
    "UsageStatsResponse",
]
