"""SQLAlchemy models for the Crypto Clarity service."""

from .audit import PremiumRequest, ScanLog
from .cache import CryptoTerm, ScamCheck
from .expert_request import ExpertRequest
from .quota import BonusPrompt, RateLimit
from .user import User

__all__ = [
    "BonusPrompt", "RateLimit",
    "CryptoTerm", "ScamCheck",
    "ExpertRequest",
    "PremiumRequest", "ScanLog",
    "User",
]
