"""Business logic services for the Crypto Clarity application."""

from .admins import AdminAllowList
from .assistant import CryptoAssistant
from .audit import AuditLogger
from .entitlement import Entitlement, EntitlementResolver
from .etherscan import EtherscanClient
from .gate import CallerContext, QuotaGate
from .onchain import OnChainAnalyzer
from .orchestrator import AssessmentOrchestrator
from .quota import BonusLedger, QuotaLedger

__all__ = [
    "AdminAllowList",
    "AssessmentOrchestrator",
    "AuditLogger",
    "BonusLedger",
    "CallerContext",
    "CryptoAssistant",
    "Entitlement",
    "EntitlementResolver",
    "EtherscanClient",
    "OnChainAnalyzer",
    "QuotaGate",
    "QuotaLedger",
]
