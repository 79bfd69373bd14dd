"""Best-effort analytics records.

A failed write is logged and rolled back; it never changes the response the
caller receives.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crypto_clarity.models.audit import PremiumRequest, ScanLog
from crypto_clarity.utils.email import normalize_email

logger = logging.getLogger(__name__)

FEATURE_ADVANCED_SCAN = "advanced_scan"
FEATURE_WALLET_ANALYSIS = "wallet-analysis"
FEATURE_EXPERT_INVESTIGATION = "expert_investigation"
FEATURE_PREMIUM_SUBSCRIPTION = "premium_subscription"
FEATURE_BONUS_PROMPTS = "bonus_prompts"


class AuditLogger:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _write(self, record: ScanLog | PremiumRequest, what: str) -> bool:
        try:
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to record %s", what)
            return False
        return True

    def record_scan(
        self,
        *,
        scan_type: str,
        input_type: str,
        scenario: str | None,
        submitted_address_1: str | None,
        submitted_address_2: str | None,
        extracted_addresses: list[str],
        user_email: str | None,
        admin_override_used: bool,
        risk_level: str | None,
        ai_summary: str | None,
        etherscan_data: dict[str, Any],
        scan_result: dict[str, Any],
    ) -> bool:
        record = ScanLog(
            scan_type=scan_type,
            input_type=input_type,
            scenario=scenario,
            submitted_address_1=submitted_address_1,
            submitted_address_2=submitted_address_2,
            extracted_addresses=extracted_addresses,
            user_email=user_email,
            admin_override_used=admin_override_used,
            risk_level=risk_level,
            ai_summary=ai_summary,
            etherscan_data=etherscan_data,
            scan_result=scan_result,
        )
        return self._write(record, f"scan log for {user_email or 'anonymous caller'}")

    def record_premium_interest(
        self,
        email: str,
        feature: str,
        *,
        was_admin: bool = False,
        details: dict[str, Any] | None = None,
    ) -> bool:
        record = PremiumRequest(
            email=email,
            feature_requested=feature,
            was_admin=was_admin,
            request_details=details or {},
        )
        return self._write(record, f"{feature} request for {email}")

    def scans_for(self, email: str) -> list[ScanLog]:
        """Scan logs for ``email``, newest first."""
        return (
            self.db.query(ScanLog)
            .filter(ScanLog.user_email == normalize_email(email))
            .order_by(ScanLog.timestamp.desc(), ScanLog.id.desc())
            .all()
        )

    def premium_requests_for(self, email: str) -> list[PremiumRequest]:
        return (
            self.db.query(PremiumRequest)
            .filter(PremiumRequest.email == normalize_email(email))
            .order_by(PremiumRequest.timestamp.desc(), PremiumRequest.id.desc())
            .all()
        )
