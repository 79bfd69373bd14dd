from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from crypto_clarity.models import PremiumRequest, ScanLog
from crypto_clarity.services.audit import FEATURE_BONUS_PROMPTS, AuditLogger


def _scan(audit: AuditLogger, email: str | None, scan_type: str = "free") -> bool:
    return audit.record_scan(
        scan_type=scan_type,
        input_type="scenario_only",
        scenario="free airdrop",
        submitted_address_1=None,
        submitted_address_2=None,
        extracted_addresses=[],
        user_email=email,
        admin_override_used=False,
        risk_level="High Risk",
        ai_summary="Likely phishing",
        etherscan_data={},
        scan_result={"riskLevel": "High Risk"},
    )


def test_queries_filter_by_normalized_email(db_session: Session) -> None:
    audit = AuditLogger(db_session)
    assert _scan(audit, "user@example.com")
    assert _scan(audit, "user@example.com", "premium")
    assert _scan(audit, None)
    assert audit.record_premium_interest("user@example.com", FEATURE_BONUS_PROMPTS)

    scans = audit.scans_for("USER@example.com")
    assert len(scans) == 2
    assert scans[0].scan_type == "premium"
    assert [item.feature_requested for item in audit.premium_requests_for("user@example.com")] == [
        FEATURE_BONUS_PROMPTS
    ]


def test_write_failure_is_logged_not_raised(mocker, db_session: Session) -> None:
    audit = AuditLogger(db_session)
    mocker.patch.object(
        db_session,
        "commit",
        side_effect=OperationalError("INSERT", {}, Exception("disk full")),
    )

    assert _scan(audit, "user@example.com") is False
    assert audit.record_premium_interest("user@example.com", FEATURE_BONUS_PROMPTS) is False

    mocker.stopall()
    assert db_session.query(ScanLog).count() == 0
    assert db_session.query(PremiumRequest).count() == 0
