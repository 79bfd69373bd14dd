import pytest

from crypto_clarity.services.entitlement import Entitlement
from crypto_clarity.services.errors import QuotaExceededError
from crypto_clarity.services.gate import CallerContext, QuotaGate
from crypto_clarity.services.quota import BonusLedger

ANON = CallerContext(ip="203.0.113.7", endpoint="/api/translate")
FREE = Entitlement()


def _exhaust(gate: QuotaGate, caller: CallerContext, entitlement: Entitlement = FREE) -> None:
    for _ in range(5):
        status, _ = gate.admit(caller, entitlement)
        gate.commit(caller, status)


def test_with_email_prefers_body_value() -> None:
    caller = CallerContext(ip="1.2.3.4", endpoint="/api/x", email="query@example.com")

    assert caller.with_email(" Body@Example.com ").email == "body@example.com"
    assert caller.with_email(None).email == "query@example.com"
    assert caller.with_email("").email == "query@example.com"


def test_headers_for_anonymous_caller(gate: QuotaGate) -> None:
    status, headers = gate.admit(ANON, FREE)

    assert headers["X-RateLimit-Limit"] == "5"
    assert headers["X-RateLimit-Remaining"] == "5"
    assert headers["X-RateLimit-Reset"] == "2024-05-15T00:00:00Z"
    assert headers["X-User-IsAdmin"] == "false"
    assert headers["X-User-IsPremium"] == "false"
    assert "X-Bonus-Prompts-Available" not in headers


def test_bonus_headers_only_for_email_bearing_free_callers(gate: QuotaGate) -> None:
    caller = ANON.with_email("free@example.com")

    _, headers = gate.admit(caller, Entitlement(email="free@example.com"))

    assert headers["X-Bonus-Prompts-Available"] == "false"
    assert headers["X-Bonus-Prompts-Remaining"] == "5"
    assert headers["X-Bonus-Prompts-Used-Today"] == "false"


def test_admin_headers(gate: QuotaGate) -> None:
    admin = Entitlement(email="admin@example.com", is_admin=True)

    _, headers = gate.admit(ANON.with_email("admin@example.com"), admin)

    assert headers["X-User-IsAdmin"] == "true"
    assert headers["X-User-IsPremium"] == "true"
    assert headers["X-RateLimit-Limit"] == "1000"


def test_anonymous_rejection_asks_for_email(gate: QuotaGate) -> None:
    _exhaust(gate, ANON)

    with pytest.raises(QuotaExceededError) as excinfo:
        gate.admit(ANON, FREE)

    payload = excinfo.value.payload
    assert payload["error"] == "Rate limit exceeded"
    assert payload["current"] == 5 and payload["limit"] == 5
    assert payload["needsEmail"] is True
    assert payload["hasBonusPrompts"] is False
    assert payload["alreadyUsedBonusToday"] is False
    assert "Enter your email to unlock 5 bonus prompts" in payload["message"]
    assert excinfo.value.headers["X-RateLimit-Remaining"] == "0"


def test_rejection_after_bonus_is_spent(gate: QuotaGate, bonus_ledger: BonusLedger) -> None:
    caller = ANON.with_email("spent@example.com")
    entitlement = Entitlement(email="spent@example.com")
    _exhaust(gate, caller, entitlement)
    bonus_ledger.activate("spent@example.com", caller.ip)
    _exhaust(gate, caller, entitlement)

    with pytest.raises(QuotaExceededError) as excinfo:
        gate.admit(caller, entitlement)

    payload = excinfo.value.payload
    assert payload["needsEmail"] is False
    assert payload["alreadyUsedBonusToday"] is True
    assert payload["bonusPromptsRemaining"] == 0
    assert "Come back tomorrow" in payload["message"]


def test_premium_rejection_message(gate: QuotaGate) -> None:
    status = gate.ledger.check(ANON.ip, ANON.endpoint, None, Entitlement(is_premium=True))

    assert "premium tier daily limit of 1000" in gate.limit_message(status)
