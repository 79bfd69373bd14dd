"""HTTP-facing admission step in front of the quota ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from crypto_clarity.db.time import Clock, next_utc_midnight, utcnow
from crypto_clarity.services.entitlement import Entitlement
from crypto_clarity.services.errors import QuotaExceededError
from crypto_clarity.services.quota import QuotaLedger, QuotaStatus
from crypto_clarity.utils.email import normalize_optional_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    """Where a request came from and which counter it is charged to."""

    ip: str
    endpoint: str
    email: str | None = None

    def with_email(self, email: str | None) -> CallerContext:
        """Prefer an email taken from a validated body over query/header values."""
        preferred = normalize_optional_email(email) or self.email
        return CallerContext(ip=self.ip, endpoint=self.endpoint, email=preferred)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class QuotaGate:
    """Admit or reject a request and describe the outcome to the client."""

    def __init__(self, ledger: QuotaLedger, *, clock: Clock = utcnow) -> None:
        self.ledger = ledger
        self.clock = clock

    def admit(
        self,
        caller: CallerContext,
        entitlement: Entitlement | None = None,
    ) -> tuple[QuotaStatus, dict[str, str]]:
        """Return the quota status and headers, or raise ``QuotaExceededError``."""
        status = self.ledger.check(caller.ip, caller.endpoint, caller.email, entitlement)
        headers = self.headers(status)
        if not status.admitted:
            logger.info(
                "Quota exceeded on %s for %s (%s/%s)",
                caller.endpoint,
                caller.email or caller.ip,
                status.current,
                status.limit,
            )
            raise QuotaExceededError(self.rejection_payload(status), headers)
        return status, headers

    def commit(self, caller: CallerContext, status: QuotaStatus) -> None:
        self.ledger.commit(caller.ip, caller.endpoint, caller.email, status)

    def headers(self, status: QuotaStatus) -> dict[str, str]:
        reset_at = next_utc_midnight(self.clock()).isoformat().replace("+00:00", "Z")
        headers = {
            "X-RateLimit-Limit": str(status.total_allowance),
            "X-RateLimit-Remaining": str(status.remaining),
            "X-RateLimit-Reset": reset_at,
            "X-User-IsAdmin": _flag(status.is_admin),
            "X-User-IsPremium": _flag(status.is_premium),
        }
        if status.bonus_applies:
            headers["X-Bonus-Prompts-Available"] = _flag(status.has_bonus)
            headers["X-Bonus-Prompts-Remaining"] = str(status.bonus_remaining)
            headers["X-Bonus-Prompts-Used-Today"] = _flag(status.bonus_used_today)
        return headers

    def limit_message(self, status: QuotaStatus) -> str:
        free = self.ledger.free_limit
        premium = self.ledger.premium_limit
        if status.is_premium:
            return f"You have reached your premium tier daily limit of {premium} requests."
        if status.bonus_used_today:
            return (
                f"You've used all {free} free prompts and all bonus prompts for today. "
                f"Come back tomorrow for {free} more free prompts, "
                f"or upgrade to premium for {premium} daily requests."
            )
        return (
            f"You've used all {free} free prompts for today. "
            f"Enter your email to unlock {self.ledger.bonus.max_bonus} bonus prompts, "
            f"or upgrade to premium for {premium} daily requests."
        )

    def rejection_payload(self, status: QuotaStatus) -> dict[str, Any]:
        return {
            "error": "Rate limit exceeded",
            "message": self.limit_message(status),
            "current": status.current,
            "limit": status.limit,
            "isAdmin": status.is_admin,
            "isPremium": status.is_premium,
            "hasBonusPrompts": status.has_bonus,
            "bonusPromptsRemaining": status.bonus_remaining,
            "needsEmail": not status.email and not status.is_premium and not status.is_admin,
            "alreadyUsedBonusToday": status.bonus_used_today,
        }
