"""Daily quota and bonus ledgers.

Counters live in date-keyed rows: "resetting" a caller at the UTC day
boundary simply means the next request looks up a row for a new date.
There is no reset job.

``check`` and ``commit`` are separate store round-trips, so concurrent
requests from one caller can briefly exceed the ceiling. Folding both into a
single ``UPDATE ... SET request_count = request_count + 1 WHERE
request_count < :limit`` would close that window if it ever matters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crypto_clarity.core.settings import settings
from crypto_clarity.db.time import Clock, as_utc, end_of_utc_day, utc_day, utcnow
from crypto_clarity.models.quota import BonusPrompt, RateLimit
from crypto_clarity.services.entitlement import Entitlement, EntitlementResolver
from crypto_clarity.services.errors import StoreErrorPolicy, StoreUnavailableError
from crypto_clarity.utils.email import normalize_email, normalize_optional_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BonusStatus:
    """Bonus availability for one email on the current UTC day."""

    has_bonus: bool
    remaining: int
    used_today: bool


@dataclass(frozen=True)
class QuotaStatus:
    """Outcome of a quota check.

    ``allowed`` reflects the primary daily ceiling only. When it is False a
    free caller may still be admitted by spending one bonus unit, in which
    case ``bonus_id`` names the allocation to draw from at commit time.
    """

    allowed: bool
    current: int
    limit: int
    is_admin: bool = False
    is_premium: bool = False
    email: str | None = None
    bonus_applies: bool = False
    has_bonus: bool = False
    bonus_remaining: int = 0
    bonus_used_today: bool = False
    bonus_id: int | None = None

    @property
    def admitted(self) -> bool:
        return self.allowed or self.bonus_id is not None

    @property
    def uses_bonus(self) -> bool:
        return not self.allowed and self.bonus_id is not None

    @property
    def total_allowance(self) -> int:
        if self.has_bonus:
            return self.limit + self.bonus_remaining
        return self.limit

    @property
    def remaining(self) -> int:
        return max(0, self.total_allowance - self.current)


class BonusLedger:
    """Per-email, per-day bonus allocations."""

    def __init__(
        self,
        db: Session,
        *,
        max_bonus: int | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.db = db
        self.max_bonus = settings.max_bonus_prompts if max_bonus is None else max_bonus
        self.clock = clock

    def get_for_day(self, email: str, day: str) -> BonusPrompt | None:
        return (
            self.db.query(BonusPrompt)
            .filter(BonusPrompt.email == normalize_email(email), BonusPrompt.activation_day == day)
            .first()
        )

    def activate(self, email: str, ip: str) -> tuple[BonusPrompt, bool]:
        """Create today's allocation, or return the existing one.

        The second element is True only when a new allocation was created.
        """
        now = self.clock()
        today = utc_day(now)
        normalized = normalize_email(email)

        existing = self.get_for_day(normalized, today)
        if existing is not None:
            return existing, False

        bonus = BonusPrompt(
            email=normalized,
            bonus_activated_at=now,
            bonus_used_count=0,
            activation_day=today,
            ip_address=ip,
            expires_at=end_of_utc_day(now),
        )
        try:
            with self.db.begin_nested():
                self.db.add(bonus)
        except IntegrityError:
            existing = self.get_for_day(normalized, today)
            if existing is None:
                raise
            return existing, False
        self.db.commit()
        self.db.refresh(bonus)
        return bonus, True

    def status(self, email: str) -> BonusStatus:
        now = self.clock()
        bonus = self.get_for_day(email, utc_day(now))
        return self.status_of(bonus, now)

    def status_of(self, bonus: BonusPrompt | None, now: datetime | None = None) -> BonusStatus:
        if bonus is None:
            return BonusStatus(has_bonus=False, remaining=self.max_bonus, used_today=False)
        now = now or self.clock()
        if as_utc(now) > as_utc(bonus.expires_at):
            return BonusStatus(has_bonus=False, remaining=0, used_today=True)
        remaining = max(0, self.max_bonus - bonus.bonus_used_count)
        return BonusStatus(has_bonus=remaining > 0, remaining=remaining, used_today=True)

    def consume_one(self, bonus_id: int) -> None:
        self.db.execute(
            update(BonusPrompt)
            .where(BonusPrompt.id == bonus_id)
            .values(bonus_used_count=BonusPrompt.bonus_used_count + 1)
        )
        self.db.commit()


class QuotaLedger:
    """Daily request counters per (email or IP, endpoint category)."""

    def __init__(
        self,
        db: Session,
        resolver: EntitlementResolver,
        bonus_ledger: BonusLedger | None = None,
        *,
        free_limit: int | None = None,
        premium_limit: int | None = None,
        clock: Clock = utcnow,
        on_store_error: StoreErrorPolicy = StoreErrorPolicy.ADMIT,
    ) -> None:
        self.db = db
        self.resolver = resolver
        self.clock = clock
        self.bonus = bonus_ledger or BonusLedger(db, clock=clock)
        self.free_limit = settings.free_daily_limit if free_limit is None else free_limit
        self.premium_limit = (
            settings.premium_daily_limit if premium_limit is None else premium_limit
        )
        self.on_store_error = on_store_error

    def limit_for(self, entitlement: Entitlement) -> int:
        if entitlement.is_admin or entitlement.is_premium:
            return self.premium_limit
        return self.free_limit

    def find_counter(self, ip: str, endpoint: str, email: str | None, day: str) -> RateLimit | None:
        """Return today's counter row, searching by email before IP."""
        if email:
            row = (
                self.db.query(RateLimit)
                .filter(
                    RateLimit.user_email == email,
                    RateLimit.endpoint == endpoint,
                    RateLimit.date == day,
                )
                .first()
            )
            if row is not None:
                return row
        return (
            self.db.query(RateLimit)
            .filter(
                RateLimit.ip_address == ip,
                RateLimit.endpoint == endpoint,
                RateLimit.date == day,
            )
            .first()
        )

    def check(
        self,
        ip: str,
        endpoint: str,
        email: str | None = None,
        entitlement: Entitlement | None = None,
    ) -> QuotaStatus:
        email = normalize_optional_email(email)
        if entitlement is None:
            entitlement = self.resolver.resolve(email)

        if entitlement.is_admin:
            return QuotaStatus(
                allowed=True,
                current=0,
                limit=self.premium_limit,
                is_admin=True,
                is_premium=True,
                email=email,
            )

        limit = self.limit_for(entitlement)
        day = utc_day(self.clock())
        try:
            row = self.find_counter(ip, endpoint, email, day)
            current = int(row.request_count or 0) if row is not None else 0
        except SQLAlchemyError as exc:
            return self._on_read_failure(exc, ip, endpoint, email, entitlement, limit)

        allowed = current < limit
        bonus_applies = bool(email) and not entitlement.is_premium
        if not bonus_applies:
            return QuotaStatus(
                allowed=allowed,
                current=current,
                limit=limit,
                is_premium=entitlement.is_premium,
                email=email,
            )

        try:
            bonus = self.bonus.get_for_day(email, day)
            bonus_status = self.bonus.status_of(bonus)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Bonus lookup failed for %s on %s: %s", email, endpoint, exc)
            bonus, bonus_status = None, BonusStatus(False, 0, False)

        bonus_id = None
        if not allowed and bonus is not None and bonus_status.has_bonus:
            bonus_id = bonus.id

        return QuotaStatus(
            allowed=allowed,
            current=current,
            limit=limit,
            is_premium=entitlement.is_premium,
            email=email,
            bonus_applies=True,
            has_bonus=bonus_status.has_bonus,
            bonus_remaining=bonus_status.remaining,
            bonus_used_today=bonus_status.used_today,
            bonus_id=bonus_id,
        )

    def commit(
        self,
        ip: str,
        endpoint: str,
        email: str | None = None,
        status: QuotaStatus | None = None,
    ) -> None:
        """Record one processed request against the matched counter or bonus."""
        email = normalize_optional_email(email)
        if status is not None and status.is_admin:
            return
        try:
            if status is not None and status.uses_bonus and status.bonus_id is not None:
                self.bonus.consume_one(status.bonus_id)
                return
            self._increment(ip, endpoint, email)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to record usage for %s/%s on %s: %s", email, ip, endpoint, exc)

    def _increment(self, ip: str, endpoint: str, email: str | None) -> None:
        now = self.clock()
        day = utc_day(now)
        row = self.find_counter(ip, endpoint, email, day)
        if row is None:
            self.db.add(
                RateLimit(
                    ip_address=ip,
                    user_email=email,
                    endpoint=endpoint,
                    request_count=1,
                    date=day,
                    last_request_at=now,
                )
            )
        else:
            row.request_count = int(row.request_count or 0) + 1
            row.last_request_at = now
            row.user_email = email or row.user_email
        self.db.commit()

    def _on_read_failure(
        self,
        exc: SQLAlchemyError,
        ip: str,
        endpoint: str,
        email: str | None,
        entitlement: Entitlement,
        limit: int,
    ) -> QuotaStatus:
        self.db.rollback()
        if self.on_store_error is StoreErrorPolicy.REJECT:
            raise StoreUnavailableError("Quota store unavailable") from exc
        logger.error(
            "Quota check failed for %s/%s on %s; admitting request: %s",
            email,
            ip,
            endpoint,
            exc,
        )
        return QuotaStatus(
            allowed=True,
            current=0,
            limit=limit,
            is_premium=entitlement.is_premium,
            email=email,
        )
