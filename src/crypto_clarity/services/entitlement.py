"""Caller entitlement: admin, premium or free."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crypto_clarity.core.settings import PremiumPolicy, settings
from crypto_clarity.models.user import User
from crypto_clarity.services.admins import AdminAllowList
from crypto_clarity.services.errors import StoreErrorPolicy, StoreUnavailableError
from crypto_clarity.services.user_service import create_or_update_user, get_user_by_email
from crypto_clarity.utils.email import normalize_optional_email

logger = logging.getLogger(__name__)

TIER_ADMIN = "admin"
TIER_PREMIUM = "premium"
TIER_FREE = "free"


@dataclass(frozen=True)
class Entitlement:
    """Resolved flags for one caller within one request."""

    email: str | None = None
    is_admin: bool = False
    is_premium: bool = False

    @property
    def tier(self) -> str:
        if self.is_admin:
            return TIER_ADMIN
        if self.is_premium:
            return TIER_PREMIUM
        return TIER_FREE

    @property
    def can_use_premium_features(self) -> bool:
        return self.is_admin or self.is_premium


ANONYMOUS = Entitlement()


def is_premium_claim(
    email: str | None,
    user: User | None = None,
    policy: PremiumPolicy = PremiumPolicy.EMAIL_PRESENCE,
) -> bool:
    """Decide whether a caller gets the premium ceiling.

    Under ``EMAIL_PRESENCE`` any supplied email counts, which mirrors the
    product as shipped (there is no billing). ``STORED_FLAG`` requires the
    user record to carry ``is_premium``; swap policies here, not in callers.
    """
    if not email:
        return False
    if policy is PremiumPolicy.STORED_FLAG:
        return bool(user is not None and user.is_premium)
    return True


class EntitlementResolver:
    """Resolve entitlement from an optional email, upserting the user record."""

    def __init__(
        self,
        db: Session,
        allow_list: AdminAllowList,
        *,
        premium_policy: PremiumPolicy | None = None,
        on_store_error: StoreErrorPolicy = StoreErrorPolicy.ADMIT,
    ) -> None:
        self.db = db
        self.allow_list = allow_list
        self.premium_policy = premium_policy or settings.premium_policy
        self.on_store_error = on_store_error

    def resolve(self, email: str | None, *, upsert: bool = True) -> Entitlement:
        """Return the caller's flags; with ``upsert=False`` no user row is written."""
        normalized = normalize_optional_email(email)
        if normalized is None:
            return ANONYMOUS

        listed = self.allow_list.contains(normalized)
        try:
            if upsert:
                user = create_or_update_user(self.db, normalized, allow_list=self.allow_list)
            else:
                user = get_user_by_email(self.db, normalized)
        except SQLAlchemyError as exc:
            self.db.rollback()
            if self.on_store_error is StoreErrorPolicy.REJECT:
                raise StoreUnavailableError("User store unavailable") from exc
            logger.error(
                "Entitlement lookup failed for %s; treating caller as free: %s",
                normalized,
                exc,
            )
            return Entitlement(email=normalized)

        return Entitlement(
            email=normalized,
            is_admin=bool(listed or (user is not None and user.is_admin)),
            is_premium=is_premium_claim(normalized, user, self.premium_policy),
        )

    def is_admin(self, email: str | None) -> bool:
        """Check admin status without creating a user record."""
        normalized = normalize_optional_email(email)
        if normalized is None:
            return False
        if self.allow_list.contains(normalized):
            return True
        try:
            user = get_user_by_email(self.db, normalized)
        except SQLAlchemyError as exc:
            self.db.rollback()
            if self.on_store_error is StoreErrorPolicy.REJECT:
                raise StoreUnavailableError("User store unavailable") from exc
            logger.error("Admin lookup failed for %s: %s", normalized, exc)
            return False
        return bool(user is not None and user.is_admin)
