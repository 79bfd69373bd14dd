import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from crypto_clarity.core.settings import PremiumPolicy
from crypto_clarity.models import User
from crypto_clarity.services.admins import AdminAllowList
from crypto_clarity.services.entitlement import (
    ANONYMOUS,
    EntitlementResolver,
    is_premium_claim,
)
from crypto_clarity.services.errors import StoreErrorPolicy, StoreUnavailableError
from crypto_clarity.services.user_service import create_or_update_user


def _broken_query(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_no_email_is_anonymous(resolver: EntitlementResolver) -> None:
    assert resolver.resolve(None) is ANONYMOUS
    assert resolver.resolve("   ") is ANONYMOUS
    assert ANONYMOUS.tier == "free"


def test_email_presence_policy_grants_premium(
    db_session: Session, allow_list: AdminAllowList
) -> None:
    resolver = EntitlementResolver(
        db_session, allow_list, premium_policy=PremiumPolicy.EMAIL_PRESENCE
    )

    entitlement = resolver.resolve("Someone@Example.com")

    assert entitlement.email == "someone@example.com"
    assert entitlement.is_premium is True
    assert entitlement.is_admin is False
    assert db_session.query(User).filter_by(email="someone@example.com").count() == 1


def test_stored_flag_policy_reads_user_record(
    db_session: Session, allow_list: AdminAllowList
) -> None:
    resolver = EntitlementResolver(db_session, allow_list, premium_policy=PremiumPolicy.STORED_FLAG)

    assert resolver.resolve("free@example.com").is_premium is False

    create_or_update_user(db_session, "free@example.com", is_premium=True)

    assert resolver.resolve("free@example.com").is_premium is True


def test_allow_listed_email_is_admin(resolver: EntitlementResolver) -> None:
    entitlement = resolver.resolve("ADMIN@example.com")

    assert entitlement.is_admin is True
    assert entitlement.tier == "admin"
    assert entitlement.can_use_premium_features


def test_resolve_without_upsert_writes_nothing(
    db_session: Session, resolver: EntitlementResolver
) -> None:
    resolver.resolve("reader@example.com", upsert=False)

    assert db_session.query(User).count() == 0


def test_is_premium_claim_requires_email() -> None:
    assert is_premium_claim(None) is False
    assert is_premium_claim("a@example.com", None, PremiumPolicy.STORED_FLAG) is False


def test_store_failure_fails_open_by_default(
    mocker, db_session: Session, resolver: EntitlementResolver
) -> None:
    mocker.patch(
        "crypto_clarity.services.entitlement.create_or_update_user", side_effect=_broken_query
    )

    entitlement = resolver.resolve("user@example.com")

    assert entitlement.email == "user@example.com"
    assert entitlement.is_admin is False
    assert entitlement.is_premium is False


def test_admin_check_rejects_when_store_is_down(
    mocker, db_session: Session, allow_list: AdminAllowList
) -> None:
    resolver = EntitlementResolver(
        db_session, allow_list, on_store_error=StoreErrorPolicy.REJECT
    )
    mocker.patch(
        "crypto_clarity.services.entitlement.get_user_by_email", side_effect=_broken_query
    )

    # The allow-list answers without touching the store.
    assert resolver.is_admin("admin@example.com") is True
    with pytest.raises(StoreUnavailableError):
        resolver.is_admin("someone@example.com")


def test_is_admin_uses_stored_flag(db_session: Session, resolver: EntitlementResolver) -> None:
    user = create_or_update_user(db_session, "ops@example.com")
    user.is_admin = True
    db_session.commit()

    assert resolver.is_admin("ops@example.com") is True
    assert resolver.is_admin("nobody@example.com") is False
    assert resolver.is_admin(None) is False
