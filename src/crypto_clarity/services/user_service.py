"""CRUD-style helpers for managing email-identified users."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crypto_clarity.models.user import User
from crypto_clarity.services.admins import AdminAllowList
from crypto_clarity.utils.email import normalize_email

__all__ = [
    "normalize_email",
    "get_user_by_email",
    "create_or_update_user",
    "mark_admin",
]

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"is_premium", "subscribed_to_blog", "requested_premium"})


def get_user_by_email(db: Session, email: str) -> User | None:
    """Return the user with the given (normalized) email, if any."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def _apply_updates(user: User, updates: dict[str, Any], admin: bool) -> None:
    for key, value in updates.items():
        setattr(user, key, value)
    # Admin status only ever turns on through this path.
    user.is_admin = bool(admin or user.is_admin)


def create_or_update_user(
    db: Session,
    email: str,
    *,
    allow_list: AdminAllowList | None = None,
    is_admin: bool = False,
    **updates: Any,
) -> User:
    """Create the user for ``email`` or merge ``updates`` into the existing row.

    ``is_admin`` is OR-ed with the stored flag and allow-list membership. A
    concurrent insert of the same email is resolved by updating the row that
    won the race.
    """
    unknown = set(updates) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported user fields: {sorted(unknown)}")

    normalized = normalize_email(email)
    admin = bool(is_admin or (allow_list is not None and allow_list.contains(normalized)))

    user = get_user_by_email(db, normalized)
    if user is None:
        candidate = User(email=normalized, is_admin=admin, **updates)
        try:
            with db.begin_nested():
                db.add(candidate)
            user = candidate
        except IntegrityError:
            logger.info("Concurrent user creation for %s; updating existing row", normalized)
            user = get_user_by_email(db, normalized)
            if user is None:
                raise
            _apply_updates(user, updates, admin)
    else:
        _apply_updates(user, updates, admin)

    db.commit()
    db.refresh(user)
    return user


def mark_admin(db: Session, email: str) -> User | None:
    """Flag an existing user as admin; returns None when no such user exists."""
    user = get_user_by_email(db, email)
    if user is None:
        return None
    user.is_admin = True
    db.commit()
    db.refresh(user)
    return user
