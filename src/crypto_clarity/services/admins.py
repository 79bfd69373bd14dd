"""Process-wide admin allow-list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from threading import Lock

from crypto_clarity.core.settings import settings
from crypto_clarity.utils.email import normalize_email

logger = logging.getLogger(__name__)


def _dedupe(emails: Iterable[str]) -> tuple[str, ...]:
    normalized = (normalize_email(email) for email in emails if email and email.strip())
    return tuple(dict.fromkeys(normalized))


class AdminAllowList:
    """Normalized admin emails held as an immutable tuple.

    Writers build a new tuple and swap the reference under a lock, so readers
    always see either the old or the new list in full.
    """

    def __init__(self, emails: Iterable[str] = ()) -> None:
        self._emails: tuple[str, ...] = _dedupe(emails)
        self._write_lock = Lock()

    def contains(self, email: str | None) -> bool:
        if not email:
            return False
        return normalize_email(email) in self._emails

    def snapshot(self) -> list[str]:
        return list(self._emails)

    def add(self, email: str) -> bool:
        """Add ``email``; returns False if it was already listed."""
        normalized = normalize_email(email)
        with self._write_lock:
            current = self._emails
            if normalized in current:
                return False
            self._emails = (*current, normalized)
        logger.info("Added %s to the admin allow-list", normalized)
        return True

    def replace(self, emails: Iterable[str]) -> None:
        new_emails = _dedupe(emails)
        with self._write_lock:
            self._emails = new_emails

    def __len__(self) -> int:
        return len(self._emails)


_allow_list = AdminAllowList(settings.admin_emails)


def get_admin_allow_list() -> AdminAllowList:
    """Return the allow-list seeded from ``ADMIN_EMAILS`` at startup."""
    return _allow_list
