"""Email normalization shared by identity, quota and admin checks."""

from __future__ import annotations


def normalize_email(email: str) -> str:
    """Return the canonical (trimmed, lower-cased) form of an email."""
    return email.strip().lower()


def normalize_optional_email(email: str | None) -> str | None:
    """Normalize ``email`` and map blank values to None."""
    if email is None:
        return None
    normalized = normalize_email(email)
    return normalized or None
