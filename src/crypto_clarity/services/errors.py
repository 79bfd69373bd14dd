"""Exceptions shared by the request-handling services.

Each exception carries what the HTTP layer needs to render a complete,
user-facing JSON body; handlers are registered in ``crypto_clarity.main``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any


class StoreErrorPolicy(str, Enum):
    """What a check does when the record store cannot be read."""

    ADMIT = "admit"
    REJECT = "reject"


class ClarityError(Exception):
    """Base class for expected, user-facing failures.

    ``headers`` are sent with the rendered error response.
    """

    def __init__(self, message: str = "", headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.headers = dict(headers or {})


class StoreUnavailableError(ClarityError):
    """Raised when a store-gated operation runs under the ``reject`` policy."""


class QuotaExceededError(ClarityError):
    """The caller used up the daily allowance and any bonus units."""

    def __init__(self, payload: dict[str, Any], headers: dict[str, str] | None = None) -> None:
        super().__init__(payload.get("message", "Rate limit exceeded"), headers)
        self.payload = payload


class PremiumFeatureRequiredError(ClarityError):
    """The requested feature needs premium or admin entitlement."""

    def __init__(self, premium_feature: str, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            "This feature requires a premium subscription. Please upgrade to access.", headers
        )
        self.premium_feature = premium_feature

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": "Premium feature",
            "message": str(self),
            "isPremium": False,
            "premiumFeature": self.premium_feature,
        }


class AdminRequiredError(ClarityError):
    """An admin-only operation was attempted by a non-admin caller."""

    def __init__(
        self, action: str = "perform this action", headers: dict[str, str] | None = None
    ) -> None:
        super().__init__(f"Access denied. You must be an admin to {action}.", headers)


class NotFoundError(ClarityError):
    """A referenced record does not exist."""


class AssessmentFailedError(ClarityError):
    """The language model could not produce a result for this request."""

    public_message = "We could not complete this analysis right now. Please try again."


@contextmanager
def quota_headers_on_error(headers: dict[str, str]) -> Iterator[None]:
    """Attach admission headers to any ``ClarityError`` raised in the block."""
    try:
        yield
    except ClarityError as exc:
        exc.headers = {**headers, **exc.headers}
        raise
