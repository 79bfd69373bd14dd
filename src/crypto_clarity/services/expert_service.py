"""Expert investigation requests and their admin-driven status workflow."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from crypto_clarity.db.time import Clock, utcnow
from crypto_clarity.models.expert_request import (
    EXPERT_STATUS_COMPLETED,
    EXPERT_STATUS_DECLINED,
    EXPERT_STATUSES,
    ExpertRequest,
)
from crypto_clarity.services.addresses import merge_address_groups
from crypto_clarity.services.errors import NotFoundError
from crypto_clarity.utils.email import normalize_optional_email

logger = logging.getLogger(__name__)

_CLOSED_STATUSES = frozenset({EXPERT_STATUS_COMPLETED, EXPERT_STATUS_DECLINED})


def create_expert_request(
    db: Session,
    *,
    scenario: str,
    suspicious_address: str | None = None,
    user_address: str | None = None,
    extracted_addresses: Iterable[str] = (),
    notes: str | None = None,
    email: str | None = None,
    was_admin: bool = False,
) -> ExpertRequest:
    """Persist a new request in ``pending`` status.

    ``address`` keeps the highest-precedence address; ``address_data`` keeps
    every supplied address with its role.
    """
    labeled = merge_address_groups(suspicious_address, user_address, extracted_addresses)
    request = ExpertRequest(
        scenario=scenario,
        address=labeled[0].address if labeled else None,
        address_data=[item.as_dict() for item in labeled],
        notes=notes or None,
        user_email=normalize_optional_email(email),
        was_admin=was_admin,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info("Expert request %s submitted by %s", request.id, request.user_email or "anonymous")
    return request


def list_expert_requests(db: Session) -> list[ExpertRequest]:
    """Return all requests, newest first."""
    return (
        db.query(ExpertRequest)
        .order_by(ExpertRequest.request_date.desc(), ExpertRequest.id.desc())
        .all()
    )


def update_expert_request(
    db: Session,
    request_id: int,
    *,
    status: str,
    assigned_to: str | None = None,
    clock: Clock = utcnow,
) -> ExpertRequest:
    """Move a request to ``status``; closing it stamps ``completed_date``."""
    if status not in EXPERT_STATUSES:
        raise ValueError(f"Unknown expert request status: {status}")

    request = db.get(ExpertRequest, request_id)
    if request is None:
        raise NotFoundError(f"Expert request {request_id} not found")

    request.status = status
    if assigned_to is not None:
        request.assigned_to = assigned_to
    request.completed_date = clock() if status in _CLOSED_STATUSES else None
    db.commit()
    db.refresh(request)
    logger.info("Expert request %s moved to %s", request_id, status)
    return request
