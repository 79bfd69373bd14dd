"""Admin allow-list management."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Query, Response
from sqlalchemy.exc import SQLAlchemyError

from crypto_clarity.api.v1.dependencies import (
    AdminResolverDep,
    AllowListDep,
    CallerDep,
    GateDep,
    ResolverDep,
    SessionDep,
)
from crypto_clarity.schemas import AdminAddRequest, AdminEmailsResponse
from crypto_clarity.services.errors import AdminRequiredError, quota_headers_on_error
from crypto_clarity.services.user_service import mark_admin
from crypto_clarity.utils.email import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin-emails", tags=["admin"])


@router.get("", response_model=AdminEmailsResponse)
async def get_admin_emails(
    email: Annotated[str, Query(min_length=3)],
    response: Response,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    admin_resolver: AdminResolverDep,
    allow_list: AllowListDep,
) -> AdminEmailsResponse:
    quota, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)
    with quota_headers_on_error(headers):
        if not admin_resolver.is_admin(email):
            raise AdminRequiredError("view the admin list")

    emails = allow_list.snapshot()
    gate.commit(caller, quota)
    return AdminEmailsResponse(admin_emails=emails, count=len(emails))


@router.post("", response_model=AdminEmailsResponse)
async def add_admin_email(
    payload: AdminAddRequest,
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    admin_resolver: AdminResolverDep,
    allow_list: AllowListDep,
) -> AdminEmailsResponse:
    """Add an email to the allow-list for the lifetime of the process."""
    caller = caller.with_email(payload.requester_email)
    quota, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)
    with quota_headers_on_error(headers):
        if not admin_resolver.is_admin(payload.requester_email):
            raise AdminRequiredError("add new admins")

    new_admin = normalize_email(payload.new_admin_email)
    added = allow_list.add(new_admin)
    try:
        mark_admin(db, new_admin)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Could not flag stored user %s as admin: %s", new_admin, exc)

    emails = allow_list.snapshot()
    gate.commit(caller, quota)
    message = (
        f"{new_admin} has been added to admin whitelist"
        if added
        else f"{new_admin} is already an admin"
    )
    return AdminEmailsResponse(admin_emails=emails, count=len(emails), message=message)
