"""Email capture endpoints: bonus unlocks, premium sign-ups and usage lookups."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Annotated

from fastapi import APIRouter, Query, Response
from pydantic import EmailStr
from sqlalchemy.exc import SQLAlchemyError

from crypto_clarity.api.v1.dependencies import (
    AllowListDep,
    AuditDep,
    CallerDep,
    GateDep,
    ResolverDep,
    SessionDep,
)
from crypto_clarity.models.audit import SCAN_TYPE_PREMIUM
from crypto_clarity.schemas import (
    AdminCheckResponse,
    BonusActivateRequest,
    BonusActivateResponse,
    SubscribeRequest,
    SubscribeResponse,
    UsageStatsResponse,
)
from crypto_clarity.schemas.account import BonusPromptsStatus, UsageTotals
from crypto_clarity.services.audit import FEATURE_BONUS_PROMPTS, FEATURE_PREMIUM_SUBSCRIPTION
from crypto_clarity.services.errors import StoreUnavailableError
from crypto_clarity.services.user_service import create_or_update_user, get_user_by_email
from crypto_clarity.utils.email import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["account"])


@router.post("/activate-bonus", response_model=BonusActivateResponse)
async def activate_bonus(
    payload: BonusActivateRequest,
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    audit: AuditDep,
) -> BonusActivateResponse:
    """Unlock today's bonus allowance for an email; repeat calls report the existing one."""
    caller = caller.with_email(payload.email)
    entitlement = resolver.resolve(caller.email)
    quota, headers = gate.admit(caller, entitlement)
    response.headers.update(headers)

    ledger = gate.ledger.bonus
    try:
        bonus, created = ledger.activate(caller.email, caller.ip)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Bonus activation failed for %s", caller.email)
        raise StoreUnavailableError("Bonus store unavailable", headers) from exc

    if created:
        audit.record_premium_interest(
            caller.email,
            FEATURE_BONUS_PROMPTS,
            was_admin=entitlement.is_admin,
            details={"source": "email_unlock", "ip_address": caller.ip},
        )
        bonus_prompts = BonusPromptsStatus(
            has_bonus_prompts=True,
            remaining_bonus_prompts=ledger.max_bonus,
            already_used_today=False,
        )
        message = (
            "Bonus prompts successfully activated! "
            f"You now have {ledger.max_bonus} additional prompts for today."
        )
    else:
        current = ledger.status_of(bonus)
        bonus_prompts = BonusPromptsStatus(
            has_bonus_prompts=current.has_bonus,
            remaining_bonus_prompts=current.remaining,
            already_used_today=current.used_today,
        )
        message = (
            f"You have {current.remaining} bonus prompts remaining for today."
            if current.has_bonus
            else "You've already used all your bonus prompts for today."
        )

    gate.commit(caller, quota)
    return BonusActivateResponse(
        success=True,
        message=message,
        already_activated=not created,
        bonus_prompts=bonus_prompts,
    )


@router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe(
    payload: SubscribeRequest,
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    allow_list: AllowListDep,
    audit: AuditDep,
) -> SubscribeResponse:
    """Record premium interest; supplying the email is enough to be flagged premium."""
    caller = caller.with_email(payload.email)
    quota, headers = gate.admit(caller, resolver.resolve(caller.email))
    response.headers.update(headers)

    updates = {"is_premium": True, "requested_premium": True}
    if payload.subscribe_to_newsletter:
        updates["subscribed_to_blog"] = True
    try:
        user = create_or_update_user(db, caller.email, allow_list=allow_list, **updates)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Subscription failed for %s", caller.email)
        raise StoreUnavailableError("User store unavailable", headers) from exc

    source = payload.source or "direct"
    audit.record_premium_interest(
        user.email,
        FEATURE_PREMIUM_SUBSCRIPTION,
        was_admin=user.is_admin,
        details={"source": source, "subscribe_to_newsletter": payload.subscribe_to_newsletter},
    )
    logger.info("New subscriber %s from %s (admin=%s)", user.email, source, user.is_admin)

    gate.commit(caller, quota)
    return SubscribeResponse(success=True, message="Subscription successful", is_admin=user.is_admin)


@router.get("/check-admin", response_model=AdminCheckResponse)
async def check_admin(
    email: Annotated[EmailStr, Query()],
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    allow_list: AllowListDep,
) -> AdminCheckResponse:
    """Report whether a user record exists for ``email`` and its flags."""
    quota, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)

    normalized = normalize_email(email)
    user = get_user_by_email(db, normalized)
    gate.commit(caller, quota)
    if user is None:
        return AdminCheckResponse(
            email=normalized,
            exists=False,
            is_admin=allow_list.contains(normalized),
            message="User not found",
        )
    return AdminCheckResponse(
        email=normalized,
        exists=True,
        is_admin=bool(user.is_admin or allow_list.contains(normalized)),
        joined_at=user.joined_at,
        subscribed_to_blog=user.subscribed_to_blog,
        requested_premium=user.requested_premium,
    )


@router.get("/usage-stats", response_model=UsageStatsResponse)
async def usage_stats(
    email: Annotated[EmailStr, Query()],
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    allow_list: AllowListDep,
    audit: AuditDep,
) -> UsageStatsResponse:
    """Aggregate the scan and premium-interest history of one email."""
    quota, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)

    normalized = normalize_email(email)
    user = get_user_by_email(db, normalized)
    scans = audit.scans_for(normalized)
    premium_requests = audit.premium_requests_for(normalized)

    gate.commit(caller, quota)
    return UsageStatsResponse(
        email=normalized,
        user_exists=user is not None,
        is_admin=bool((user is not None and user.is_admin) or allow_list.contains(normalized)),
        stats=UsageTotals(
            total_scans=len(scans),
            premium_scans=sum(1 for scan in scans if scan.scan_type == SCAN_TYPE_PREMIUM),
            premium_feature_requests=len(premium_requests),
            last_activity=scans[0].timestamp if scans else None,
        ),
        scan_types=dict(Counter(scan.scan_type for scan in scans)),
        requested_features=[item.feature_requested for item in premium_requests],
    )
