"""Expert investigation requests and their admin review workflow."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from crypto_clarity.api.v1.dependencies import (
    AdminResolverDep,
    AuditDep,
    CallerDep,
    ClockDep,
    GateDep,
    ResolverDep,
    SessionDep,
)
from crypto_clarity.schemas import (
    ExpertRequestCreate,
    ExpertRequestCreated,
    ExpertRequestResponse,
    ExpertStatusUpdate,
)
from crypto_clarity.services.audit import FEATURE_EXPERT_INVESTIGATION
from crypto_clarity.services.errors import AdminRequiredError, quota_headers_on_error
from crypto_clarity.services.expert_service import (
    create_expert_request,
    list_expert_requests,
    update_expert_request,
)

router = APIRouter(tags=["expert"])

SUBMITTED_MESSAGE = "Expert investigation request submitted successfully"


@router.post(
    "/request-expert",
    response_model=ExpertRequestCreated,
    status_code=status.HTTP_201_CREATED,
)
async def request_expert(
    payload: ExpertRequestCreate,
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    audit: AuditDep,
) -> ExpertRequestCreated:
    caller = caller.with_email(payload.email)
    entitlement = resolver.resolve(caller.email)
    quota, headers = gate.admit(caller, entitlement)
    response.headers.update(headers)

    request = create_expert_request(
        db,
        scenario=payload.scenario,
        suspicious_address=payload.suspicious_address,
        user_address=payload.user_address,
        extracted_addresses=payload.extracted_addresses,
        notes=payload.notes,
        email=caller.email,
        was_admin=entitlement.is_admin,
    )
    if caller.email:
        audit.record_premium_interest(
            caller.email,
            FEATURE_EXPERT_INVESTIGATION,
            was_admin=entitlement.is_admin,
            details={
                "request_id": request.id,
                "has_addresses": bool(request.address_data),
                "scenario_length": len(payload.scenario),
            },
        )

    gate.commit(caller, quota)
    return ExpertRequestCreated(
        id=request.id,
        message=SUBMITTED_MESSAGE,
        request_date=request.request_date,
        is_admin=entitlement.is_admin,
    )


@router.get("/expert-requests", response_model=list[ExpertRequestResponse])
async def get_expert_requests(
    email: Annotated[str, Query(min_length=3)],
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    admin_resolver: AdminResolverDep,
) -> list[ExpertRequestResponse]:
    """List every request, newest first (admin only)."""
    quota, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)
    with quota_headers_on_error(headers):
        if not admin_resolver.is_admin(email):
            raise AdminRequiredError("view expert requests")

    requests = [ExpertRequestResponse.model_validate(item) for item in list_expert_requests(db)]
    gate.commit(caller, quota)
    return requests


@router.patch("/expert-requests/{request_id}", response_model=ExpertRequestResponse)
async def patch_expert_request(
    request_id: int,
    payload: ExpertStatusUpdate,
    response: Response,
    db: SessionDep,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    admin_resolver: AdminResolverDep,
    clock: ClockDep,
) -> ExpertRequestResponse:
    """Move a request through ``pending -> in_progress -> completed | declined``."""
    caller = caller.with_email(payload.requester_email)
    quota, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)
    with quota_headers_on_error(headers):
        if not admin_resolver.is_admin(payload.requester_email):
            raise AdminRequiredError("update expert requests")
        updated = update_expert_request(
            db,
            request_id,
            status=payload.status,
            assigned_to=payload.assigned_to,
            clock=clock,
        )
    gate.commit(caller, quota)
    return ExpertRequestResponse.model_validate(updated)
