"""Term explanation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crypto_clarity.api.v1.dependencies import CallerDep, GateDep, OrchestratorDep, ResolverDep
from crypto_clarity.schemas import RecentTermResponse, TranslateRequest, TranslateResponse

router = APIRouter(prefix="/translate", tags=["translate"])


@router.post("", response_model=TranslateResponse)
async def translate_term(
    payload: TranslateRequest,
    response: Response,
    caller: CallerDep,
    orchestrator: OrchestratorDep,
) -> TranslateResponse:
    """Explain a crypto term at the requested depth.

    Beginner explanations are served from and saved to the shared cache.
    """
    result, headers = await orchestrator.translate(
        caller.with_email(payload.email),
        payload.term,
        payload.audience_type,
    )
    response.headers.update(headers)
    return TranslateResponse.model_validate(result)


@router.get("/recent", response_model=list[RecentTermResponse])
async def recent_terms(
    response: Response,
    caller: CallerDep,
    gate: GateDep,
    resolver: ResolverDep,
    orchestrator: OrchestratorDep,
) -> list[RecentTermResponse]:
    """Return the most recently cached explanations."""
    status, headers = gate.admit(caller, resolver.resolve(caller.email, upsert=False))
    response.headers.update(headers)
    terms = [RecentTermResponse.model_validate(term) for term in orchestrator.recent_terms()]
    gate.commit(caller, status)
    return terms
