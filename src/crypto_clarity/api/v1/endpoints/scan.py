"""Scam risk assessment endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crypto_clarity.api.v1.dependencies import CallerDep, OrchestratorDep
from crypto_clarity.schemas import ScanRequest, ScanResponse
from crypto_clarity.services.orchestrator import ScanInput

router = APIRouter(tags=["scan"])


@router.post("/check-scam", response_model=ScanResponse)
async def check_scam(
    payload: ScanRequest,
    response: Response,
    caller: CallerDep,
    orchestrator: OrchestratorDep,
) -> ScanResponse:
    """Assess a described interaction and any addresses involved.

    ``advanced`` scans run the deep on-chain analysis and need premium or
    admin entitlement.
    """
    result, headers = await orchestrator.scan(
        caller.with_email(payload.email),
        ScanInput(
            scenario=payload.scenario,
            suspicious_address=payload.suspicious_address,
            user_address=payload.user_address,
            extracted_addresses=list(payload.extracted_addresses),
            scan_type=payload.scan_type,
        ),
    )
    response.headers.update(headers)
    return ScanResponse.model_validate(result)
