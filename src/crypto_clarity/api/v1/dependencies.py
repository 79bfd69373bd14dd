"""Shared API dependencies: caller identity, sessions and service wiring.

Every service is built per request from the request's session. Tests swap
the process-wide collaborators (allow-list, clock, blockchain client and
language model) through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Header, Query, Request
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from crypto_clarity.db.session import get_db
from crypto_clarity.db.time import Clock, utcnow
from crypto_clarity.services.admins import AdminAllowList, get_admin_allow_list
from crypto_clarity.services.assistant import CryptoAssistant, get_assistant
from crypto_clarity.services.audit import AuditLogger
from crypto_clarity.services.entitlement import EntitlementResolver
from crypto_clarity.services.errors import StoreErrorPolicy
from crypto_clarity.services.etherscan import EtherscanClient, get_etherscan_client
from crypto_clarity.services.gate import CallerContext, QuotaGate
from crypto_clarity.services.onchain import OnChainAnalyzer
from crypto_clarity.services.orchestrator import AssessmentOrchestrator
from crypto_clarity.services.quota import BonusLedger, QuotaLedger
from crypto_clarity.utils.email import normalize_email

UNKNOWN_IP = "0.0.0.0"

_email_adapter = TypeAdapter(EmailStr)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_client_ip(request: Request) -> str:
    """Return the first ``X-Forwarded-For`` hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return UNKNOWN_IP


def endpoint_category(path: str) -> str:
    """Collapse a path to its first two segments: ``/api/translate/recent`` -> ``/api/translate``."""
    segments = [segment for segment in path.split("/") if segment]
    return "/" + "/".join(segments[:2])


def _valid_email(value: str | None) -> str | None:
    if not value or not value.strip():
        return None
    try:
        return normalize_email(_email_adapter.validate_python(value.strip()))
    except ValidationError:
        return None


def get_caller(
    request: Request,
    email: Annotated[str | None, Query(include_in_schema=False)] = None,
    x_user_email: Annotated[str | None, Header(include_in_schema=False)] = None,
) -> CallerContext:
    """Identify the caller from the query string or ``X-User-Email``.

    Endpoints with a body email call ``CallerContext.with_email`` so the
    validated body value takes precedence. Malformed emails are ignored here.
    """
    return CallerContext(
        ip=get_client_ip(request),
        endpoint=endpoint_category(request.url.path),
        email=_valid_email(email) or _valid_email(x_user_email),
    )


def get_allow_list() -> AdminAllowList:
    return get_admin_allow_list()


def get_clock() -> Clock:
    return utcnow


AllowListDep = Annotated[AdminAllowList, Depends(get_allow_list)]
ClockDep = Annotated[Clock, Depends(get_clock)]
CallerDep = Annotated[CallerContext, Depends(get_caller)]


def get_resolver(db: SessionDep, allow_list: AllowListDep) -> EntitlementResolver:
    """Resolver for quota and feature checks; store failures fail open."""
    return EntitlementResolver(db, allow_list)


def get_admin_resolver(db: SessionDep, allow_list: AllowListDep) -> EntitlementResolver:
    """Resolver for admin-only operations; store failures reject the request."""
    return EntitlementResolver(db, allow_list, on_store_error=StoreErrorPolicy.REJECT)


ResolverDep = Annotated[EntitlementResolver, Depends(get_resolver)]
AdminResolverDep = Annotated[EntitlementResolver, Depends(get_admin_resolver)]


def get_quota_ledger(db: SessionDep, resolver: ResolverDep, clock: ClockDep) -> QuotaLedger:
    return QuotaLedger(db, resolver, BonusLedger(db, clock=clock), clock=clock)


def get_gate(ledger: Annotated[QuotaLedger, Depends(get_quota_ledger)], clock: ClockDep) -> QuotaGate:
    return QuotaGate(ledger, clock=clock)


GateDep = Annotated[QuotaGate, Depends(get_gate)]


def get_etherscan() -> EtherscanClient:
    return get_etherscan_client()


def get_analyzer(
    client: Annotated[EtherscanClient, Depends(get_etherscan)],
    clock: ClockDep,
) -> OnChainAnalyzer:
    return OnChainAnalyzer(client, clock=clock)


def get_crypto_assistant() -> CryptoAssistant:
    return get_assistant()


def get_audit(db: SessionDep) -> AuditLogger:
    return AuditLogger(db)


AuditDep = Annotated[AuditLogger, Depends(get_audit)]


def get_orchestrator(
    db: SessionDep,
    resolver: ResolverDep,
    gate: GateDep,
    analyzer: Annotated[OnChainAnalyzer, Depends(get_analyzer)],
    assistant: Annotated[CryptoAssistant, Depends(get_crypto_assistant)],
    audit: AuditDep,
) -> AssessmentOrchestrator:
    return AssessmentOrchestrator(db, resolver, gate, analyzer, assistant, audit)


OrchestratorDep = Annotated[AssessmentOrchestrator, Depends(get_orchestrator)]
