"""Request flow for term explanations and scam scans.

Both flows resolve the caller, pass the quota gate, produce a result (from
cache or from the model) and only then charge the quota. A failed model call
therefore costs the caller nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crypto_clarity.core.settings import settings
from crypto_clarity.models.audit import (
    INPUT_TYPE_ADDRESS_ONLY,
    INPUT_TYPE_BOTH,
    INPUT_TYPE_SCENARIO_ONLY,
    SCAN_TYPE_FREE,
    SCAN_TYPE_PREMIUM,
)
from crypto_clarity.models.cache import CryptoTerm, ScamCheck
from crypto_clarity.services.addresses import (
    AddressRole,
    LabeledAddress,
    extract_addresses,
    merge_address_groups,
)
from crypto_clarity.services.assistant import (
    AUDIENCE_BEGINNER,
    CryptoAssistant,
    LanguageModelError,
    ScamAssessment,
)
from crypto_clarity.services.audit import (
    FEATURE_ADVANCED_SCAN,
    FEATURE_WALLET_ANALYSIS,
    AuditLogger,
)
from crypto_clarity.services.entitlement import EntitlementResolver
from crypto_clarity.services.errors import (
    AssessmentFailedError,
    PremiumFeatureRequiredError,
    quota_headers_on_error,
)
from crypto_clarity.services.gate import CallerContext, QuotaGate
from crypto_clarity.services.onchain import AnalysisTier, LabeledAnalysis, OnChainAnalyzer
from crypto_clarity.services.report import render_sections

logger = logging.getLogger(__name__)

SCAN_BASIC = "basic"
SCAN_ADVANCED = "advanced"
RECENT_TERMS_LIMIT = 5


@dataclass
class ScanInput:
    scenario: str | None = None
    suspicious_address: str | None = None
    user_address: str | None = None
    extracted_addresses: list[str] = field(default_factory=list)
    scan_type: str = SCAN_BASIC

    @property
    def has_scenario(self) -> bool:
        return bool(self.scenario and self.scenario.strip())

    @property
    def is_advanced(self) -> bool:
        return self.scan_type == SCAN_ADVANCED


def normalize_term(term: str) -> str:
    return " ".join(term.split()).lower()


def classify_input(has_scenario: bool, has_addresses: bool) -> str:
    if has_scenario and has_addresses:
        return INPUT_TYPE_BOTH
    if has_addresses:
        return INPUT_TYPE_ADDRESS_ONLY
    return INPUT_TYPE_SCENARIO_ONLY


def placeholder_scenario(address_count: int) -> str:
    target = "these addresses" if address_count > 1 else "this address"
    return f"Please analyze {target} for any security concerns."


def address_context(analyses: list[LabeledAnalysis]) -> str:
    """Concatenate per-address summaries for the model prompt."""
    return "\n\n".join(
        f"--- {item.labeled.role.value.upper()} ADDRESS ANALYSIS ---\n"
        f"{item.analysis.summary_for_prompt}"
        for item in analyses
    )


class AssessmentOrchestrator:
    def __init__(
        self,
        db: Session,
        resolver: EntitlementResolver,
        gate: QuotaGate,
        analyzer: OnChainAnalyzer,
        assistant: CryptoAssistant,
        audit: AuditLogger | None = None,
        *,
        onchain_max_chars: int | None = None,
    ) -> None:
        self.db = db
        self.resolver = resolver
        self.gate = gate
        self.analyzer = analyzer
        self.assistant = assistant
        self.audit = audit or AuditLogger(db)
        self.onchain_max_chars = (
            settings.scan_log_onchain_max_chars if onchain_max_chars is None else onchain_max_chars
        )

    # Term explanations

    def cached_term(self, term: str) -> CryptoTerm | None:
        try:
            return self.db.query(CryptoTerm).filter(CryptoTerm.term == normalize_term(term)).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Term cache lookup failed for %r: %s", term, exc)
            return None

    def recent_terms(self, limit: int = RECENT_TERMS_LIMIT) -> list[CryptoTerm]:
        return (
            self.db.query(CryptoTerm)
            .order_by(CryptoTerm.created_at.desc(), CryptoTerm.id.desc())
            .limit(limit)
            .all()
        )

    def _store_term(self, term: str, explanation: str, related_terms: list[str]) -> None:
        try:
            with self.db.begin_nested():
                self.db.add(
                    CryptoTerm(
                        term=normalize_term(term),
                        explanation=explanation,
                        related_terms=related_terms,
                    )
                )
            self.db.commit()
        except IntegrityError:
            # Another request cached the term first; keep its explanation.
            self.db.rollback()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to cache explanation for %r", term)

    async def translate(
        self, caller: CallerContext, term: str, audience: str = AUDIENCE_BEGINNER
    ) -> tuple[dict[str, Any], dict[str, str]]:
        term = term.strip()
        entitlement = self.resolver.resolve(caller.email)
        status, headers = self.gate.admit(caller, entitlement)

        cached = self.cached_term(term) if audience == AUDIENCE_BEGINNER else None
        if cached is not None:
            explanation, related = cached.explanation, list(cached.related_terms or [])
        else:
            try:
                result = await self.assistant.translate_term(term, audience)
            except LanguageModelError as exc:
                logger.error(
                    "Explanation failed for %r (%s) on %s: %s", term, audience, caller.endpoint, exc
                )
                raise AssessmentFailedError(str(exc), headers) from exc
            explanation, related = result.explanation, result.related_terms
            if audience == AUDIENCE_BEGINNER:
                self._store_term(term, explanation, related)

        self.gate.commit(caller, status)
        response = {
            "term": term,
            "explanation": explanation,
            "relatedTerms": related,
            "isAdmin": entitlement.is_admin,
        }
        return response, headers

    # Scam scans

    def cached_scan(self, scenario: str) -> ScamCheck | None:
        try:
            return (
                self.db.query(ScamCheck)
                .filter(ScamCheck.scenario == scenario)
                .order_by(ScamCheck.id.desc())
                .first()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Scan cache lookup failed: %s", exc)
            return None

    def _store_scan(self, scenario: str, assessment: ScamAssessment) -> None:
        try:
            self.db.add(
                ScamCheck(
                    scenario=scenario,
                    address=None,
                    risk_level=assessment.risk_level,
                    summary=assessment.summary,
                    red_flags=assessment.red_flags,
                    safety_tips=assessment.safety_tips,
                    address_analysis=assessment.address_analysis or "",
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to cache scan result")

    async def scan(
        self, caller: CallerContext, request: ScanInput
    ) -> tuple[dict[str, Any], dict[str, str]]:
        entitlement = self.resolver.resolve(caller.email)
        status, headers = self.gate.admit(caller, entitlement)

        if request.is_advanced and not entitlement.can_use_premium_features:
            if caller.email:
                self.audit.record_premium_interest(
                    caller.email,
                    FEATURE_WALLET_ANALYSIS,
                    details={"scan_type": SCAN_ADVANCED, "endpoint": caller.endpoint},
                )
            raise PremiumFeatureRequiredError(FEATURE_WALLET_ANALYSIS, headers)

        scenario = request.scenario.strip() if request.has_scenario else None
        labeled = merge_address_groups(
            request.suspicious_address,
            request.user_address,
            [*request.extracted_addresses, *extract_addresses(scenario)],
        )
        tier = AnalysisTier.DEEP if request.is_advanced else AnalysisTier.BASIC
        analyses = await self.analyzer.analyze_many(labeled, tier) if labeled else []
        on_chain_data = render_sections(
            (item.section_title, item.analysis.report) for item in analyses
        )

        cacheable = not request.is_advanced and not labeled and scenario is not None
        cached = self.cached_scan(scenario) if cacheable else None
        if cached is not None:
            assessment = ScamAssessment(
                risk_level=cached.risk_level,
                summary=cached.summary,
                red_flags=list(cached.red_flags or []),
                safety_tips=list(cached.safety_tips or []),
                address_analysis=cached.address_analysis or None,
            )
        else:
            with quota_headers_on_error(headers):
                assessment = await self._assess(caller, scenario, labeled, analyses)
            if cacheable:
                self._store_scan(scenario, assessment)

        response = {
            "riskLevel": assessment.risk_level,
            "summary": assessment.summary,
            "redFlags": assessment.red_flags,
            "safetyTips": assessment.safety_tips,
            "addressAnalysis": assessment.address_analysis or "",
            "onChainData": on_chain_data,
            "isAdmin": entitlement.is_admin,
        }

        self.gate.commit(caller, status)
        self._log_scan(
            caller, request, scenario, labeled, analyses, on_chain_data, assessment, entitlement.is_admin
        )
        return response, headers

    async def _assess(
        self,
        caller: CallerContext,
        scenario: str | None,
        labeled: list[LabeledAddress],
        analyses: list[LabeledAnalysis],
    ) -> ScamAssessment:
        prompt_scenario = scenario if scenario is not None else placeholder_scenario(len(labeled))
        try:
            return await self.assistant.assess_scenario(
                prompt_scenario,
                address_context(analyses),
                address_only=scenario is None,
            )
        except LanguageModelError as exc:
            logger.error(
                "Scam assessment failed on %s for %s (%d addresses): %s",
                caller.endpoint,
                caller.email or caller.ip,
                len(labeled),
                exc,
            )
            raise AssessmentFailedError(str(exc)) from exc

    def _log_scan(
        self,
        caller: CallerContext,
        request: ScanInput,
        scenario: str | None,
        labeled: list[LabeledAddress],
        analyses: list[LabeledAnalysis],
        on_chain_data: str,
        assessment: ScamAssessment,
        is_admin: bool,
    ) -> None:
        etherscan_data: dict[str, Any] = {}
        if on_chain_data:
            etherscan_data = {
                "rawData": on_chain_data[: self.onchain_max_chars],
                "addresses": [item.address for item in labeled],
                "facts": [item.analysis.facts for item in analyses],
            }
        self.audit.record_scan(
            scan_type=SCAN_TYPE_PREMIUM if request.is_advanced else SCAN_TYPE_FREE,
            input_type=classify_input(scenario is not None, bool(labeled)),
            scenario=scenario,
            submitted_address_1=request.suspicious_address,
            submitted_address_2=request.user_address,
            extracted_addresses=[
                item.address for item in labeled if item.role is AddressRole.EXTRACTED
            ],
            user_email=caller.email,
            admin_override_used=is_admin,
            risk_level=assessment.risk_level,
            ai_summary=assessment.summary,
            etherscan_data=etherscan_data,
            scan_result={
                "riskLevel": assessment.risk_level,
                "summary": assessment.summary,
                "redFlags": assessment.red_flags,
                "safetyTips": assessment.safety_tips,
            },
        )
        if request.is_advanced and caller.email:
            self.audit.record_premium_interest(
                caller.email,
                FEATURE_ADVANCED_SCAN,
                was_admin=is_admin,
                details={
                    "scan_type": SCAN_ADVANCED,
                    "has_addresses": bool(labeled),
                    "has_scenario": scenario is not None,
                },
            )
