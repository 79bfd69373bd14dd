"""Language-model calls for term explanations and scam assessments."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from crypto_clarity.core.settings import settings

logger = logging.getLogger(__name__)

AUDIENCE_BEGINNER = "beginner"
AUDIENCE_INTERMEDIATE = "intermediate"
AUDIENCE_EXPERT = "expert"

DEFAULT_RISK_LEVEL = "Unknown Risk"
DEFAULT_SUMMARY = "Could not analyze this scenario."
DEFAULT_EXPLANATION = "Sorry, I couldn't generate an explanation for this term."

SYSTEM_PROMPT = """
You are Crypto Clarity Assistant.
Your mission is to help users navigate the cryptocurrency space with clarity, safety, and expert guidance.

When users submit a crypto term, phrase, or question:
- Explain it in clear language suitable for smart teenagers and curious adults new to crypto.
- Use practical examples where helpful.
- Maintain a professional, objective, and welcoming tone.
- Stay technology agnostic and explain all major blockchains neutrally.

When users describe a potential scam scenario or submit a blockchain address:
- If the user submits an address with no scenario text, focus on analyzing that address based on the on-chain data provided.
- If the address is a known address (such as an exchange, prominent individual, or project), emphasize this context.
- Assess the likelihood of a scam based on known fraud patterns (pig butchering, phishing, fake exchanges) and any on-chain data provided.
- For blockchain addresses, analyze wallet activity, transaction history, balance information and contract verification status.
- Classify the risk as Low, Medium, or High.
- Explain why, citing specific data points from the on-chain analysis when available.
- Offer actionable safety tips without giving financial advice.

Always prioritize user safety, education, and clarity. Remain respectful, neutral, and professional.
""".strip()

_TRANSLATE_PROMPTS = {
    AUDIENCE_BEGINNER: (
        'Please explain this crypto concept in a way a teenager or new crypto user would '
        'understand: "{term}". Use simple but accurate language, and give one practical '
        "example. Explain in 2-3 concise paragraphs. Also provide 3 related terms that "
        "someone might want to know about next."
    ),
    AUDIENCE_INTERMEDIATE: (
        'Explain this crypto term for someone with intermediate knowledge: "{term}". '
        "Provide a clear explanation in 2-3 paragraphs, using proper terminology but still "
        "explaining key concepts. Also provide 3 related terms that would be useful to "
        "understand next."
    ),
    AUDIENCE_EXPERT: (
        'Please explain this crypto term or question in an advanced, technical tone: "{term}". '
        "Include protocol-level context as appropriate and assume a solid foundation in "
        "blockchain technology and cryptography. Explain in 2-3 detailed paragraphs. Also "
        "provide 3 related advanced terms that would enrich understanding."
    ),
}

_TRANSLATE_FORMAT = (
    " Return your response as a JSON object with 'explanation' and 'relatedTerms' keys. "
    "The relatedTerms should be an array of strings."
)

_ASSESSMENT_FORMAT = """
Return a JSON object with the following format:
{
  "riskLevel": "High Risk", "Medium Risk", or "Low Risk",
  "summary": "A brief explanation covering the risk assessment and key insights",
  "redFlags": ["Specific red flags or concerns"],
  "safetyTips": ["Actionable safety tips"],
  "addressAnalysis": "Analysis of any addresses combining the on-chain data and your expertise, including known entity attribution if available"
}
""".strip()


class LanguageModelError(RuntimeError):
    """Raised when the model call fails, times out or returns unusable output."""


@dataclass
class TermExplanation:
    explanation: str
    related_terms: list[str] = field(default_factory=list)


@dataclass
class ScamAssessment:
    risk_level: str
    summary: str
    red_flags: list[str] = field(default_factory=list)
    safety_tips: list[str] = field(default_factory=list)
    address_analysis: str | None = None


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def build_assessment_prompt(
    scenario: str,
    address_context: str = "",
    *,
    address_only: bool = False,
) -> str:
    """Assemble the user prompt for a scam assessment."""
    if address_only:
        prompt = f"Analyze the following Ethereum addresses. {scenario}"
    else:
        prompt = f'Analyze this scenario for potential crypto scams: "{scenario}"'
    if address_context:
        prompt += (
            "\n\nHere is the on-chain data for the submitted addresses:\n"
            f"{address_context}\n\n"
            "Incorporate this address data into your assessment and identify any "
            "connection between the scenario and these addresses."
        )
    return f"{prompt}\n\n{_ASSESSMENT_FORMAT}"


class CryptoAssistant:
    """Async wrapper around the chat-completions API returning JSON objects."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        model: str | None = None,
        temperature: float | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.model_timeout_seconds
        )
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key or "missing-api-key",
            timeout=self.timeout_seconds,
            max_retries=1,
        )
        self.model = model or settings.openai_model
        self.temperature = temperature if temperature is not None else settings.openai_temperature

    async def complete_json(self, user_prompt: str) -> dict[str, Any]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except OpenAIError as exc:
            raise LanguageModelError(f"Model request failed: {exc}") from exc

        if not response.choices:
            raise LanguageModelError("Model returned no choices")
        content = response.choices[0].message.content or "{}"
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise LanguageModelError("Model returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise LanguageModelError("Model returned a non-object JSON value")
        return parsed

    async def translate_term(self, term: str, audience: str = AUDIENCE_BEGINNER) -> TermExplanation:
        template = _TRANSLATE_PROMPTS.get(audience, _TRANSLATE_PROMPTS[AUDIENCE_INTERMEDIATE])
        result = await self.complete_json(template.format(term=term) + _TRANSLATE_FORMAT)
        return TermExplanation(
            explanation=result.get("explanation") or DEFAULT_EXPLANATION,
            related_terms=_string_list(result.get("relatedTerms")),
        )

    async def assess_scenario(
        self,
        scenario: str,
        address_context: str = "",
        *,
        address_only: bool = False,
    ) -> ScamAssessment:
        prompt = build_assessment_prompt(scenario, address_context, address_only=address_only)
        result = await self.complete_json(prompt)
        return ScamAssessment(
            risk_level=result.get("riskLevel") or DEFAULT_RISK_LEVEL,
            summary=result.get("summary") or DEFAULT_SUMMARY,
            red_flags=_string_list(result.get("redFlags")),
            safety_tips=_string_list(result.get("safetyTips")),
            address_analysis=result.get("addressAnalysis") or None,
        )


class _AssistantSingleton:
    _instance: CryptoAssistant | None = None

    @classmethod
    def get_instance(cls) -> CryptoAssistant:
        if cls._instance is None:
            if not settings.openai_api_key:
                logger.warning("OPENAI_API_KEY is not set; model calls will fail")
            cls._instance = CryptoAssistant()
        return cls._instance


def get_assistant() -> CryptoAssistant:
    """Return the process-wide assistant."""
    return _AssistantSingleton.get_instance()
