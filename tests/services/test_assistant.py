import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import APIConnectionError

from crypto_clarity.services.assistant import (
    DEFAULT_RISK_LEVEL,
    CryptoAssistant,
    LanguageModelError,
    build_assessment_prompt,
)


def _completion(content: str) -> MagicMock:
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = content
    return completion


def _assistant(create: AsyncMock) -> CryptoAssistant:
    client = MagicMock()
    client.chat.completions.create = create
    return CryptoAssistant(client, model="test-model", temperature=0.0, timeout_seconds=5)


@pytest.mark.asyncio
async def test_translate_term_parses_json() -> None:
    create = AsyncMock(
        return_value=_completion(
            json.dumps({"explanation": "A gas fee is...", "relatedTerms": ["Gwei", "EIP-1559"]})
        )
    )

    result = await _assistant(create).translate_term("gas fee", "expert")

    assert result.explanation == "A gas fee is..."
    assert result.related_terms == ["Gwei", "EIP-1559"]
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "advanced, technical tone" in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_assessment_fills_defaults() -> None:
    create = AsyncMock(return_value=_completion(json.dumps({"redFlags": "not a list"})))

    result = await _assistant(create).assess_scenario("free airdrop")

    assert result.risk_level == DEFAULT_RISK_LEVEL
    assert result.red_flags == []
    assert result.address_analysis is None


@pytest.mark.asyncio
async def test_invalid_json_raises() -> None:
    create = AsyncMock(return_value=_completion("not json"))

    with pytest.raises(LanguageModelError):
        await _assistant(create).assess_scenario("free airdrop")


@pytest.mark.asyncio
async def test_api_errors_raise_language_model_error() -> None:
    create = AsyncMock(side_effect=APIConnectionError(request=MagicMock()))

    with pytest.raises(LanguageModelError):
        await _assistant(create).translate_term("nft")


def test_assessment_prompt_variants() -> None:
    scenario_prompt = build_assessment_prompt("They promise 10% daily", "--- SUSPICIOUS ADDRESS ANALYSIS ---")
    address_prompt = build_assessment_prompt("Please analyze this address.", address_only=True)

    assert scenario_prompt.startswith('Analyze this scenario for potential crypto scams: "They promise 10% daily"')
    assert "on-chain data for the submitted addresses" in scenario_prompt
    assert address_prompt.startswith("Analyze the following Ethereum addresses.")
    assert '"riskLevel"' in address_prompt


@pytest.mark.asyncio
async def test_empty_choices_raise_language_model_error() -> None:
    completion = MagicMock()
    completion.choices = []

    with pytest.raises(LanguageModelError):
        await _assistant(AsyncMock(return_value=completion)).assess_scenario("free airdrop")
