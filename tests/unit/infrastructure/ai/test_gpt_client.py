import asyncio
import json
import os
from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError, OpenAI, RateLimitError

from domainiq.domain.errors import (
    InvalidProviderResponse, QuotaExceededError, TransientProviderError,
)
from domainiq.infrastructure.ai.openai.gpt_client import (
    GEMINI_BASE_URL, GEMINI_DEFAULT_MODEL, OpenAICompatibleProvider,
)

PAYLOAD = {
    "scores": {
        "brandability": 80, "marketPotential": 70, "linguistic": 75,
        "web3Relevance": 90, "investmentValue": 85, "rarityScore": 60,
    },
    "insights": {
        "strengths": ["Short"], "weaknesses": [],
        "marketPosition": "PREMIUM", "recommendation": "STRONG_BUY",
    },
}

REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


def completion(content, model="gpt-4o-mini"):
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    response.model = model
    return response


@pytest.fixture
def mock_openai_client():
    mock_client = MagicMock(spec=OpenAI)
    mock_client.chat = MagicMock()
    mock_client.chat.completions.create.return_value = completion(json.dumps(PAYLOAD))
    return mock_client


@patch('domainiq.infrastructure.ai.openai.gpt_client.OpenAI')
def test_init_disables_sdk_retries(mock_openai_constructor):
    provider = OpenAICompatibleProvider(api_key="test_key", timeout=12.0)
    mock_openai_constructor.assert_called_once_with(
        api_key="test_key", base_url=None, timeout=12.0, max_retries=0
    )
    assert provider.model == OpenAICompatibleProvider.DEFAULT_MODEL
    assert provider.name == "openai"


@patch('domainiq.infrastructure.ai.openai.gpt_client.OpenAI')
def test_init_no_key(mock_openai_constructor):
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(ValueError, match="API key not provided"):
            OpenAICompatibleProvider(api_key=None)
    mock_openai_constructor.assert_not_called()


@patch('domainiq.infrastructure.ai.openai.gpt_client.OpenAI')
def test_for_gemini_uses_compatibility_endpoint(mock_openai_constructor):
    provider = OpenAICompatibleProvider.for_gemini(api_key="g-key")
    _, kwargs = mock_openai_constructor.call_args
    assert kwargs["base_url"] == GEMINI_BASE_URL
    assert kwargs["api_key"] == "g-key"
    assert kwargs["max_retries"] == 0
    assert provider.name == "gemini"
    assert provider.model == GEMINI_DEFAULT_MODEL


def test_analyze_success(mock_openai_client):
    provider = OpenAICompatibleProvider(model="gpt-4o-mini", client=mock_openai_client)
    result = asyncio.run(provider.analyze("crypto.io"))

    assert result.domain == "crypto.io"
    assert result.model == "gpt-4o-mini"
    assert result.ai_powered
    assert result.advanced is None
    _, kwargs = mock_openai_client.chat.completions.create.call_args
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["messages"][1]["role"] == "user"
    assert "crypto.io" in kwargs["messages"][1]["content"]


def test_analyze_quota_error(mock_openai_client):
    response = httpx.Response(429, request=REQUEST)
    mock_openai_client.chat.completions.create.side_effect = RateLimitError(
        "quota", response=response, body={"code": "insufficient_quota"}
    )
    provider = OpenAICompatibleProvider(client=mock_openai_client)
    with pytest.raises(QuotaExceededError):
        asyncio.run(provider.analyze("crypto.io"))


@pytest.mark.parametrize("error", [
    APIConnectionError(request=REQUEST),
    APITimeoutError(request=REQUEST),
])
def test_analyze_connection_errors_are_transient(mock_openai_client, error):
    mock_openai_client.chat.completions.create.side_effect = error
    provider = OpenAICompatibleProvider(client=mock_openai_client)
    with pytest.raises(TransientProviderError):
        asyncio.run(provider.analyze("crypto.io"))


def test_analyze_unparseable_reply(mock_openai_client):
    mock_openai_client.chat.completions.create.return_value = completion("Sorry, no JSON today.")
    provider = OpenAICompatibleProvider(client=mock_openai_client)
    with pytest.raises(InvalidProviderResponse):
        asyncio.run(provider.analyze("crypto.io"))


def test_analyze_malformed_response_object(mock_openai_client):
    broken = MagicMock()
    broken.choices = []
    mock_openai_client.chat.completions.create.return_value = broken
    provider = OpenAICompatibleProvider(client=mock_openai_client)
    with pytest.raises(InvalidProviderResponse):
        asyncio.run(provider.analyze("crypto.io"))
