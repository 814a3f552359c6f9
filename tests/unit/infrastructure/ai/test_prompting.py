import json

import pytest

from domainiq.domain.errors import InvalidProviderResponse
from domainiq.domain.models.analysis import MarketPosition, Recommendation, TrendMomentum
from domainiq.infrastructure.ai.prompting import build_analysis_messages, parse_analysis_response

VALID_PAYLOAD = {
    "scores": {
        "brandability": 88,
        "marketPotential": 75,
        "linguistic": 80,
        "web3Relevance": 95,
        "investmentValue": 82,
        "rarityScore": 70,
    },
    "insights": {
        "strengths": ["Short", "Crypto keyword"],
        "weaknesses": ["Crowded niche"],
        "marketPosition": "GROWTH",
        "recommendation": "BUY",
    },
    "advanced": {
        "comparableFloor": 2500,
        "comparableCeiling": 9000,
        "liquidityScore": 64,
        "trendMomentum": "RISING",
        "competitiveAdvantage": "Category-defining keyword",
    },
}


def test_messages_ask_for_the_analysis_schema():
    messages = build_analysis_messages("crypto.io")
    assert [m["role"] for m in messages] == ["system", "user"]
    prompt = messages[1]["content"]
    assert '"crypto.io"' in prompt
    for field in ("marketPotential", "rarityScore", "comparableFloor", "trendMomentum"):
        assert field in prompt


def test_parses_json_wrapped_in_prose_and_fences():
    text = "Here is my analysis:\n```json\n" + json.dumps(VALID_PAYLOAD) + "\n```\nGood luck!"
    result = parse_analysis_response("crypto.io", text, model="gemini-2.5-flash")

    assert result.domain == "crypto.io"
    assert result.model == "gemini-2.5-flash"
    assert result.ai_powered
    assert not result.fallback_used
    assert result.confidence == 0.92
    assert result.scores.web3_relevance == 95
    assert result.insights.market_position is MarketPosition.GROWTH
    assert result.insights.recommendation is Recommendation.BUY
    assert result.advanced.trend_momentum is TrendMomentum.RISING
    assert result.advanced.comparable_ceiling == 9000


def test_out_of_range_scores_are_clamped():
    payload = json.loads(json.dumps(VALID_PAYLOAD))
    payload["scores"]["brandability"] = 140
    payload["scores"]["rarityScore"] = -3
    result = parse_analysis_response("a.io", json.dumps(payload), model="m")
    assert result.scores.brandability == 100
    assert result.scores.rarity_score == 0


@pytest.mark.parametrize("text", [
    "",
    "I cannot help with that.",
    "{not json}",
    json.dumps({"scores": {"brandability": 1}}),
    json.dumps({**VALID_PAYLOAD, "insights": {**VALID_PAYLOAD["insights"], "recommendation": "MAYBE"}}),
    json.dumps({**VALID_PAYLOAD, "scores": {**VALID_PAYLOAD["scores"], "linguistic": "high"}}),
])
def test_unusable_replies_raise_invalid_response(text):
    with pytest.raises(InvalidProviderResponse):
        parse_analysis_response("a.io", text, model="m", provider="gemini")
