"""Prompt construction and response parsing shared by the model providers."""

import json
import logging
import re
from typing import List, Optional

from domainiq.domain.errors import InvalidAnalysisPayload, InvalidProviderResponse
from domainiq.domain.models.analysis import AnalysisResult
from domainiq.domain.models.common import ChatMessage

logger = logging.getLogger(__name__)

MODEL_CONFIDENCE = 0.92

SYSTEM_PROMPT = (
    "You are a professional domain investment expert. "
    "Answer with a single JSON object and no other text."
)

ANALYSIS_PROMPT_TEMPLATE = """Analyze domain "{domain}" as a professional domain investment expert. Provide JSON analysis:

Consider: brandability, market trends, Web3 relevance, linguistic appeal, investment potential, rarity factors.

Return JSON:
{{
  "scores": {{
    "brandability": 0-100,
    "marketPotential": 0-100,
    "linguistic": 0-100,
    "web3Relevance": 0-100,
    "investmentValue": 0-100,
    "rarityScore": 0-100
  }},
  "insights": {{
    "strengths": ["strength1", "strength2"],
    "weaknesses": ["weakness1", "weakness2"],
    "marketPosition": "PREMIUM|GROWTH|STABLE|EMERGING",
    "recommendation": "STRONG_BUY|BUY|HOLD|AVOID"
  }},
  "advanced": {{
    "comparableFloor": priceInUSD,
    "comparableCeiling": priceInUSD,
    "liquidityScore": 0-100,
    "trendMomentum": "RISING|STABLE|FALLING",
    "competitiveAdvantage": "description"
  }}
}}"""

# Outermost {...} span; models like to wrap JSON in prose or code fences.
JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def build_analysis_messages(domain: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=ANALYSIS_PROMPT_TEMPLATE.format(domain=domain)),
    ]


def parse_analysis_response(domain: str, text: str, model: str, provider: Optional[str] = None) -> AnalysisResult:
    """Extracts and validates the JSON analysis embedded in a model reply.

    Raises:
        InvalidProviderResponse: If no valid analysis object can be found.
    """
    if not text:
        raise InvalidProviderResponse(f"Empty response from {model}", provider=provider)
    match = JSON_BLOCK.search(text)
    if match is None:
        logger.debug(f"No JSON object in model reply: {text[:200]!r}")
        raise InvalidProviderResponse(f"No JSON object in response from {model}", provider=provider)
    try:
        payload = json.loads(match.group(0))
        return AnalysisResult.from_payload(domain, payload, model=model, confidence=MODEL_CONFIDENCE)
    except json.JSONDecodeError as e:
        raise InvalidProviderResponse(f"Malformed JSON from {model}: {e}", provider=provider) from e
    except InvalidAnalysisPayload as e:
        raise InvalidProviderResponse(f"Invalid analysis from {model}: {e}", provider=provider) from e
