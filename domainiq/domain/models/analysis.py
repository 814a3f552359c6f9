"""Domain models for domain-name analysis results.

AnalysisResult is the single schema shared by model-backed providers and the
local heuristic fallback. Provider JSON is validated into it at the provider
boundary (see AnalysisResult.from_payload), so downstream code only ever sees
these typed fields.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

from ..errors import InvalidAnalysisPayload

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Field names as they appear in the model's JSON payload (camelCase).
SCORE_FIELDS = {
    "brandability": "brandability",
    "market_potential": "marketPotential",
    "linguistic": "linguistic",
    "web3_relevance": "web3Relevance",
    "investment_value": "investmentValue",
    "rarity_score": "rarityScore",
}


class MarketPosition(str, Enum):
    PREMIUM = "PREMIUM"
    GROWTH = "GROWTH"
    STABLE = "STABLE"
    EMERGING = "EMERGING"


class Recommendation(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    AVOID = "AVOID"


class TrendMomentum(str, Enum):
    RISING = "RISING"
    STABLE = "STABLE"
    FALLING = "FALLING"


E = TypeVar("E", bound=Enum)


def clamp_score(value: float) -> float:
    """Clamps a score into the 0-100 range."""
    return max(SCORE_MIN, min(SCORE_MAX, float(value)))


def utc_timestamp(epoch_seconds: Optional[float] = None) -> str:
    """Returns an ISO-8601 UTC timestamp for the given epoch (or now)."""
    if epoch_seconds is None:
        return datetime.now(timezone.utc).isoformat()
    return datetime.fromtimestamp(epoch_seconds, timezone.utc).isoformat()


def _number(section: Mapping[str, Any], name: str, where: str) -> float:
    value = section.get(name)
    # bool is an int subclass; "true" is not a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidAnalysisPayload(f"{where}.{name} must be a number, got {value!r}")
    return float(value)


def _enum(enum_cls: Type[E], value: Any, where: str) -> E:
    if not isinstance(value, str):
        raise InvalidAnalysisPayload(f"{where} must be a string, got {value!r}")
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        allowed = "|".join(member.value for member in enum_cls)
        raise InvalidAnalysisPayload(f"{where} must be one of {allowed}, got {value!r}") from None


def _strings(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise InvalidAnalysisPayload(f"{where} must be a list of strings")
    return tuple(value)


def _section(payload: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = payload.get(name)
    if not isinstance(section, Mapping):
        raise InvalidAnalysisPayload(f"'{name}' section is missing or not an object")
    return section


@dataclass(frozen=True)
class ScoreCard:
    """The six 0-100 scores every analysis carries."""
    brandability: float
    market_potential: float
    linguistic: float
    web3_relevance: float
    investment_value: float
    rarity_score: float

    @property
    def overall(self) -> float:
        values = [getattr(self, name) for name in SCORE_FIELDS]
        return round(sum(values) / len(values), 2)

    @classmethod
    def from_payload(cls, section: Mapping[str, Any]) -> "ScoreCard":
        return cls(**{
            attr: clamp_score(_number(section, json_name, "scores"))
            for attr, json_name in SCORE_FIELDS.items()
        })

    def to_dict(self) -> Dict[str, float]:
        return {json_name: getattr(self, attr) for attr, json_name in SCORE_FIELDS.items()}


@dataclass(frozen=True)
class MarketInsights:
    strengths: Tuple[str, ...]
    weaknesses: Tuple[str, ...]
    market_position: MarketPosition
    recommendation: Recommendation

    @classmethod
    def from_payload(cls, section: Mapping[str, Any]) -> "MarketInsights":
        return cls(
            strengths=_strings(section.get("strengths"), "insights.strengths"),
            weaknesses=_strings(section.get("weaknesses"), "insights.weaknesses"),
            market_position=_enum(MarketPosition, section.get("marketPosition"), "insights.marketPosition"),
            recommendation=_enum(Recommendation, section.get("recommendation"), "insights.recommendation"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "marketPosition": self.market_position.value,
            "recommendation": self.recommendation.value,
        }


@dataclass(frozen=True)
class AdvancedMetrics:
    comparable_floor: int
    comparable_ceiling: int
    liquidity_score: float
    trend_momentum: TrendMomentum
    competitive_advantage: str = ""

    @classmethod
    def from_payload(cls, section: Mapping[str, Any]) -> "AdvancedMetrics":
        advantage = section.get("competitiveAdvantage") or ""
        if not isinstance(advantage, str):
            raise InvalidAnalysisPayload("advanced.competitiveAdvantage must be a string")
        floor = round(_number(section, "comparableFloor", "advanced"))
        ceiling = round(_number(section, "comparableCeiling", "advanced"))
        if floor < 0 or ceiling < 0:
            raise InvalidAnalysisPayload("advanced comparables must not be negative")
        return cls(
            comparable_floor=floor,
            comparable_ceiling=max(floor, ceiling),
            liquidity_score=clamp_score(_number(section, "liquidityScore", "advanced")),
            trend_momentum=_enum(TrendMomentum, section.get("trendMomentum"), "advanced.trendMomentum"),
            competitive_advantage=advantage,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "comparableFloor": self.comparable_floor,
            "comparableCeiling": self.comparable_ceiling,
            "liquidityScore": self.liquidity_score,
            "trendMomentum": self.trend_momentum.value,
            "competitiveAdvantage": self.competitive_advantage,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Result of analyzing one domain name, from a provider or the fallback."""
    domain: str
    model: str
    ai_powered: bool
    scores: ScoreCard
    insights: MarketInsights
    advanced: Optional[AdvancedMetrics] = None
    confidence: float = 0.0
    timestamp: str = field(default_factory=utc_timestamp)
    fallback_used: bool = False

    @property
    def overall_score(self) -> float:
        return self.scores.overall

    @classmethod
    def from_payload(
        cls,
        domain: str,
        payload: Mapping[str, Any],
        model: str,
        confidence: float = 0.92,
        timestamp: Optional[str] = None,
    ) -> "AnalysisResult":
        """Validates a provider JSON payload into an AnalysisResult.

        Args:
            domain: The domain that was analyzed.
            payload: Decoded JSON with 'scores', 'insights' and optional 'advanced'.
            model: Model identifier reported by the provider.
            confidence: Confidence to attach to the result.
            timestamp: ISO timestamp; defaults to now (UTC).

        Raises:
            InvalidAnalysisPayload: If any required field is missing or malformed.
        """
        if not isinstance(payload, Mapping):
            raise InvalidAnalysisPayload("analysis payload must be a JSON object")

        advanced = None
        if payload.get("advanced") is not None:
            advanced = AdvancedMetrics.from_payload(_section(payload, "advanced"))

        return cls(
            domain=domain,
            model=model,
            ai_powered=True,
            scores=ScoreCard.from_payload(_section(payload, "scores")),
            insights=MarketInsights.from_payload(_section(payload, "insights")),
            advanced=advanced,
            confidence=confidence,
            timestamp=timestamp or utc_timestamp(),
            fallback_used=False,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "aiPowered": self.ai_powered,
            "model": self.model,
            "scores": self.scores.to_dict(),
            "insights": self.insights.to_dict(),
            "advanced": self.advanced.to_dict() if self.advanced else None,
            "overall": self.overall_score,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "fallbackUsed": self.fallback_used,
        }
