"""Advanced heuristic domain analysis.

The network-free FallbackAnalyzer behind the inference queue. Scores are
weighted sums of lexical features of the second-level label (length,
vowel ratio, keywords, character patterns) plus TLD bonuses, and the
insights and valuation metrics are derived from those scores.

An optional market data source can refine the comparable-sale range; if it
fails the computed range is used. If the heuristics themselves cannot run
(e.g. an empty label) a minimal static analysis is returned, so heuristic()
does not raise.
"""

import logging
import math
import re
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from domainiq.domain.interfaces.clock import Clock
from domainiq.domain.interfaces.inference import FallbackAnalyzer
from domainiq.domain.models.analysis import (
    AdvancedMetrics, AnalysisResult, MarketInsights, MarketPosition,
    Recommendation, ScoreCard, TrendMomentum, clamp_score, utc_timestamp,
)
from domainiq.infrastructure.resilience.clock import SystemClock

logger = logging.getLogger(__name__)

HEURISTIC_MODEL = "advanced-heuristic"
HEURISTIC_CONFIDENCE = 0.78
STATIC_CONFIDENCE = 0.5

MarketSource = Callable[[str], Awaitable[Optional[Mapping[str, Any]]]]

VOWELS = re.compile(r"[aeiou]")
CONSONANT_CLUSTER = re.compile(r"[bcdfgjklmnpqrstvwxz]{3,}")
DOUBLE_LETTER = re.compile(r"(.)\1")

COMMON_WORDS = ("app", "web", "net", "digital", "smart", "pro", "tech", "cloud")
PREMIUM_TLDS = {"com": 20, "io": 15, "ai": 18, "co": 12, "org": 10}

INDUSTRIES = {
    "tech": ("ai", "ml", "api", "dev", "code", "app", "software", "cloud", "data"),
    "crypto": ("crypto", "bitcoin", "btc", "eth", "defi", "nft", "dao", "web3", "blockchain"),
    "business": ("biz", "corp", "inc", "llc", "pro", "consulting", "services", "solutions"),
    "ecommerce": ("shop", "store", "market", "buy", "sell", "pay", "cart", "deals"),
}
SECTOR_WEIGHTS = {"crypto": 15, "tech": 12}
DEFAULT_SECTOR_WEIGHT = 8
GEO_KEYWORDS = ("global", "world", "international", "usa", "america", "europe", "asia")
TLD_MARKET_BONUS = {"com": 25, "io": 20, "ai": 22, "co": 15, "net": 10, "org": 8}

DIFFICULT_PATTERNS = ("xz", "qw", "pf", "kg")

CRYPTO_TERMS = {
    25: ("crypto", "bitcoin", "ethereum", "defi", "nft", "dao", "web3", "blockchain", "metaverse"),
    15: ("digital", "virtual", "token", "coin", "chain", "protocol", "dapp", "smart"),
    8: ("tech", "future", "innovation", "network", "platform", "ecosystem"),
}
WEB3_TLDS = {"crypto": 30, "dao": 25, "nft": 20, "ai": 15, "io": 12}

TLD_MULTIPLIER = {"com": 1.2, "io": 1.15, "ai": 1.18, "co": 1.1}
TRENDING_TERMS = ("ai", "crypto", "defi", "nft", "metaverse", "blockchain")

LENGTH_RARITY = {2: 95, 3: 90, 4: 85, 5: 75, 6: 65, 7: 55, 8: 45, 9: 35, 10: 25}
DEFAULT_LENGTH_RARITY = 15
TLD_RARITY = {"com": -10, "io": 5, "ai": 15, "crypto": 25, "dao": 30}
DEFAULT_TLD_RARITY = 10
MAX_RARITY = 95


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def split_domain(domain: str) -> Tuple[str, str]:
    """Splits 'name.tld' into its first two labels.

    Only the second label counts as the TLD, so 'shop.co.uk' scores with
    'co' and the trailing labels are ignored.
    """
    labels = domain.lower().split(".")
    name = labels[0]
    tld = labels[1] if len(labels) > 1 else ""
    return name, tld


# --- Individual scores ---

def brandability_score(name: str, tld: str) -> float:
    length = len(name)
    score = 60
    if length <= 4:
        score += 25
    elif length <= 6:
        score += 15
    elif length <= 8:
        score += 5
    elif length > 12:
        score -= 20

    vowel_ratio = len(VOWELS.findall(name)) / length
    if 0.3 <= vowel_ratio <= 0.6:
        score += 10
    if re.fullmatch(r"[a-z]+", name):
        score += 15
    if any(word in name for word in COMMON_WORDS):
        score += 8
    return score + PREMIUM_TLDS.get(tld, 0)


def market_potential_score(name: str, tld: str) -> float:
    score = 50
    for sector, keywords in INDUSTRIES.items():
        matches = sum(1 for keyword in keywords if keyword in name)
        score += matches * SECTOR_WEIGHTS.get(sector, DEFAULT_SECTOR_WEIGHT)
    if any(geo in name for geo in GEO_KEYWORDS):
        score += 10
    return score + TLD_MARKET_BONUS.get(tld, 0)


def linguistic_score(name: str) -> float:
    score = 60
    if not CONSONANT_CLUSTER.search(name):
        score += 15
    if DOUBLE_LETTER.search(name):
        score += 8
    if name.count(name[0]) > 1:
        score += 5
    if any(pattern in name for pattern in DIFFICULT_PATTERNS):
        score -= 10
    if len(name) % 2 == 0:
        score += 3
    return score


def web3_relevance_score(name: str, tld: str) -> float:
    score = 30
    for weight, terms in CRYPTO_TERMS.items():
        score += weight * sum(1 for term in terms if term in name)
    return score + WEB3_TLDS.get(tld, 0)


def investment_value_score(name: str, tld: str, brandability: float, market_potential: float) -> float:
    score = (brandability + market_potential) / 2
    if len(name) <= 4:
        score += 20
    elif len(name) <= 6:
        score += 10
    score *= TLD_MULTIPLIER.get(tld, 1.0)
    if any(term in name for term in TRENDING_TERMS):
        score *= 1.15
    return round_half_up(score)


def rarity_score(name: str, tld: str) -> float:
    length = len(name)
    score = LENGTH_RARITY.get(length, DEFAULT_LENGTH_RARITY)
    score += len(set(name)) / length * 20
    if re.fullmatch(r"(.)\1+", name):
        score += 30
    if re.match(r"(.)(.)\1\2", name):
        score += 20
    if re.fullmatch(r"[aeiou]+", name):
        score += 25
    if re.fullmatch(r"[bcdfgjklmnpqrstvwxz]+", name):
        score += 25
    score += TLD_RARITY.get(tld, DEFAULT_TLD_RARITY)
    return min(MAX_RARITY, score)


def compute_scores(name: str, tld: str) -> ScoreCard:
    brandability = brandability_score(name, tld)
    market_potential = market_potential_score(name, tld)
    return ScoreCard(
        brandability=clamp_score(brandability),
        market_potential=clamp_score(market_potential),
        linguistic=clamp_score(linguistic_score(name)),
        web3_relevance=clamp_score(web3_relevance_score(name, tld)),
        # Uses the unclamped inputs on purpose: strong names saturate both.
        investment_value=clamp_score(investment_value_score(name, tld, brandability, market_potential)),
        rarity_score=clamp_score(rarity_score(name, tld)),
    )


# --- Derived insights & metrics ---

def derive_insights(name: str, tld: str, scores: ScoreCard) -> MarketInsights:
    overall = scores.overall
    strengths: List[str] = []
    weaknesses: List[str] = []

    if scores.brandability > 80:
        strengths.append("Excellent brandability")
    if scores.rarity_score > 80:
        strengths.append("High rarity value")
    if scores.web3_relevance > 70:
        strengths.append("Strong Web3 positioning")
    if len(name) <= 6:
        strengths.append("Premium length")
    if tld in ("com", "io", "ai"):
        strengths.append("Premium TLD")

    if scores.linguistic < 50:
        weaknesses.append("Complex pronunciation")
    if scores.market_potential < 60:
        weaknesses.append("Limited market appeal")
    if len(name) > 12:
        weaknesses.append("Long domain name")
    if scores.web3_relevance < 40:
        weaknesses.append("Low crypto relevance")

    if overall > 85:
        position = MarketPosition.PREMIUM
    elif overall > 70:
        position = MarketPosition.GROWTH
    elif overall > 55:
        position = MarketPosition.STABLE
    else:
        position = MarketPosition.EMERGING

    if overall > 80 and scores.rarity_score > 75:
        recommendation = Recommendation.STRONG_BUY
    elif overall > 70:
        recommendation = Recommendation.BUY
    elif overall > 55:
        recommendation = Recommendation.HOLD
    else:
        recommendation = Recommendation.AVOID

    return MarketInsights(
        strengths=tuple(strengths) or ("Standard domain characteristics",),
        weaknesses=tuple(weaknesses) or ("No major weaknesses identified",),
        market_position=position,
        recommendation=recommendation,
    )


def competitive_advantage(name: str, scores: ScoreCard) -> str:
    if scores.rarity_score > 85:
        return "Ultra-rare domain with high scarcity value"
    if scores.web3_relevance > 80:
        return "Strong positioning in growing Web3 market"
    if scores.brandability > 85:
        return "Premium brandability suitable for major corporations"
    if len(name) <= 4:
        return "Short domain with universal appeal"
    return "Solid fundamentals with growth potential"


def derive_metrics(name: str, scores: ScoreCard) -> AdvancedMetrics:
    base_value = scores.investment_value * 50
    rarity_multiplier = 1 + scores.rarity_score / 100
    if scores.web3_relevance > 70:
        momentum = TrendMomentum.RISING
    elif scores.market_potential > 70:
        momentum = TrendMomentum.STABLE
    else:
        momentum = TrendMomentum.FALLING
    return AdvancedMetrics(
        comparable_floor=round_half_up(base_value * 0.7),
        comparable_ceiling=round_half_up(base_value * rarity_multiplier * 1.8),
        liquidity_score=clamp_score(scores.market_potential + scores.brandability * 0.3),
        trend_momentum=momentum,
        competitive_advantage=competitive_advantage(name, scores),
    )


class HeuristicAnalyzer(FallbackAnalyzer):
    """FallbackAnalyzer implementation based on lexical heuristics."""

    def __init__(self, clock: Optional[Clock] = None, market_source: Optional[MarketSource] = None):
        """Initializes the analyzer.

        Args:
            clock: Time source for result timestamps.
            market_source: Optional async lookup returning 'comparableFloor'
                and/or 'comparableCeiling' overrides for a domain.
        """
        self.clock = clock or SystemClock()
        self.market_source = market_source

    def analyze_sync(self, domain: str) -> AnalysisResult:
        """Runs the heuristics without consulting the market source."""
        try:
            name, tld = split_domain(domain)
            scores = compute_scores(name, tld)
            return AnalysisResult(
                domain=domain,
                model=HEURISTIC_MODEL,
                ai_powered=False,
                scores=scores,
                insights=derive_insights(name, tld, scores),
                advanced=derive_metrics(name, scores),
                confidence=HEURISTIC_CONFIDENCE,
                timestamp=utc_timestamp(self.clock.now()),
                fallback_used=True,
            )
        except (ValueError, ZeroDivisionError, IndexError) as e:
            logger.warning(f"Heuristic analysis failed for '{domain}': {e}. Using static analysis.")
            return self.static_analysis(domain)

    def static_analysis(self, domain: str) -> AnalysisResult:
        """Minimal neutral analysis used when nothing else is possible."""
        neutral = 50.0
        return AnalysisResult(
            domain=domain,
            model=HEURISTIC_MODEL,
            ai_powered=False,
            scores=ScoreCard(neutral, neutral, neutral, neutral, neutral, neutral),
            insights=MarketInsights(
                strengths=("Standard domain characteristics",),
                weaknesses=("Insufficient data for analysis",),
                market_position=MarketPosition.EMERGING,
                recommendation=Recommendation.HOLD,
            ),
            advanced=None,
            confidence=STATIC_CONFIDENCE,
            timestamp=utc_timestamp(self.clock.now()),
            fallback_used=True,
        )

    async def heuristic(self, key: str) -> AnalysisResult:
        result = self.analyze_sync(key)
        if self.market_source is None or result.advanced is None:
            return result
        try:
            comparables = await self.market_source(key)
        except Exception as e:
            logger.warning(f"Market data lookup failed for '{key}': {e}. Using heuristic comparables.")
            return result
        return self._apply_comparables(result, comparables)

    @staticmethod
    def _apply_comparables(result: AnalysisResult, comparables: Optional[Mapping[str, Any]]) -> AnalysisResult:
        if not isinstance(comparables, Mapping) or not comparables:
            return result
        overrides: Dict[str, int] = {}
        for json_name, attr in (("comparableFloor", "comparable_floor"), ("comparableCeiling", "comparable_ceiling")):
            value = comparables.get(json_name)
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
                overrides[attr] = round_half_up(value)
        if not overrides:
            return result
        advanced = result.advanced
        floor = overrides.get("comparable_floor", advanced.comparable_floor)
        ceiling = max(floor, overrides.get("comparable_ceiling", advanced.comparable_ceiling))
        return AnalysisResult(
            domain=result.domain,
            model=result.model,
            ai_powered=result.ai_powered,
            scores=result.scores,
            insights=result.insights,
            advanced=AdvancedMetrics(
                comparable_floor=floor,
                comparable_ceiling=ceiling,
                liquidity_score=advanced.liquidity_score,
                trend_momentum=advanced.trend_momentum,
                competitive_advantage=advanced.competitive_advantage,
            ),
            confidence=result.confidence,
            timestamp=result.timestamp,
            fallback_used=result.fallback_used,
        )
