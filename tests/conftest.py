import pytest
from typer.testing import CliRunner

from domainiq.domain.models.analysis import (
    AdvancedMetrics, AnalysisResult, MarketInsights, MarketPosition,
    Recommendation, ScoreCard, TrendMomentum,
)
from domainiq.infrastructure.config import settings
from domainiq.infrastructure.resilience.clock import ManualClock

# 2023-11-14 10:00:00 UTC; the next UTC midnight is 14 hours later.
T0 = 1_699_956_000.0
NEXT_UTC_MIDNIGHT = 1_700_006_400.0


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def clock():
    return ManualClock(start=T0)


@pytest.fixture
def make_result():
    """Factory for AnalysisResult instances with fixed scores."""
    def _make(domain="example.com", model="stub-model", score=70.0, fallback=False):
        return AnalysisResult(
            domain=domain,
            model=model,
            ai_powered=not fallback,
            scores=ScoreCard(score, score, score, score, score, score),
            insights=MarketInsights(
                strengths=("Short",),
                weaknesses=(),
                market_position=MarketPosition.GROWTH,
                recommendation=Recommendation.BUY,
            ),
            advanced=AdvancedMetrics(
                comparable_floor=1000,
                comparable_ceiling=5000,
                liquidity_score=60.0,
                trend_momentum=TrendMomentum.RISING,
            ),
            confidence=0.5 if fallback else 0.92,
            timestamp="2023-11-14T10:00:00+00:00",
            fallback_used=fallback,
        )
    return _make


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps real API keys and user config out of every test."""
    for name in ("GEMINI_API_KEY", "OPENAI_API_KEY", "GROQ_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "_config", {})
    settings.clear_test_config()
    yield
    settings.clear_test_config()
