import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from domainiq.core.services.scoring_service import DomainScoringService, SEARCH_TLDS, rank_results
from domainiq.domain.errors import InvalidDomainError
from domainiq.domain.models.queue import QueueSettings
from domainiq.infrastructure.heuristics.heuristic_analyzer import HeuristicAnalyzer
from domainiq.infrastructure.resilience.clock import ManualClock
from domainiq.infrastructure.resilience.inference_queue import RateLimitedInferenceQueue


@pytest.mark.parametrize("raw, expected", [
    ("Crypto.IO", "crypto.io"),
    ("  defi.com. ", "defi.com"),
    ("my-site.co.uk", "my-site.co.uk"),
])
def test_normalize_domain(raw, expected):
    assert DomainScoringService.normalize_domain(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "localhost", "bad_name.com", "-lead.io", "a..b", "x" * 64 + ".com"])
def test_normalize_domain_rejects_invalid(raw):
    with pytest.raises(InvalidDomainError):
        DomainScoringService.normalize_domain(raw)


def test_generate_variations_covers_search_tlds():
    variations = DomainScoringService.generate_variations("My.Brand")
    assert variations == [f"mybrand{tld}" for tld in SEARCH_TLDS]


def test_generate_variations_rejects_unusable_query():
    with pytest.raises(InvalidDomainError):
        DomainScoringService.generate_variations("not a/domain!")


def test_analyze_domain_normalizes_before_queueing(make_result):
    queue = MagicMock()
    queue.get_analysis = AsyncMock(return_value=make_result("crypto.io"))
    service = DomainScoringService(queue)

    result = asyncio.run(service.analyze_domain(" CRYPTO.io "))

    queue.get_analysis.assert_awaited_once_with("crypto.io")
    assert result.domain == "crypto.io"


def test_analyze_many_validates_everything_first(make_result):
    queue = MagicMock()
    queue.get_analysis = AsyncMock(side_effect=lambda key: make_result(key))
    service = DomainScoringService(queue)

    with pytest.raises(InvalidDomainError):
        asyncio.run(service.analyze_many(["good.com", "bad name"]))
    queue.get_analysis.assert_not_awaited()


def test_analyze_many_keeps_input_order_with_real_queue():
    async def scenario():
        clock = ManualClock(start=1_699_956_000.0)
        queue = RateLimitedInferenceQueue(
            fallback=HeuristicAnalyzer(clock=clock), provider=None,
            settings=QueueSettings(), clock=clock,
        )
        service = DomainScoringService(queue)
        results = await service.analyze_many(["zeta.io", "alpha.com", "crypto.ai"])
        queue.close()
        return results

    results = asyncio.run(scenario())
    assert [r.domain for r in results] == ["zeta.io", "alpha.com", "crypto.ai"]
    assert all(r.fallback_used for r in results)


def test_search_ranks_by_overall_score(make_result):
    scores = {".com": 60, ".io": 80, ".xyz": 40, ".ai": 80, ".crypto": 90, ".defi": 10}

    async def analysis(key):
        tld = "." + key.split(".")[-1]
        return make_result(key, score=scores[tld])

    queue = MagicMock()
    queue.get_analysis = AsyncMock(side_effect=analysis)
    service = DomainScoringService(queue)

    results = asyncio.run(service.search("brand"))
    assert [r.domain for r in results] == [
        "brand.crypto", "brand.io", "brand.ai", "brand.com", "brand.xyz", "brand.defi",
    ]


def test_rank_results_is_stable(make_result):
    first, second = make_result("a.com", score=50), make_result("b.com", score=50)
    assert rank_results([first, second]) == [first, second]


def test_usage_stats_delegates_to_queue():
    queue = MagicMock()
    service = DomainScoringService(queue)
    assert service.usage_stats() is queue.get_usage_stats.return_value
