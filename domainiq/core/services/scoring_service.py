"""Application service for scoring domain names.

Normalizes user input, expands search queries into candidate domains and
funnels every analysis through the RateLimitedInferenceQueue, which decides
between cache, provider and heuristic fallback.
"""

import asyncio
import logging
import re
from typing import Iterable, List, Sequence

from domainiq.domain.errors import InvalidDomainError
from domainiq.domain.models.analysis import AnalysisResult
from domainiq.domain.models.common import DomainName, SearchQuery
from domainiq.domain.models.queue import QueueStats
from domainiq.infrastructure.resilience.inference_queue import RateLimitedInferenceQueue

logger = logging.getLogger(__name__)

SEARCH_TLDS = (".com", ".io", ".xyz", ".ai", ".crypto", ".defi")
LABEL_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
MAX_DOMAIN_LENGTH = 253


class DomainScoringService:
    """Scores domains and search queries using the inference queue."""

    def __init__(self, queue: RateLimitedInferenceQueue):
        self.queue = queue

    @staticmethod
    def normalize_domain(name: str) -> DomainName:
        """Returns the canonical form of a domain name ('Foo.COM.' -> 'foo.com').

        Raises:
            InvalidDomainError: If the name is not a valid 'label.tld' domain.
        """
        if not isinstance(name, str):
            raise InvalidDomainError(f"Domain must be a string, got {type(name).__name__}")
        normalized = name.strip().lower()
        if normalized.endswith("."):
            normalized = normalized[:-1]
        if not normalized:
            raise InvalidDomainError("Domain name is empty.")
        if len(normalized) > MAX_DOMAIN_LENGTH:
            raise InvalidDomainError(f"Domain name is longer than {MAX_DOMAIN_LENGTH} characters.")
        labels = normalized.split(".")
        if len(labels) < 2:
            raise InvalidDomainError(f"'{name}' has no TLD (expected e.g. '{normalized}.com').")
        for label in labels:
            if not LABEL_PATTERN.match(label):
                raise InvalidDomainError(f"'{name}' contains an invalid label: '{label}'")
        return DomainName(normalized)

    @staticmethod
    def generate_variations(query: str) -> List[DomainName]:
        """Expands a search query into one candidate domain per search TLD."""
        clean = re.sub(r"[.\s]", "", str(query).lower())
        if not LABEL_PATTERN.match(clean):
            raise InvalidDomainError(f"Search query '{query}' cannot form a domain label.")
        return [DomainName(f"{clean}{tld}") for tld in SEARCH_TLDS]

    async def analyze_domain(self, name: str) -> AnalysisResult:
        domain = self.normalize_domain(name)
        return await self.queue.get_analysis(domain)

    async def analyze_many(self, names: Iterable[str]) -> List[AnalysisResult]:
        """Analyzes several domains concurrently, keeping the input order.

        The queue serializes provider calls, so concurrency here only means
        cache hits and fallbacks do not wait behind provider calls.

        Raises:
            InvalidDomainError: Before anything is queued, if any name is invalid.
        """
        domains = [self.normalize_domain(name) for name in names]
        logger.info(f"Analyzing {len(domains)} domain(s)")
        return list(await asyncio.gather(*(self.queue.get_analysis(domain) for domain in domains)))

    async def search(self, query: SearchQuery) -> List[AnalysisResult]:
        """Scores every TLD variation of a query, best overall score first."""
        candidates = self.generate_variations(query)
        results = await self.analyze_many(candidates)
        return rank_results(results)

    def usage_stats(self) -> QueueStats:
        return self.queue.get_usage_stats()


def rank_results(results: Sequence[AnalysisResult]) -> List[AnalysisResult]:
    # sorted() is stable, so ties keep their input order
    return sorted(results, key=lambda result: result.overall_score, reverse=True)
