"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the DomainScoringService and hands the results to the UserInterface.
Every handle_* method returns True on success so main.py can set the exit
code.
"""

import logging
from collections import Counter
from typing import Sequence

from domainiq.core.services.scoring_service import DomainScoringService
from domainiq.domain.errors import FallbackFailure, InvalidDomainError
from domainiq.domain.events.queue_events import DomainEvent, FallbackUsed, QuotaExhausted
from domainiq.domain.interfaces.user_interface import UserInterface
from domainiq.domain.models.common import SearchQuery

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the scoring service."""

    def __init__(self, scoring_service: DomainScoringService, ui: UserInterface):
        self.scoring_service = scoring_service
        self.ui = ui
        self.fallback_reasons: Counter = Counter()
        self.quota_exhausted = False

    def record_event(self, event: DomainEvent) -> None:
        """Queue event listener; remembers why results degraded to heuristics."""
        if isinstance(event, FallbackUsed):
            self.fallback_reasons[event.reason] += 1
        elif isinstance(event, QuotaExhausted):
            self.quota_exhausted = True

    def _report_degradation(self) -> None:
        if self.quota_exhausted:
            self.ui.display_warning(
                "The AI provider's daily quota is exhausted. Results use heuristic analysis until the next reset."
            )
        elif self.fallback_reasons and self.scoring_service.queue.provider is not None:
            summary = ", ".join(f"{reason}: {count}" for reason, count in sorted(self.fallback_reasons.items()))
            self.ui.display_warning(f"Some results fell back to heuristic analysis ({summary}).")
        self.fallback_reasons.clear()
        self.quota_exhausted = False

    async def handle_analyze(self, domains: Sequence[str]) -> bool:
        """Handles the 'analyze' command for one or more domains."""
        logger.info(f"Handling 'analyze' command for: {', '.join(domains)}")
        try:
            results = await self.scoring_service.analyze_many(domains)
        except InvalidDomainError as e:
            self.ui.display_error(f"Invalid domain: {e}")
            return False
        except FallbackFailure as e:
            logger.error(f"Analysis command failed: {e}", exc_info=True)
            self.ui.display_error(f"Analysis failed: {e}")
            return False
        self.ui.display_analysis(results, title="Domain Analysis")
        self._report_degradation()
        return True

    async def handle_search(self, query: str) -> bool:
        """Handles the 'search' command: ranks the TLD variations of a query."""
        logger.info(f"Handling 'search' command with query: {query}")
        try:
            results = await self.scoring_service.search(SearchQuery(query))
        except InvalidDomainError as e:
            self.ui.display_error(f"Invalid search query: {e}")
            return False
        except FallbackFailure as e:
            logger.error(f"Search command failed: {e}", exc_info=True)
            self.ui.display_error(f"Search failed: {e}")
            return False
        self.ui.display_analysis(results, title=f"Search results for '{query}'", detailed=False)
        self._report_degradation()
        return True

    async def handle_stats(self) -> bool:
        """Handles the 'stats' command."""
        self.ui.display_stats(self.scoring_service.usage_stats())
        return True
