"""Interfaces for the collaborators of the inference queue.

An InferenceProvider is the external, rate-limited scoring model. A
FallbackAnalyzer is the local computation used whenever the provider is
unavailable, locked out or failing.
"""

import abc
from typing import Awaitable, Union

from ..models.analysis import AnalysisResult


class InferenceProvider(abc.ABC):
    """Abstract Base Class for a quota-constrained analysis provider."""

    #: Short provider name used in logs, events and stats.
    name: str = "provider"

    @abc.abstractmethod
    async def analyze(self, key: str) -> AnalysisResult:
        """Analyzes one domain name.

        Args:
            key: The normalized domain name.

        Returns:
            A validated AnalysisResult.

        Raises:
            QuotaExceededError: The provider's quota is used up.
            TransientProviderError: Network, timeout or 5xx errors.
            ProviderError: Any other classified failure.
        """
        pass


class FallbackAnalyzer(abc.ABC):
    """Abstract Base Class for the local, always-available analyzer."""

    @abc.abstractmethod
    def heuristic(self, key: str) -> Union[AnalysisResult, Awaitable[AnalysisResult]]:
        """Computes an analysis without touching the provider.

        May be synchronous or return an awaitable. It should not raise; if it
        does, the queue reports the failure to the caller.
        """
        pass
