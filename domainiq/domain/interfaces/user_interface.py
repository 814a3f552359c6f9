"""Interface for interacting with the user (output only).

Defines the contract for displaying analysis results, queue statistics,
errors, warnings and info messages, allowing different UI implementations
(e.g., rich console, plain JSON).
"""

import abc
from typing import Any, Sequence

from ..models.analysis import AnalysisResult
from ..models.queue import QueueStats


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_analysis(self, results: Sequence[AnalysisResult], **kwargs: Any) -> None:
        """Displays one or more analysis results.

        Args:
            results: Results in the order they should be shown.
            **kwargs: Additional arguments for formatting (e.g., title, detailed).
        """
        pass

    @abc.abstractmethod
    def display_stats(self, stats: QueueStats, **kwargs: Any) -> None:
        """Displays a snapshot of the inference queue's usage."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass
