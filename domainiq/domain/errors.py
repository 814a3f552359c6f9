"""Error taxonomy for the scoring pipeline.

Providers classify their own failures by raising one of the ProviderError
subclasses; the inference queue never inspects message text. Only
FallbackFailure ever reaches a caller of the queue.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """How the inference queue reacts to a provider failure."""
    QUOTA = "quota"          # lock out the provider until the scheduled reset
    TRANSIENT = "transient"  # retry with a fixed delay
    OTHER = "other"          # fall back immediately


class ProviderError(Exception):
    """Base class for failures reported by an InferenceProvider."""

    kind: ErrorKind = ErrorKind.OTHER

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class QuotaExceededError(ProviderError):
    """The provider will not accept further calls until its quota resets."""

    kind = ErrorKind.QUOTA


class TransientProviderError(ProviderError):
    """Network, timeout or server-side error worth retrying."""

    kind = ErrorKind.TRANSIENT


class InvalidProviderResponse(ProviderError):
    """The provider answered, but not with a usable analysis."""

    kind = ErrorKind.OTHER


class InvalidAnalysisPayload(ValueError):
    """Raised when an analysis payload does not match the result schema."""


class InvalidDomainError(ValueError):
    """Raised when a domain name cannot be normalized."""


class FallbackFailure(Exception):
    """The local fallback failed, so there is nothing left to degrade to."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"Fallback analysis failed for '{key}': {cause}")
