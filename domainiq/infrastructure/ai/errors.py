"""Translation of SDK status errors into the domain's ProviderError taxonomy.

The openai and groq SDKs share one exception layout (APIStatusError with
status_code, code and body), so both clients use this helper.
"""

from typing import Any, Optional

from domainiq.domain.errors import (
    ProviderError, QuotaExceededError, TransientProviderError,
)

QUOTA_CODES = frozenset({"insufficient_quota", "quota_exceeded", "resource_exhausted"})
TRANSIENT_STATUS_CODES = frozenset({408, 409, 429})


def _lower(value: Any) -> Optional[str]:
    return value.lower() if isinstance(value, str) else None


def error_codes(error: Any) -> set:
    """Collects the machine-readable codes an SDK error carries."""
    codes = {_lower(getattr(error, "code", None)), _lower(getattr(error, "type", None))}
    body = getattr(error, "body", None)
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict):
            for field in ("code", "status", "type"):
                codes.add(_lower(inner.get(field)))
    codes.discard(None)
    return codes


def translate_status_error(error: Any, provider: str) -> ProviderError:
    """Maps an HTTP status error from an SDK onto QUOTA, TRANSIENT or OTHER."""
    status = getattr(error, "status_code", None)
    message = f"{provider} API error (status {status}): {error}"
    if status == 429 and error_codes(error) & QUOTA_CODES:
        return QuotaExceededError(message, provider=provider, status_code=status)
    if status in TRANSIENT_STATUS_CODES or (isinstance(status, int) and status >= 500):
        return TransientProviderError(message, provider=provider, status_code=status)
    return ProviderError(message, provider=provider, status_code=status)
