import httpx
import pytest
from openai import APIStatusError, AuthenticationError, InternalServerError, RateLimitError

from domainiq.domain.errors import ErrorKind
from domainiq.infrastructure.ai.errors import error_codes, translate_status_error


def status_error(cls, status, body=None):
    request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return cls("request failed", response=response, body=body)


@pytest.mark.parametrize("body", [
    {"code": "insufficient_quota", "message": "You exceeded your current quota"},
    {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}},
    [{"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}}],
])
def test_quota_bodies_map_to_quota(body):
    error = translate_status_error(status_error(RateLimitError, 429, body), "gemini")
    assert error.kind is ErrorKind.QUOTA
    assert error.status_code == 429
    assert error.provider == "gemini"


def test_plain_rate_limit_is_transient():
    error = translate_status_error(status_error(RateLimitError, 429, {"code": "rate_limit_exceeded"}), "openai")
    assert error.kind is ErrorKind.TRANSIENT


@pytest.mark.parametrize("status", [408, 409, 500, 503])
def test_retryable_statuses_are_transient(status):
    cls = InternalServerError if status >= 500 else APIStatusError
    assert translate_status_error(status_error(cls, status), "openai").kind is ErrorKind.TRANSIENT


@pytest.mark.parametrize("status", [400, 404, 422])
def test_client_errors_are_other(status):
    assert translate_status_error(status_error(APIStatusError, status), "openai").kind is ErrorKind.OTHER


def test_authentication_error_is_other():
    error = translate_status_error(status_error(AuthenticationError, 401), "openai")
    assert error.kind is ErrorKind.OTHER


def test_error_codes_ignores_non_string_codes():
    codes = error_codes(status_error(RateLimitError, 429, {"error": {"code": 429, "type": "Quota_Exceeded"}}))
    assert codes == {"quota_exceeded"}
