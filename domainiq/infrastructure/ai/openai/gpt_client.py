"""InferenceProvider backed by any OpenAI-compatible chat completions API.

Used for OpenAI itself and for Gemini through Google's OpenAI-compatible
endpoint. SDK exceptions are translated into the domain's ProviderError
taxonomy here, so the inference queue never sees an openai type.
"""

import asyncio
import logging
import os
import time
from typing import Any, Optional

from openai import APIConnectionError, APIStatusError, OpenAI

from domainiq.domain.errors import InvalidProviderResponse, TransientProviderError
from domainiq.domain.interfaces.inference import InferenceProvider
from domainiq.domain.models.analysis import AnalysisResult
from domainiq.infrastructure.ai.errors import translate_status_error
from domainiq.infrastructure.ai.prompting import build_analysis_messages, parse_analysis_response

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 30.0
TEMPERATURE = 0.3


class OpenAICompatibleProvider(InferenceProvider):
    """OpenAI-compatible implementation of the InferenceProvider interface."""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        name: str = "openai",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Any = None,
    ):
        """Initializes the provider.

        Args:
            api_key: API key. Reads from OPENAI_API_KEY env var if None.
            model: Chat model to use.
            base_url: Alternative endpoint (e.g. Gemini's compatibility API).
            name: Provider name reported in logs and stats.
            timeout: Per-request timeout in seconds.
            client: Pre-built SDK client (mainly for tests).
        """
        self.name = name
        self.model = model or self.DEFAULT_MODEL
        if client is not None:
            self.client = client
        else:
            effective_api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not effective_api_key:
                raise ValueError(f"{name} API key not provided and not found in environment variables.")
            # Retries are the inference queue's job; the SDK must fail fast.
            self.client = OpenAI(api_key=effective_api_key, base_url=base_url, timeout=timeout, max_retries=0)
        logger.info(f"OpenAICompatibleProvider '{self.name}' initialized for model: {self.model}")

    @classmethod
    def for_gemini(
        cls, api_key: Optional[str] = None, model: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> "OpenAICompatibleProvider":
        """Provider for Gemini via its OpenAI-compatible endpoint."""
        effective_api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not effective_api_key:
            raise ValueError("Gemini API key not provided and not found in environment variables.")
        return cls(
            api_key=effective_api_key,
            model=model or GEMINI_DEFAULT_MODEL,
            base_url=GEMINI_BASE_URL,
            name="gemini",
            timeout=timeout,
        )

    def _extract_content(self, response: Any) -> str:
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            logger.debug(f"Raw {self.name} response object: {response}")
            raise InvalidProviderResponse(
                f"Invalid response structure from {self.name}: {e}", provider=self.name
            ) from e

    async def analyze(self, key: str) -> AnalysisResult:
        logger.debug(f"Requesting analysis of '{key}' from {self.name} model: {self.model}")
        start_time = time.perf_counter()
        try:
            # Synchronous SDK call, run off the event loop.
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.model,
                messages=build_analysis_messages(key),
                temperature=TEMPERATURE,
            )
        except APIConnectionError as e:
            # Includes APITimeoutError
            logger.warning(f"{self.name} connection error: {e}")
            raise TransientProviderError(f"{self.name} connection error: {e}", provider=self.name) from e
        except APIStatusError as e:
            translated = translate_status_error(e, self.name)
            logger.warning(f"{self.name} API error ({translated.kind.value}, status {e.status_code}): {e}")
            raise translated from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Received response from {self.name} in {latency_ms:.2f}ms")
        model_name = getattr(response, "model", None) or self.model
        return parse_analysis_response(key, self._extract_content(response), model=model_name, provider=self.name)
