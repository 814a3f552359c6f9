"""InferenceProvider backed by the Groq API.

Hides the specifics of the Groq client library; its errors are translated
into the domain's ProviderError taxonomy.
"""

import asyncio
import logging
import os
import time
from typing import Any, Optional

from groq import APIConnectionError, APIStatusError, Groq as GroqSDKClient

from domainiq.domain.errors import InvalidProviderResponse, TransientProviderError
from domainiq.domain.interfaces.inference import InferenceProvider
from domainiq.domain.models.analysis import AnalysisResult
from domainiq.infrastructure.ai.errors import translate_status_error
from domainiq.infrastructure.ai.prompting import build_analysis_messages, parse_analysis_response

logger = logging.getLogger(__name__)


class GroqAnalysisProvider(InferenceProvider):
    """Groq implementation of the InferenceProvider interface."""

    DEFAULT_MODEL = "llama-3.3-70b-versatile"
    name = "groq"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0,
        client: Any = None,
    ):
        """Initializes the Groq client.

        Args:
            api_key: Groq API key. Reads from GROQ_API_KEY env var if None.
            model: The Groq model to use.
            timeout: Per-request timeout in seconds.
            client: Pre-built SDK client (mainly for tests).
        """
        self.model = model or self.DEFAULT_MODEL
        if client is not None:
            self.client = client
        else:
            effective_api_key = api_key or os.getenv("GROQ_API_KEY")
            if not effective_api_key:
                raise ValueError("Groq API key not provided and not found in environment variables.")
            self.client = GroqSDKClient(api_key=effective_api_key, timeout=timeout, max_retries=0)
        logger.info(f"GroqAnalysisProvider initialized for model: {self.model}")

    async def analyze(self, key: str) -> AnalysisResult:
        logger.debug(f"Requesting analysis of '{key}' from Groq model: {self.model}")
        start_time = time.perf_counter()
        try:
            # Use asyncio.to_thread as the official Groq SDK is synchronous
            chat_completion = await asyncio.to_thread(
                self.client.chat.completions.create,
                messages=build_analysis_messages(key),
                model=self.model,
                temperature=0.3,
            )
        except APIConnectionError as e:
            logger.warning(f"Groq connection error: {e}")
            raise TransientProviderError(f"Groq connection error: {e}", provider=self.name) from e
        except APIStatusError as e:
            translated = translate_status_error(e, self.name)
            logger.warning(f"Groq API error ({translated.kind.value}, status {e.status_code}): {e}")
            raise translated from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Received response from Groq in {latency_ms:.2f}ms")
        try:
            content = chat_completion.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            logger.debug(f"Raw Groq response object: {chat_completion}")
            raise InvalidProviderResponse(f"Invalid response structure from Groq: {e}", provider=self.name) from e
        model_name = getattr(chat_completion, "model", None) or self.model
        return parse_analysis_response(key, content, model=model_name, provider=self.name)
