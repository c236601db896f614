"""
ClearLens — Completion Invocation

Prompt in, completion text out, over the Ollama chat API.  Every failure mode
(timeout, transport error, HTTP error, empty or malformed payload) becomes a
single UpstreamError; nothing partial is ever returned as success.
"""

import time
import asyncio
import logging
from typing import Optional

import ollama

from clearlens.api_exceptions import UpstreamError
from clearlens.config import Settings
from clearlens.intent import Intent
from clearlens.secrets_manager import completion_credentials
from clearlens.structured_logging import logger as slog
from clearlens.tone import PRESSURE_HIGH

logger = logging.getLogger(__name__)

TEMP_NUMBERS          = 0.2
TEMP_MOTIVATION_HIGH  = 0.8
TEMP_MOTIVATION       = 0.6
TEMP_EVENING          = 0.4
TEMP_DAYTIME          = 0.5


def is_evening(local_hour: int) -> bool:
    return local_hour >= 18 or local_hour < 5


def choose_temperature(intent: Intent, pressure: str, local_hour: int) -> float:
    if intent == Intent.NUMBERS:
        return TEMP_NUMBERS
    if intent == Intent.MOTIVATION:
        return TEMP_MOTIVATION_HIGH if pressure == PRESSURE_HIGH else TEMP_MOTIVATION
    return TEMP_EVENING if is_evening(local_hour) else TEMP_DAYTIME


def _extract_content(response) -> str:
    try:
        content = response["message"]["content"]
    except (KeyError, TypeError, IndexError) as e:
        raise UpstreamError(f"malformed completion payload: {e!r}") from e
    if not isinstance(content, str) or not content.strip():
        raise UpstreamError("empty completion")
    return content.strip()


class CompletionClient:
    """Interface the pipeline depends on."""

    model_name = "unknown"

    async def complete(self, system_prompt: str, question: str,
                       temperature: float, max_tokens: int) -> str:
        raise NotImplementedError


class OllamaCompletionClient(CompletionClient):

    def __init__(self, settings: Settings, client: Optional[ollama.AsyncClient] = None):
        self.settings = settings
        self.model_name = settings.model_name
        self._client = client

    def _get_client(self) -> ollama.AsyncClient:
        if self._client is None:
            # ConfigurationError propagates from here when credentials are missing.
            api_key = completion_credentials(self.settings.ollama_host)
            headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
            self._client = ollama.AsyncClient(
                host=self.settings.ollama_host,
                headers=headers,
                timeout=self.settings.llm_timeout_seconds,
            )
        return self._client

    async def complete(self, system_prompt: str, question: str,
                       temperature: float, max_tokens: int) -> str:
        client = self._get_client()
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                client.chat(
                    model=self.model_name,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": question},
                    ],
                    options={"temperature": temperature, "num_predict": max_tokens},
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            slog.log_completion(self.model_name, temperature,
                                (time.perf_counter() - started) * 1000, error="timeout")
            raise UpstreamError("completion timed out") from e
        except ollama.ResponseError as e:
            slog.log_completion(self.model_name, temperature,
                                (time.perf_counter() - started) * 1000, error=str(e))
            raise UpstreamError(f"completion service error {e.status_code}: {e.error}") from e
        except Exception as e:
            # httpx transport failures, connection refused, bad JSON
            slog.log_completion(self.model_name, temperature,
                                (time.perf_counter() - started) * 1000, error=repr(e))
            raise UpstreamError(f"completion call failed: {e!r}") from e

        content = _extract_content(response)
        slog.log_completion(self.model_name, temperature, (time.perf_counter() - started) * 1000)
        return content
