"""Decision client: OpenAI-compatible chat-completions over httpx.

Sends the rendered prompt and returns the raw assistant text. The response is
treated as untrusted; interpreting it is the parser's job. Transient failures
(timeouts, connection errors, 429 and 5xx) are retried a bounded number of
times; anything still failing surfaces as TransportError and is never read as
a "noop".
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

import httpx
import structlog

from aiopsanalyzer.errors import TransportError
from aiopsanalyzer.llm.prompts import SYSTEM_PROMPT
from aiopsanalyzer.models.config import LLMConfig
from aiopsanalyzer.observability.metrics import llm_requests_total

_log = structlog.get_logger(component="llm.client")

_BACKOFF_BASE_SECONDS = 1.0
_BACKOFF_MAX_SECONDS = 8.0


class _RetryableError(Exception):
    """Internal marker for failures worth another attempt."""


class DecisionClient:
    """Request/response client for the reasoning service.

    Args:
        config:  LLM endpoint, model and retry settings.
        api_key: Bearer token. Defaults to the value of the env var named by
                 ``config.api_key_ref``.
    """

    def __init__(self, config: LLMConfig, api_key: str | None = None) -> None:
        self._config = config
        self._url = config.endpoint.rstrip("/") + "/chat/completions"
        key = api_key if api_key is not None else os.environ.get(config.api_key_ref, "")
        headers = {"Authorization": f"Bearer {key}"} if key else {}
        self._client = httpx.AsyncClient(timeout=config.timeout_seconds, headers=headers)
        self._backoff_base = _BACKOFF_BASE_SECONDS

    async def send(self, request_text: str) -> str:
        """Send *request_text* and return the raw response content.

        Raises:
            TransportError: after ``max_retries + 1`` failed attempts, or
                immediately on a non-retryable protocol failure.
        """
        body = self._build_body(request_text)
        attempts = self._config.max_retries + 1
        last_error = ""

        for attempt in range(1, attempts + 1):
            try:
                content = await self._post(body)
            except _RetryableError as exc:
                last_error = str(exc)
                llm_requests_total.labels(success="false").inc()
                _log.warning("llm_request_retryable_failure", attempt=attempt, attempts=attempts, error=last_error)
                if attempt < attempts:
                    await asyncio.sleep(min(self._backoff_base * 2 ** (attempt - 1), _BACKOFF_MAX_SECONDS))
                continue
            except TransportError:
                llm_requests_total.labels(success="false").inc()
                raise
            llm_requests_total.labels(success="true").inc()
            _log.info("llm_response_received", attempt=attempt, length=len(content))
            return content

        raise TransportError(f"reasoning service unavailable after {attempts} attempts: {last_error}", attempts)

    async def _post(self, body: dict[str, Any]) -> str:
        try:
            response = await self._client.post(self._url, json=body)
        except httpx.TimeoutException as exc:
            raise _RetryableError(f"timeout: {exc}") from exc
        except httpx.TransportError as exc:
            raise _RetryableError(f"transport error: {exc}") from exc

        if response.status_code == 429 or response.status_code >= 500:
            raise _RetryableError(f"HTTP {response.status_code}: {response.text[:200]}")
        if not response.is_success:
            raise TransportError(f"reasoning service rejected request: HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise TransportError(f"unexpected chat-completions response shape: {exc}") from exc
        if not isinstance(content, str):
            raise TransportError("chat-completions content is not a string")
        return content

    def _build_body(self, request_text: str) -> dict[str, Any]:
        return {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": request_text},
            ],
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }

    async def aclose(self) -> None:
        await self._client.aclose()
