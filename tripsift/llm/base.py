"""Provider interface and the shared HTTP machinery of the remote adapters.

This module provides:
- BaseProvider: abstract interface every adapter implements
- RemoteProvider: retry, circuit breaker and error mapping around one JSON POST
- parse_json_response: tolerant JSON extraction from model output
"""

import json
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from tripsift.core.errors import CircuitOpenError, ErrorInfo, ProviderRequestError
from tripsift.core.logging import get_logger
from tripsift.core.utils.http_pool import get_client
from tripsift.core.utils.retry import (
    RATE_LIMIT_PATTERNS,
    RetryConfig,
    extract_retry_delay,
    get_retry_config,
    retry_async,
)
from tripsift.extraction.schemas import ExtractionResult

from .providers import ProviderKind
from .types import Prompt, ProviderResult

_log = get_logger("llm.base")

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def parse_json_response(text: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object out of model output.

    Strips a ```json fence when present, then falls back to the outermost
    ``{...}`` span. Returns None when nothing parses to an object.
    """
    candidate = (text or "").strip()
    fenced = _FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(candidate)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def validate_payload(data: Dict[str, Any], provider: str) -> ExtractionResult:
    """Validate a decoded payload; schema errors are not retryable."""
    try:
        return ExtractionResult.model_validate(data)
    except ValidationError as e:
        raise ProviderRequestError(
            ErrorInfo(message=f"Invalid extraction payload from {provider}: {e.error_count()} errors"),
            provider=provider,
        ) from e


class BaseProvider(ABC):
    """Interface for anything the fallback manager can call."""

    kind: ProviderKind

    @abstractmethod
    async def send_request(self, prompt: Prompt) -> ProviderResult[ExtractionResult]:
        """Run one extraction.

        Expected failures come back as ``ProviderResult(success=False)``;
        this method does not raise for them.
        """


class RemoteProvider(BaseProvider):
    """Shared plumbing for HTTP-backed adapters.

    Subclasses implement ``_request_text`` and may override
    ``_error_from_response`` to read provider-specific retry hints.
    """

    label: str = "Remote"

    def __init__(
        self,
        api_key: str,
        *,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
        timeout: Optional[float] = None,
        breakers: Optional[Any] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_config: Optional[RetryConfig] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.api_key = api_key
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self._breakers = breakers
        self._client = client
        self.retry_config = retry_config or get_retry_config(self.kind.value)
        self._sleep = sleep

    @property
    def service_id(self) -> str:
        return self.kind.value

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_client(service=self.service_id, timeout=self.timeout)

    # -- error mapping -----------------------------------------------------

    def _is_rate_limited(self, status: int, body: str) -> bool:
        return status == 429 or any(p.search(body) for p in RATE_LIMIT_PATTERNS[1:])

    def _retry_hint(self, response: httpx.Response, body: str) -> Optional[float]:
        header = response.headers.get("retry-after")
        if header:
            try:
                return float(header)
            except ValueError:
                return None
        return None

    def _error_from_response(self, response: httpx.Response, context: str = "") -> ErrorInfo:
        body = response.text
        status = response.status_code
        retryable = status in self.retry_config.retryable_statuses or self._is_rate_limited(status, body)
        where = f" ({context})" if context else ""
        return ErrorInfo(
            message=f"{self.label} API error{where}: {status} - {body[:500]}",
            status=status,
            is_retryable=retryable,
            retry_after=self._retry_hint(response, body) if retryable else None,
        )

    # -- request -----------------------------------------------------------

    def _on_retry(self, attempt: int, error: BaseException, delay: float) -> None:
        _log.warning(
            "Provider retry",
            provider=self.service_id,
            attempt=attempt,
            delay=round(delay, 2),
            error=str(error)[:200],
        )

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        context: str = "",
    ) -> Dict[str, Any]:
        """POST with retries behind the service breaker; returns the decoded body."""

        async def attempt() -> Dict[str, Any]:
            client = await self._get_client()
            try:
                response = await client.post(url, json=payload, headers=headers, timeout=self.timeout)
            except httpx.TimeoutException as e:
                raise ProviderRequestError(
                    ErrorInfo(message=f"{self.label} request timed out: {e}", is_retryable=True),
                    provider=self.service_id,
                ) from e
            except httpx.TransportError as e:
                raise ProviderRequestError(
                    ErrorInfo(message=f"{self.label} connection error: {e}", is_retryable=True),
                    provider=self.service_id,
                ) from e

            if response.status_code >= 400:
                raise ProviderRequestError(self._error_from_response(response, context), provider=self.service_id)
            try:
                return response.json()
            except ValueError as e:
                raise ProviderRequestError(
                    ErrorInfo(message=f"{self.label} returned a non-JSON body", status=response.status_code),
                    provider=self.service_id,
                ) from e

        kwargs: Dict[str, Any] = {"config": self.retry_config, "on_retry": self._on_retry}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep

        async def with_retries() -> Dict[str, Any]:
            return await retry_async(attempt, **kwargs)

        if self._breakers is None:
            return await with_retries()
        return await self._breakers.with_breaker(self.service_id, with_retries)

    @abstractmethod
    async def _request_text(self, prompt: Prompt) -> str:
        """Model output text for ``prompt``; raises ProviderRequestError."""

    async def send_request(self, prompt: Prompt) -> ProviderResult[ExtractionResult]:
        start = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - start) * 1000

        try:
            text = await self._request_text(prompt)
            data = parse_json_response(text)
            if data is None:
                raise ProviderRequestError(
                    ErrorInfo(message=f"Failed to parse JSON from {self.label} response"),
                    provider=self.service_id,
                )
            result = validate_payload(data, self.service_id)
        except ProviderRequestError as e:
            _log.error("Provider request failed", provider=self.service_id, error=e.message[:200])
            return ProviderResult.fail(self.kind, e.info, latency_ms=elapsed())
        except CircuitOpenError as e:
            return ProviderResult.fail(self.kind, ErrorInfo(message=e.message), latency_ms=elapsed())
        except httpx.HTTPError as e:
            _log.error("Provider transport failure", provider=self.service_id, error=str(e)[:200])
            return ProviderResult.fail(
                self.kind,
                ErrorInfo(message=str(e) or type(e).__name__, is_retryable=True,
                          retry_after=extract_retry_delay(e)),
                latency_ms=elapsed(),
            )

        return ProviderResult.ok(self.kind, result, latency_ms=elapsed())


def chat_completion_payload(model: str, prompt: Prompt, temperature: float, max_tokens: int) -> Dict[str, Any]:
    """OpenAI-compatible body asking for a JSON object."""
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": prompt.user},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "response_format": {"type": "json_object"},
    }


def chat_completion_text(body: Dict[str, Any]) -> Optional[str]:
    try:
        return body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None


__all__ = [
    "BaseProvider",
    "RemoteProvider",
    "parse_json_response",
    "validate_payload",
    "chat_completion_payload",
    "chat_completion_text",
]
