"""Google Gemini adapter (REST ``generateContent``)."""

import re
from typing import Any, Dict, Optional

import httpx

from tripsift.core.errors import ErrorInfo, ProviderRequestError
from tripsift.core.logging import get_logger

from .base import RemoteProvider
from .providers import ProviderKind
from .types import Prompt

_log = get_logger("llm.gemini")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

_GOOGLE_LIMIT_RE = re.compile(r"quota|rate.?limit|resource.?exhausted", re.IGNORECASE)
# Google error bodies carry ``"retryDelay": "17s"``.
_RETRY_DELAY_RE = re.compile(r"retryDelay[\"'\s:]+(\d+(?:\.\d+)?)", re.IGNORECASE)


class GeminiProvider(RemoteProvider):
    """Gemini over plain HTTPS; system and user prompt are sent as one text part."""

    kind = ProviderKind.GEMINI
    label = "Gemini"

    def __init__(self, api_key: str, *, model: str = "gemini-2.0-flash", **kwargs: Any):
        super().__init__(api_key, **kwargs)
        self.model = model

    @property
    def url(self) -> str:
        return f"{GEMINI_API_BASE}/{self.model}:generateContent"

    def _is_rate_limited(self, status: int, body: str) -> bool:
        return status == 429 or bool(_GOOGLE_LIMIT_RE.search(body))

    def _retry_hint(self, response: httpx.Response, body: str) -> Optional[float]:
        match = _RETRY_DELAY_RE.search(body)
        if match:
            return float(match.group(1))
        return super()._retry_hint(response, body)

    def _payload(self, prompt: Prompt) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": f"{prompt.system}\n\n{prompt.user}"}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    async def _request_text(self, prompt: Prompt) -> str:
        body = await self._post_json(
            f"{self.url}?key={self.api_key}",
            self._payload(prompt),
            headers={"Content-Type": "application/json"},
            context=self.model,
        )
        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise ProviderRequestError(ErrorInfo(message="No content in Gemini response"), provider=self.service_id)
        _log.debug("Gemini response", model=self.model, chars=len(text))
        return text
