"""OpenRouter adapter with an in-adapter model fallback list."""

import re
from typing import Any, List, Optional, Sequence

from tripsift.core.errors import ErrorInfo, ProviderRequestError
from tripsift.core.logging import get_logger

from .base import RemoteProvider, chat_completion_payload, chat_completion_text
from .providers import ProviderKind
from .types import Prompt

_log = get_logger("llm.openrouter")

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"

_MODEL_UNAVAILABLE_RE = re.compile(r"model.?not.?found|not.?available", re.IGNORECASE)


def is_model_unavailable(info: ErrorInfo) -> bool:
    return info.status == 404 or bool(_MODEL_UNAVAILABLE_RE.search(info.message))


class OpenRouterProvider(RemoteProvider):
    """OpenAI-compatible chat completions through OpenRouter.

    Models are tried in order starting from the last one that worked.
    Any model failure moves on to the next model while models remain; the
    last model's error is what the caller sees.
    """

    kind = ProviderKind.OPENROUTER
    label = "OpenRouter"

    def __init__(
        self,
        api_key: str,
        *,
        models: Sequence[str],
        referer: str = "https://tripsift.app",
        title: str = "TripSift",
        **kwargs: Any,
    ):
        if not models:
            raise ValueError("OpenRouterProvider needs at least one model")
        super().__init__(api_key, **kwargs)
        self.models: List[str] = list(models)
        self.referer = referer
        self.title = title
        self._model_index = 0

    @property
    def current_model(self) -> str:
        return self.models[self._model_index]

    def reset_model_fallback(self) -> None:
        self._model_index = 0

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    async def _request_model(self, model: str, prompt: Prompt) -> str:
        body = await self._post_json(
            OPENROUTER_API_URL,
            chat_completion_payload(model, prompt, self.temperature, self.max_output_tokens),
            headers=self._headers(),
            context=model,
        )
        text = chat_completion_text(body)
        if not text:
            raise ProviderRequestError(
                ErrorInfo(message=f"No content in OpenRouter response ({model})"), provider=self.service_id
            )
        return text

    async def _request_text(self, prompt: Prompt) -> str:
        last_error: Optional[ProviderRequestError] = None

        for idx in range(self._model_index, len(self.models)):
            model = self.models[idx]
            try:
                text = await self._request_model(model, prompt)
            except ProviderRequestError as e:
                last_error = e
                _log.warning(
                    "OpenRouter model failed",
                    model=model,
                    unavailable=is_model_unavailable(e.info),
                    error=e.message[:200],
                )
                continue

            if idx != self._model_index:
                _log.info("OpenRouter model switched", model=model)
            self._model_index = idx
            return text

        if last_error is not None:
            raise last_error
        raise ProviderRequestError(ErrorInfo(message="All OpenRouter models exhausted"), provider=self.service_id)
