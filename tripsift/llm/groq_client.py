"""Groq adapter (OpenAI-compatible chat completions)."""

from typing import Any

from tripsift.core.errors import ErrorInfo, ProviderRequestError

from .base import RemoteProvider, chat_completion_payload, chat_completion_text
from .providers import ProviderKind
from .types import Prompt

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"


class GroqProvider(RemoteProvider):
    kind = ProviderKind.GROQ
    label = "Groq"

    def __init__(self, api_key: str, *, model: str = "llama-3.3-70b-versatile", **kwargs: Any):
        super().__init__(api_key, **kwargs)
        self.model = model

    async def _request_text(self, prompt: Prompt) -> str:
        body = await self._post_json(
            GROQ_API_URL,
            chat_completion_payload(self.model, prompt, self.temperature, self.max_output_tokens),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        text = chat_completion_text(body)
        if not text:
            raise ProviderRequestError(ErrorInfo(message="No content in Groq response"), provider=self.service_id)
        return text
