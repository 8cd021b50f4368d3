"""Remote adapters against httpx.MockTransport.

Covers:
- Gemini success, retryDelay hint, non-retryable status, malformed output
- OpenRouter headers, model fallback memory, Retry-After hint
- Groq success, empty completion, transport errors
- circuit breaker short-circuit
"""

import json

import httpx
import pytest

from tripsift.core.resilience import CircuitBreakerRegistry
from tripsift.core.utils.retry import RetryConfig
from tripsift.llm.gemini_client import GeminiProvider
from tripsift.llm.groq_client import GroqProvider
from tripsift.llm.openrouter_client import OpenRouterProvider, is_model_unavailable
from tripsift.core.errors import ErrorInfo
from tripsift.llm.prompts import build_extraction_prompt
from tripsift.llm.providers import ProviderKind

PAYLOAD = {
    "dates": [{"date": "Dec 15-18", "startDate": "2024-12-15", "endDate": "2024-12-18", "status": "finalized"}],
    "places": [{"name": "Baga Beach", "type": "beach", "votes": 2, "status": "confirmed", "mentionedBy": ["Priya", "Amit"]}],
    "openQuestions": [{"question": "Bikes or cabs?"}],
}

PROMPT = build_extraction_prompt("Rahul: Goa trip Dec 15-18?")


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _chat_body(text) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


# ============================================================================
# Gemini
# ============================================================================

class TestGeminiProvider:

    async def test_success(self, sleep_recorder):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_gemini_body(json.dumps(PAYLOAD)))

        provider = GeminiProvider("g-key", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is True
        assert result.provider == ProviderKind.GEMINI
        assert result.data.dates[0].start_date == "2024-12-15"
        assert result.data.places[0].mentioned_by == ["Priya", "Amit"]
        assert result.data.open_questions[0].question == "Bikes or cabs?"
        assert result.latency_ms >= 0

        request = seen[0]
        assert request.url.params["key"] == "g-key"
        assert request.url.path.endswith("/gemini-2.0-flash:generateContent")
        sent = json.loads(request.content)
        assert PROMPT.system in sent["contents"][0]["parts"][0]["text"]
        assert sent["generationConfig"]["maxOutputTokens"] == 4096

    async def test_fenced_output_is_parsed(self, sleep_recorder):
        text = "```json\n" + json.dumps(PAYLOAD) + "\n```"

        def handler(request):
            return httpx.Response(200, json=_gemini_body(text))

        provider = GeminiProvider("k", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)
        assert result.success is True
        assert result.data.dates[0].date == "Dec 15-18"

    async def test_quota_error_retried_with_hint(self, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) == 1:
                return httpx.Response(
                    429,
                    json={"error": {"status": "RESOURCE_EXHAUSTED", "details": [{"retryDelay": "17s"}]}},
                )
            return httpx.Response(200, json=_gemini_body(json.dumps(PAYLOAD)))

        provider = GeminiProvider("k", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is True
        assert len(calls) == 2
        assert len(sleep_recorder.delays) == 1
        assert 17.0 <= sleep_recorder.delays[0] <= 17.5

    async def test_bad_request_not_retried(self, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(400, json={"error": {"message": "API key not valid"}})

        provider = GeminiProvider("k", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is False
        assert result.error.status == 400
        assert result.error.is_retryable is False
        assert "Gemini API error" in result.error.message
        assert len(calls) == 1

    async def test_malformed_output_not_retried(self, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(200, json=_gemini_body("Sorry, I cannot help with that."))

        provider = GeminiProvider("k", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is False
        assert "Failed to parse JSON" in result.error.message
        assert len(calls) == 1
        assert sleep_recorder.delays == []

    async def test_schema_mismatch_fails(self, sleep_recorder):
        def handler(request):
            return httpx.Response(200, json=_gemini_body(json.dumps({"dates": "soon"})))

        provider = GeminiProvider("k", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)
        assert result.success is False
        assert "Invalid extraction payload" in result.error.message

    async def test_empty_candidates(self, sleep_recorder):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        provider = GeminiProvider("k", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)
        assert result.success is False
        assert result.error.message == "No content in Gemini response"


# ============================================================================
# OpenRouter
# ============================================================================

class TestOpenRouterProvider:

    async def test_headers_and_payload(self, sleep_recorder):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=_chat_body(json.dumps(PAYLOAD)))

        provider = OpenRouterProvider(
            "or-key", models=["m/one"], referer="https://example.test", title="Test",
            client=_client(handler), sleep=sleep_recorder,
        )
        result = await provider.send_request(PROMPT)

        assert result.success is True
        request = seen[0]
        assert request.headers["Authorization"] == "Bearer or-key"
        assert request.headers["HTTP-Referer"] == "https://example.test"
        assert request.headers["X-Title"] == "Test"
        body = json.loads(request.content)
        assert body["model"] == "m/one"
        assert body["messages"][0] == {"role": "system", "content": PROMPT.system}
        assert body["response_format"] == {"type": "json_object"}

    async def test_model_fallback_is_remembered(self, sleep_recorder):
        models_called = []

        def handler(request):
            model = json.loads(request.content)["model"]
            models_called.append(model)
            if model == "m/gone":
                return httpx.Response(404, json={"error": {"message": "model not found"}})
            return httpx.Response(200, json=_chat_body(json.dumps(PAYLOAD)))

        provider = OpenRouterProvider(
            "k", models=["m/gone", "m/works"], client=_client(handler), sleep=sleep_recorder,
        )
        first = await provider.send_request(PROMPT)
        assert first.success is True
        assert provider.current_model == "m/works"

        await provider.send_request(PROMPT)
        assert models_called == ["m/gone", "m/works", "m/works"]

        provider.reset_model_fallback()
        assert provider.current_model == "m/gone"

    async def test_all_models_fail_returns_last_error(self, sleep_recorder):
        def handler(request):
            model = json.loads(request.content)["model"]
            return httpx.Response(400, text=f"bad request for {model}")

        provider = OpenRouterProvider("k", models=["a", "b"], client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is False
        assert "(b)" in result.error.message
        assert provider.current_model == "a"

    async def test_retry_after_header(self, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) == 1:
                return httpx.Response(503, headers={"Retry-After": "2"}, text="overloaded")
            return httpx.Response(200, json=_chat_body(json.dumps(PAYLOAD)))

        provider = OpenRouterProvider("k", models=["a"], client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is True
        assert 2.0 <= sleep_recorder.delays[0] <= 2.5

    def test_requires_models(self):
        with pytest.raises(ValueError):
            OpenRouterProvider("k", models=[])

    def test_model_unavailable_detection(self):
        assert is_model_unavailable(ErrorInfo(message="x", status=404)) is True
        assert is_model_unavailable(ErrorInfo(message="Model not available right now")) is True
        assert is_model_unavailable(ErrorInfo(message="quota", status=429)) is False


# ============================================================================
# Groq
# ============================================================================

class TestGroqProvider:

    async def test_success(self, sleep_recorder):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=_chat_body(json.dumps(PAYLOAD)))

        provider = GroqProvider("gsk", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)

        assert result.success is True
        assert result.provider == ProviderKind.GROQ
        assert str(seen[0].url) == "https://api.groq.com/openai/v1/chat/completions"
        assert json.loads(seen[0].content)["model"] == "llama-3.3-70b-versatile"

    async def test_empty_completion(self, sleep_recorder):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        provider = GroqProvider("gsk", client=_client(handler), sleep=sleep_recorder)
        result = await provider.send_request(PROMPT)
        assert result.success is False
        assert result.error.message == "No content in Groq response"

    async def test_connection_errors_retried_then_reported(self, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(1)
            raise httpx.ConnectError("connection refused", request=request)

        provider = GroqProvider(
            "gsk",
            client=_client(handler),
            sleep=sleep_recorder,
            retry_config=RetryConfig(max_retries=2, initial_delay=0.1, jitter=0.0),
        )
        result = await provider.send_request(PROMPT)

        assert result.success is False
        assert result.error.is_retryable is True
        assert len(calls) == 3
        assert sleep_recorder.delays == pytest.approx([0.1, 0.2])


# ============================================================================
# Circuit breaker integration
# ============================================================================

class TestBreakerIntegration:

    async def test_open_circuit_short_circuits(self, sleep_recorder):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(401, text="unauthorized")

        breakers = CircuitBreakerRegistry(failure_threshold=1, reset_timeout=60.0)
        provider = GroqProvider("gsk", client=_client(handler), sleep=sleep_recorder, breakers=breakers)

        first = await provider.send_request(PROMPT)
        second = await provider.send_request(PROMPT)

        assert first.success is False
        assert second.success is False
        assert "circuit open" in second.error.message
        assert len(calls) == 1
