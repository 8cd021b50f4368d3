"""Tests for tripsift.core.utils.retry."""

import random

import httpx
import pytest

from tripsift.core.errors import ErrorInfo, ProviderRequestError
from tripsift.core.utils.retry import (
    RetryConfig,
    calculate_backoff,
    classify_error,
    extract_retry_delay,
    get_retry_config,
    is_retryable_error,
    retry_async,
)


def _provider_error(retryable: bool, **kw) -> ProviderRequestError:
    return ProviderRequestError(ErrorInfo(message="boom", is_retryable=retryable, **kw), provider="test")


class _StatusError(Exception):
    def __init__(self, status: int):
        super().__init__(f"status {status}")
        self.status = status


# ---------------------------------------------------------------------------
# calculate_backoff
# ---------------------------------------------------------------------------

class TestCalculateBackoff:

    def test_exponential_growth_without_jitter(self) -> None:
        cfg = RetryConfig(initial_delay=0.5, backoff_factor=2.0, max_delay=100.0, jitter=0.0)
        delays = [calculate_backoff(a, cfg) for a in range(5)]
        assert delays == pytest.approx([0.5, 1.0, 2.0, 4.0, 8.0])

    def test_monotonic_until_capped(self) -> None:
        cfg = RetryConfig(initial_delay=1.0, max_delay=5.0, jitter=0.0)
        delays = [calculate_backoff(a, cfg) for a in range(8)]
        assert delays == sorted(delays)
        assert max(delays) == pytest.approx(5.0)

    def test_never_exceeds_max_delay_with_jitter(self) -> None:
        cfg = RetryConfig(initial_delay=1.0, max_delay=3.0, jitter=1.0)
        rng = random.Random(7)
        for attempt in range(10):
            assert calculate_backoff(attempt, cfg, rng=rng) <= 3.0

    def test_server_hint_takes_precedence(self) -> None:
        cfg = RetryConfig(initial_delay=0.5, max_delay=30.0, jitter=0.2)
        rng = random.Random(1)
        for attempt in range(4):
            delay = calculate_backoff(attempt, cfg, server_hint=5.0, rng=rng)
            assert 5.0 <= delay <= 5.2

    def test_server_hint_capped(self) -> None:
        cfg = RetryConfig(max_delay=10.0, jitter=0.0)
        assert calculate_backoff(0, cfg, server_hint=60.0) == pytest.approx(10.0)

    def test_non_positive_hint_ignored(self) -> None:
        cfg = RetryConfig(initial_delay=0.5, jitter=0.0)
        assert calculate_backoff(1, cfg, server_hint=0.0) == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# is_retryable_error / classify_error
# ---------------------------------------------------------------------------

class TestIsRetryableError:

    def test_explicit_flag(self) -> None:
        assert is_retryable_error(_provider_error(True)) is True

    def test_retryable_status(self) -> None:
        assert is_retryable_error(_StatusError(503)) is True

    def test_client_status_not_retryable(self) -> None:
        assert is_retryable_error(_StatusError(400)) is False

    def test_transport_timeout(self) -> None:
        assert is_retryable_error(httpx.ReadTimeout("slow")) is True

    def test_message_fallback(self) -> None:
        assert is_retryable_error(Exception("429 Too Many Requests")) is True
        assert is_retryable_error(Exception("RESOURCE_EXHAUSTED")) is True

    def test_plain_error(self) -> None:
        assert is_retryable_error(ValueError("bad input")) is False


class TestClassifyError:

    def test_rate_limit_status(self) -> None:
        assert classify_error(_StatusError(429)) == "rate_limit"

    def test_server_error(self) -> None:
        assert classify_error(_StatusError(502)) == "server_error"

    def test_client_error(self) -> None:
        assert classify_error(_StatusError(404)) == "client_error"

    def test_timeout(self) -> None:
        assert classify_error(httpx.ReadTimeout("slow")) == "timeout"

    def test_unknown(self) -> None:
        assert classify_error(Exception("something weird")) == "unknown"


# ---------------------------------------------------------------------------
# extract_retry_delay
# ---------------------------------------------------------------------------

class TestExtractRetryDelay:

    def test_structured_field(self) -> None:
        assert extract_retry_delay(_provider_error(True, retry_after=7)) == 7.0

    def test_google_retry_delay_in_message(self) -> None:
        err = Exception('{"error": {"details": [{"retryDelay": "17s"}]}}')
        assert extract_retry_delay(err) == 17.0

    def test_retry_after_header(self) -> None:
        request = httpx.Request("POST", "https://example.test")
        response = httpx.Response(429, headers={"Retry-After": "3"}, request=request)
        err = httpx.HTTPStatusError("rate limited", request=request, response=response)
        assert extract_retry_delay(err) == 3.0

    def test_no_hint(self) -> None:
        assert extract_retry_delay(Exception("nope")) is None


# ---------------------------------------------------------------------------
# retry_async
# ---------------------------------------------------------------------------

class TestRetryAsync:

    async def test_succeeds_first_try(self, sleep_recorder) -> None:
        async def op():
            return "ok"

        assert await retry_async(op, sleep=sleep_recorder) == "ok"
        assert sleep_recorder.delays == []

    async def test_retryable_failure_uses_full_budget(self, sleep_recorder) -> None:
        calls = []

        async def op():
            calls.append(1)
            raise _provider_error(True)

        cfg = RetryConfig(max_retries=3, initial_delay=0.01, jitter=0.0)
        with pytest.raises(ProviderRequestError):
            await retry_async(op, config=cfg, sleep=sleep_recorder)
        assert len(calls) == 4
        assert len(sleep_recorder.delays) == 3

    async def test_non_retryable_called_once(self, sleep_recorder) -> None:
        calls = []

        async def op():
            calls.append(1)
            raise _provider_error(False)

        with pytest.raises(ProviderRequestError):
            await retry_async(op, config=RetryConfig(max_retries=5), sleep=sleep_recorder)
        assert len(calls) == 1
        assert sleep_recorder.delays == []

    async def test_recovers_after_transient_failures(self, sleep_recorder) -> None:
        calls = []

        async def op():
            calls.append(1)
            if len(calls) < 3:
                raise _provider_error(True)
            return "ok"

        cfg = RetryConfig(max_retries=5, initial_delay=0.5, jitter=0.0)
        assert await retry_async(op, config=cfg, sleep=sleep_recorder) == "ok"
        assert sleep_recorder.delays == pytest.approx([0.5, 1.0])

    async def test_server_hint_drives_sleep(self, sleep_recorder) -> None:
        calls = []

        async def op():
            calls.append(1)
            if len(calls) == 1:
                raise _provider_error(True, retry_after=5.0)
            return "ok"

        cfg = RetryConfig(max_retries=2, initial_delay=0.1, jitter=0.0)
        await retry_async(op, config=cfg, sleep=sleep_recorder)
        assert sleep_recorder.delays == pytest.approx([5.0])

    async def test_on_retry_callback_errors_swallowed(self, sleep_recorder) -> None:
        seen = []

        def on_retry(attempt, error, delay):
            seen.append(attempt)
            raise RuntimeError("observer broke")

        calls = []

        async def op():
            calls.append(1)
            if len(calls) < 2:
                raise _provider_error(True)
            return "ok"

        result = await retry_async(op, config=RetryConfig(jitter=0.0), on_retry=on_retry, sleep=sleep_recorder)
        assert result == "ok"
        assert seen == [1]


class TestRetryPresets:

    def test_known_service(self) -> None:
        assert get_retry_config("gemini").max_retries == 3

    def test_unknown_service_gets_default(self) -> None:
        assert get_retry_config("nope").max_retries == 5
