import asyncio
import random
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from tripsift.core.logging import get_logger

_log = get_logger("core.retry")

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504, 520, 521, 522, 523, 524})

# Last-resort classifier for errors that carry no structured fields.
RATE_LIMIT_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"429",
        r"rate.?limit",
        r"quota",
        r"too.?many.?requests",
        r"resource.?exhausted",
        r"throttl",
        r"exceeded",
        r"capacity",
        r"overloaded",
    )
]

_RETRY_DELAY_RE = re.compile(r"retry.?delay[\"'\s:]+(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass
class RetryConfig:
    """Attempt budget and backoff envelope, all delays in seconds."""

    max_retries: int = 5
    initial_delay: float = 0.5
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: float = 0.2
    retryable_statuses: frozenset = field(default_factory=lambda: RETRYABLE_STATUSES)


DEFAULT_RETRY_CONFIG = RetryConfig()

RETRY_PRESETS: dict[str, RetryConfig] = {
    "gemini": RetryConfig(max_retries=3, initial_delay=1.0, max_delay=30.0, jitter=0.5),
    "openrouter": RetryConfig(max_retries=4, initial_delay=1.0, max_delay=45.0, jitter=0.5),
    "groq": RetryConfig(max_retries=3, initial_delay=1.0, max_delay=60.0, jitter=0.5),
    "nominatim": RetryConfig(max_retries=3, initial_delay=0.5, max_delay=10.0, jitter=0.2),
}


def get_retry_config(service: str) -> RetryConfig:
    return RETRY_PRESETS.get(service, DEFAULT_RETRY_CONFIG)


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status", None)
    if isinstance(status, int):
        return status
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def is_retryable_error(error: BaseException, config: RetryConfig | None = None) -> bool:
    """Decide whether another attempt may succeed.

    Structured fields are checked first: an explicit ``is_retryable`` flag,
    then the HTTP status. Transport timeouts and dropped connections are
    retryable. The message patterns are the last resort.
    """
    config = config or DEFAULT_RETRY_CONFIG

    if getattr(error, "is_retryable", False) is True:
        return True

    status = _status_of(error)
    if status is not None and status in config.retryable_statuses:
        return True

    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True

    error_str = str(error)
    return any(pattern.search(error_str) for pattern in RATE_LIMIT_PATTERNS)


def classify_error(error: BaseException) -> str:

    status = _status_of(error)
    if status == 429:
        return "rate_limit"
    if status is not None and status >= 500:
        return "server_error"
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    if status is not None and 400 <= status < 500:
        return "client_error"

    error_str = str(error).lower()
    if any(pattern.search(error_str) for pattern in RATE_LIMIT_PATTERNS):
        return "rate_limit"
    if "timeout" in error_str or "timed out" in error_str:
        return "timeout"
    return "unknown"


def _parse_seconds(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    text = str(value).strip().lower().rstrip("s")
    try:
        seconds = float(text)
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def extract_retry_delay(error: BaseException) -> Optional[float]:
    """Server-suggested wait in seconds, or None.

    Checks the error's ``retry_after`` field, then a ``retryDelay`` value
    embedded in Google-style error bodies, then a ``Retry-After`` header on
    an attached httpx response.
    """
    hint = _parse_seconds(getattr(error, "retry_after", None))
    if hint is not None:
        return hint

    match = _RETRY_DELAY_RE.search(str(error))
    if match:
        return _parse_seconds(match.group(1))

    if isinstance(error, httpx.HTTPStatusError):
        return _parse_seconds(error.response.headers.get("retry-after"))

    return None


def calculate_backoff(
    attempt: int,
    config: RetryConfig | None = None,
    server_hint: Optional[float] = None,
    rng: random.Random | None = None,
) -> float:
    """Delay before the next attempt, in seconds.

    A positive server hint takes precedence over the exponential curve.
    Both paths add uniform jitter in ``[0, jitter]`` and are capped at
    ``max_delay``.
    """
    config = config or DEFAULT_RETRY_CONFIG
    source = rng or random
    jitter = source.uniform(0, config.jitter) if config.jitter > 0 else 0.0

    if server_hint is not None and server_hint > 0:
        return min(server_hint + jitter, config.max_delay)

    delay = config.initial_delay * (config.backoff_factor ** attempt)
    return min(delay + jitter, config.max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: random.Random | None = None,
) -> T:
    """Run ``operation`` until it succeeds or the attempt budget is spent.

    Makes at most ``max_retries + 1`` calls. A non-retryable failure, or a
    failure on the last allowed attempt, is re-raised without sleeping.

    Args:
        operation: Zero-arg coroutine factory, called once per attempt.
        config: Retry configuration.
        on_retry: Optional callback ``(attempt_number, error, delay)``.
        sleep: Awaitable sleep, injectable for tests.
        rng: Random source for jitter.
    """
    config = config or DEFAULT_RETRY_CONFIG

    for attempt in range(config.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= config.max_retries or not is_retryable_error(e, config):
                raise

            server_hint = extract_retry_delay(e)
            delay = calculate_backoff(attempt, config, server_hint=server_hint, rng=rng)

            _log.warning(
                "Retry scheduled",
                attempt=attempt + 1,
                max_retries=config.max_retries,
                error_type=classify_error(e),
                delay=round(delay, 2),
                error_preview=str(e)[:100]
            )

            if on_retry:
                try:
                    on_retry(attempt + 1, e, delay)
                except Exception as cb_err:
                    _log.warning("on_retry callback failed", error=str(cb_err))

            await sleep(delay)

    raise RuntimeError("retry loop exited without result")
