from .cache import TTLCache
from .http_pool import ClientPool, close_all, get_client
from .retry import (
    DEFAULT_RETRY_CONFIG,
    RETRY_PRESETS,
    RetryConfig,
    calculate_backoff,
    classify_error,
    extract_retry_delay,
    get_retry_config,
    is_retryable_error,
    retry_async,
)

__all__ = [
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "RETRY_PRESETS",
    "get_retry_config",
    "is_retryable_error",
    "classify_error",
    "extract_retry_delay",
    "calculate_backoff",
    "retry_async",
    "TTLCache",
    "ClientPool",
    "get_client",
    "close_all",
]
