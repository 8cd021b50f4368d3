import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv
from tripsift.core.logging import configure_logging, get_logger
_log = get_logger("core.config")

load_dotenv()
configure_logging()

APP_VERSION = os.getenv("TRIPSIFT_VERSION", "0.3.0")


def _get_int_env(name: str, default: int) -> int:
    """Get integer value from environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set or invalid

    Returns:
        Integer value from env or default
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        _log.warning("Invalid int env", env=name, value=raw)
        return default


def _get_float_env(name: str, default: float) -> float:
    """Get float value from environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set or invalid

    Returns:
        Float value from env or default
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        _log.warning("Invalid float env", env=name, value=raw)
        return default


def _get_list_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# =============================================================================
# Provider credentials (a provider without a key is never constructed)
# =============================================================================
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
GROQ_API_KEY = os.getenv("GROQ_API_KEY")

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")

DEFAULT_OPENROUTER_MODELS = [
    "x-ai/grok-3-mini-beta",
    "x-ai/grok-2-1212",
    "meta-llama/llama-3.3-70b-instruct",
    "anthropic/claude-3-5-haiku",
]
OPENROUTER_MODELS = _get_list_env("OPENROUTER_MODELS", DEFAULT_OPENROUTER_MODELS)
OPENROUTER_REFERER = os.getenv("OPENROUTER_REFERER", "https://tripsift.app")
OPENROUTER_TITLE = os.getenv("OPENROUTER_TITLE", "TripSift")

# =============================================================================
# Generation
# =============================================================================
LLM_TEMPERATURE = _get_float_env("LLM_TEMPERATURE", 0.3)
LLM_MAX_OUTPUT_TOKENS = _get_int_env("LLM_MAX_OUTPUT_TOKENS", 4096)

# =============================================================================
# Resilience
# =============================================================================
PROVIDER_SKIP_THRESHOLD = _get_int_env("PROVIDER_SKIP_THRESHOLD", 3)
CIRCUIT_FAILURE_THRESHOLD = _get_int_env("CIRCUIT_FAILURE_THRESHOLD", 5)
CIRCUIT_RESET_TIMEOUT = _get_float_env("CIRCUIT_RESET_TIMEOUT", 60.0)

# =============================================================================
# Extraction
# =============================================================================
CONSENSUS_MIN_SENDERS = max(1, _get_int_env("CONSENSUS_MIN_SENDERS", 2))

# =============================================================================
# Geocoding
# =============================================================================
GEOCODE_CACHE_TTL = _get_float_env("GEOCODE_CACHE_TTL", 24 * 60 * 60.0)
NOMINATIM_USER_AGENT = os.getenv(
    "NOMINATIM_USER_AGENT", "TripSift/0.3 (trip planning chat parser)"
)

# =============================================================================
# Timeouts (seconds)
# =============================================================================
TIMEOUT_HTTP_DEFAULT = _get_float_env("TIMEOUT_HTTP_DEFAULT", 30.0)
TIMEOUT_HTTP_CONNECT = _get_float_env("TIMEOUT_HTTP_CONNECT", 5.0)
TIMEOUT_LLM_REQUEST = _get_float_env("TIMEOUT_LLM_REQUEST", 60.0)
TIMEOUT_GEOCODE = _get_float_env("TIMEOUT_GEOCODE", 10.0)


@dataclass(frozen=True)
class Settings:
    """Snapshot of the environment, passed to factories instead of globals."""

    gemini_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    groq_model: str = "llama-3.3-70b-versatile"
    openrouter_models: tuple[str, ...] = tuple(DEFAULT_OPENROUTER_MODELS)
    openrouter_referer: str = "https://tripsift.app"
    openrouter_title: str = "TripSift"
    temperature: float = 0.3
    max_output_tokens: int = 4096
    provider_skip_threshold: int = 3
    circuit_failure_threshold: int = 5
    circuit_reset_timeout: float = 60.0
    consensus_min_senders: int = 2
    geocode_cache_ttl: float = 24 * 60 * 60.0
    nominatim_user_agent: str = "TripSift/0.3 (trip planning chat parser)"
    timeout_http_default: float = 30.0
    timeout_http_connect: float = 5.0
    timeout_llm_request: float = 60.0
    timeout_geocode: float = 10.0
    extra: dict = field(default_factory=dict, compare=False)


def get_settings() -> Settings:
    return Settings(
        gemini_api_key=GEMINI_API_KEY,
        openrouter_api_key=OPENROUTER_API_KEY,
        groq_api_key=GROQ_API_KEY,
        gemini_model=GEMINI_MODEL,
        groq_model=GROQ_MODEL,
        openrouter_models=tuple(OPENROUTER_MODELS),
        openrouter_referer=OPENROUTER_REFERER,
        openrouter_title=OPENROUTER_TITLE,
        temperature=LLM_TEMPERATURE,
        max_output_tokens=LLM_MAX_OUTPUT_TOKENS,
        provider_skip_threshold=PROVIDER_SKIP_THRESHOLD,
        circuit_failure_threshold=CIRCUIT_FAILURE_THRESHOLD,
        circuit_reset_timeout=CIRCUIT_RESET_TIMEOUT,
        consensus_min_senders=CONSENSUS_MIN_SENDERS,
        geocode_cache_ttl=GEOCODE_CACHE_TTL,
        nominatim_user_agent=NOMINATIM_USER_AGENT,
        timeout_http_default=TIMEOUT_HTTP_DEFAULT,
        timeout_http_connect=TIMEOUT_HTTP_CONNECT,
        timeout_llm_request=TIMEOUT_LLM_REQUEST,
        timeout_geocode=TIMEOUT_GEOCODE,
    )
