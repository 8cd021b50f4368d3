"""Provider kinds and credential-driven provider resolution.

This module defines:
- ProviderKind: the closed set of backends the fallback manager can try
- ProviderSpec registry describing each remote backend
- build_providers: one adapter per kind whose API key is configured, plus offline
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from tripsift.core.logging import get_logger

if TYPE_CHECKING:
    from tripsift.config import Settings
    from tripsift.core.resilience.circuit_breaker import CircuitBreakerRegistry
    from .base import BaseProvider

_log = get_logger("llm.providers")


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    GROQ = "groq"
    OFFLINE = "offline"

    @property
    def is_remote(self) -> bool:
        return self is not ProviderKind.OFFLINE


DEFAULT_ORDER: tuple[ProviderKind, ...] = (
    ProviderKind.GEMINI,
    ProviderKind.OPENROUTER,
    ProviderKind.GROQ,
    ProviderKind.OFFLINE,
)

# Never skipped by health tracking; always succeeds.
GUARANTEED_PROVIDER = ProviderKind.OFFLINE


@dataclass
class ProviderSpec:
    """Static description of a remote backend."""

    kind: ProviderKind
    name: str
    api_key_env: str
    settings_key: str


PROVIDER_SPECS: Dict[ProviderKind, ProviderSpec] = {
    ProviderKind.GEMINI: ProviderSpec(
        kind=ProviderKind.GEMINI,
        name="Google Gemini",
        api_key_env="GEMINI_API_KEY",
        settings_key="gemini_api_key",
    ),
    ProviderKind.OPENROUTER: ProviderSpec(
        kind=ProviderKind.OPENROUTER,
        name="OpenRouter",
        api_key_env="OPENROUTER_API_KEY",
        settings_key="openrouter_api_key",
    ),
    ProviderKind.GROQ: ProviderSpec(
        kind=ProviderKind.GROQ,
        name="Groq",
        api_key_env="GROQ_API_KEY",
        settings_key="groq_api_key",
    ),
}


def parse_provider_kind(value: Any) -> Optional[ProviderKind]:
    if isinstance(value, ProviderKind):
        return value
    try:
        return ProviderKind(str(value).strip().lower())
    except ValueError:
        return None


def build_providers(
    settings: "Settings",
    breakers: Optional["CircuitBreakerRegistry"] = None,
    offline_only: bool = False,
) -> Dict[ProviderKind, "BaseProvider"]:
    """Resolve the provider mapping from configured credentials.

    Args:
        settings: Configuration snapshot
        breakers: Optional circuit breaker registry shared by remote adapters
        offline_only: Skip every remote backend

    Returns:
        Mapping from ProviderKind to adapter; offline is always present
    """
    # Import here to avoid circular dependencies
    from .gemini_client import GeminiProvider
    from .groq_client import GroqProvider
    from .offline_client import OfflineProvider
    from .openrouter_client import OpenRouterProvider

    providers: Dict[ProviderKind, "BaseProvider"] = {}

    if not offline_only:
        if settings.gemini_api_key:
            providers[ProviderKind.GEMINI] = GeminiProvider(
                api_key=settings.gemini_api_key,
                model=settings.gemini_model,
                temperature=settings.temperature,
                max_output_tokens=settings.max_output_tokens,
                timeout=settings.timeout_llm_request,
                breakers=breakers,
            )
        if settings.openrouter_api_key:
            providers[ProviderKind.OPENROUTER] = OpenRouterProvider(
                api_key=settings.openrouter_api_key,
                models=list(settings.openrouter_models),
                referer=settings.openrouter_referer,
                title=settings.openrouter_title,
                temperature=settings.temperature,
                max_output_tokens=settings.max_output_tokens,
                timeout=settings.timeout_llm_request,
                breakers=breakers,
            )
        if settings.groq_api_key:
            providers[ProviderKind.GROQ] = GroqProvider(
                api_key=settings.groq_api_key,
                model=settings.groq_model,
                temperature=settings.temperature,
                max_output_tokens=settings.max_output_tokens,
                timeout=settings.timeout_llm_request,
                breakers=breakers,
            )

    providers[ProviderKind.OFFLINE] = OfflineProvider(
        consensus_min_senders=settings.consensus_min_senders,
    )

    _log.info(
        "Providers resolved",
        providers=[k.value for k in providers],
        offline_only=offline_only,
    )
    return providers


def get_all_providers(settings: "Settings") -> List[Dict[str, Any]]:
    """List remote backends with their availability."""
    return [
        {
            "id": kind.value,
            "name": spec.name,
            "available": bool(getattr(settings, spec.settings_key, None)),
        }
        for kind, spec in PROVIDER_SPECS.items()
    ]


__all__ = [
    "ProviderKind",
    "DEFAULT_ORDER",
    "GUARANTEED_PROVIDER",
    "ProviderSpec",
    "PROVIDER_SPECS",
    "parse_provider_kind",
    "build_providers",
    "get_all_providers",
]
