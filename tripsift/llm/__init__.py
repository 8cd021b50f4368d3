from .base import BaseProvider, RemoteProvider, parse_json_response
from .gemini_client import GeminiProvider
from .groq_client import GroqProvider
from .offline_client import OfflineProvider
from .openrouter_client import OpenRouterProvider
from .prompts import build_extraction_prompt
from .providers import (
    DEFAULT_ORDER,
    GUARANTEED_PROVIDER,
    ProviderKind,
    build_providers,
    get_all_providers,
    parse_provider_kind,
)
from .types import Prompt, ProviderHealth, ProviderResult

__all__ = [
    "BaseProvider",
    "RemoteProvider",
    "parse_json_response",
    "GeminiProvider",
    "GroqProvider",
    "OfflineProvider",
    "OpenRouterProvider",
    "build_extraction_prompt",
    "DEFAULT_ORDER",
    "GUARANTEED_PROVIDER",
    "ProviderKind",
    "build_providers",
    "get_all_providers",
    "parse_provider_kind",
    "Prompt",
    "ProviderHealth",
    "ProviderResult",
]
