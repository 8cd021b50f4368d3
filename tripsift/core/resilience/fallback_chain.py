"""Provider fallback chain with per-provider health tracking."""

import threading
import time
from dataclasses import replace
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from tripsift.core.logging import get_logger
from tripsift.llm.providers import DEFAULT_ORDER, GUARANTEED_PROVIDER, ProviderKind
from tripsift.llm.types import Prompt, ProviderHealth, ProviderResult

_log = get_logger("core.fallback")

ProviderCallback = Callable[[ProviderKind], None]


class ProviderFallbackManager:
    """Try providers in order until one succeeds.

    A provider with ``skip_threshold`` or more consecutive failures is
    passed over, except the guaranteed offline provider. Providers missing
    from the mapping (no credentials) are passed over silently.
    """

    def __init__(
        self,
        providers: Mapping[ProviderKind, "object"],
        order: Sequence[ProviderKind] = DEFAULT_ORDER,
        on_provider_change: Optional[ProviderCallback] = None,
        on_fallback: Optional[ProviderCallback] = None,
        skip_threshold: int = 3,
    ):
        """Initialize fallback manager.

        Args:
            providers: Adapters keyed by kind; each exposes ``send_request(prompt)``
            order: Default trial order
            on_provider_change: Called with the kind before every attempt
            on_fallback: Called with the kind before every attempt after the first
            skip_threshold: Consecutive failures after which a provider is skipped
        """
        self._providers = dict(providers)
        self._order = tuple(order)
        self._on_provider_change = on_provider_change
        self._on_fallback = on_fallback
        self._skip_threshold = skip_threshold
        self._lock = threading.Lock()
        self._health: Dict[ProviderKind, ProviderHealth] = {
            kind: ProviderHealth(kind=kind) for kind in self._providers
        }

    def _resolve_order(self, preferred: Optional[ProviderKind]) -> List[ProviderKind]:
        if preferred is None:
            return list(self._order)
        return [preferred] + [k for k in self._order if k != preferred]

    def _should_skip(self, kind: ProviderKind) -> bool:
        if kind == GUARANTEED_PROVIDER:
            return False
        with self._lock:
            health = self._health.get(kind)
            return health is not None and health.consecutive_failures >= self._skip_threshold

    def _notify(self, callback: Optional[ProviderCallback], kind: ProviderKind, event: str) -> None:
        if callback is None:
            return
        try:
            callback(kind)
        except Exception as e:
            _log.warning("Observer callback failed", callback=event, provider=kind.value, error=str(e))

    async def execute_with_fallback(
        self,
        prompt: Prompt,
        preferred: Optional[ProviderKind] = None,
    ) -> ProviderResult:
        """Run ``prompt`` against the chain and return the first success.

        Returns a failed result listing every provider error when no
        provider succeeds.
        """
        errors: List[str] = []
        is_first_attempt = True

        for kind in self._resolve_order(preferred):
            provider = self._providers.get(kind)
            if provider is None:
                continue

            if self._should_skip(kind):
                _log.debug("Provider skipped (unhealthy)", provider=kind.value)
                continue

            self._notify(self._on_provider_change, kind, "on_provider_change")
            if not is_first_attempt:
                self._notify(self._on_fallback, kind, "on_fallback")
            is_first_attempt = False

            _log.info("Trying provider", provider=kind.value)
            try:
                result = await provider.send_request(prompt)
            except Exception as e:
                errors.append(f"{kind.value}: {e}")
                self.record_failure(kind)
                _log.error("Provider raised", provider=kind.value, error=str(e)[:200])
                continue

            if result.success:
                self.record_success(kind)
                _log.info(
                    "Provider succeeded",
                    provider=kind.value,
                    latency_ms=round(result.latency_ms, 1),
                )
                return result

            message = result.error.message if result.error else "unknown error"
            errors.append(f"{kind.value}: {message}")
            self.record_failure(kind)
            _log.warning("Provider failed", provider=kind.value, error=message[:200])

        _log.error("All providers failed", attempts=len(errors))
        return ProviderResult.fail(
            GUARANTEED_PROVIDER,
            f"All providers failed: {'; '.join(errors)}",
        )

    def record_success(self, kind: ProviderKind) -> None:
        with self._lock:
            health = self._health.get(kind)
            if health is not None:
                health.consecutive_failures = 0
                health.last_checked = time.time()

    def record_failure(self, kind: ProviderKind) -> None:
        with self._lock:
            health = self._health.get(kind)
            if health is not None:
                health.consecutive_failures += 1
                health.last_checked = time.time()

    def get_available_providers(self) -> List[ProviderKind]:
        return list(self._providers.keys())

    def get_provider_health(self) -> List[ProviderHealth]:
        with self._lock:
            return [replace(h) for h in self._health.values()]
