"""Value types exchanged between adapters, the fallback manager and the pipeline."""

import time
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from tripsift.core.errors import ErrorInfo

from .providers import ProviderKind

T = TypeVar("T")


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


@dataclass
class ProviderResult(Generic[T]):
    """Outcome of one provider call. Exactly one of ``data`` / ``error`` is set."""

    success: bool
    provider: ProviderKind
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None
    latency_ms: float = 0.0

    @classmethod
    def ok(cls, provider: ProviderKind, data: T, latency_ms: float = 0.0) -> "ProviderResult[T]":
        return cls(success=True, provider=provider, data=data, latency_ms=latency_ms)

    @classmethod
    def fail(
        cls,
        provider: ProviderKind,
        error: ErrorInfo | str,
        latency_ms: float = 0.0,
    ) -> "ProviderResult[T]":
        if isinstance(error, str):
            error = ErrorInfo(message=error)
        return cls(success=False, provider=provider, error=error, latency_ms=latency_ms)


@dataclass
class ProviderHealth:
    kind: ProviderKind
    consecutive_failures: int = 0
    last_checked: float = field(default_factory=time.time)


__all__ = ["Prompt", "ErrorInfo", "ProviderResult", "ProviderHealth"]
