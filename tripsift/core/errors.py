"""
Error types shared by the retry layer, the provider chain and the pipeline.

- ProviderRequestError: one remote attempt failed. Its ErrorInfo decides
  whether the retry executor tries again.
- CircuitOpenError: the breaker refused the call without trying.
- ExtractionError: one heuristic extractor failed; the engine contains it.
- PipelineError: no provider produced a result; surfaced to the caller.
"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

from tripsift.core.logging import get_request_id


@dataclass
class ErrorInfo:
    """Structured description of one failed remote attempt.

    Attributes:
        message: Human-readable error message
        status: HTTP status code when the failure came from a response
        is_retryable: Explicit classification set by the adapter
        retry_after: Server-suggested wait in seconds
    """

    message: str
    status: Optional[int] = None
    is_retryable: bool = False
    retry_after: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TripsiftError(Exception):
    """Base for application errors. Subclasses set ``code`` and ``retryable``."""

    code = "TRIPSIFT"
    retryable = False

    def __init__(self, message: str, *, request_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.timestamp = time.time()
        self.request_id = request_id or get_request_id()

    @property
    def is_retryable(self) -> bool:
        return self.retryable

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "is_retryable": self.is_retryable,
            "timestamp": self.timestamp,
            "request_id": self.request_id,
        }


class ProviderRequestError(TripsiftError):
    code = "PROVIDER_REQUEST"

    def __init__(self, info: ErrorInfo, *, provider: str = "", **kw: Any) -> None:
        super().__init__(info.message, **kw)
        self.info = info
        self.provider = provider

    @property
    def is_retryable(self) -> bool:
        return self.info.is_retryable

    @property
    def status(self) -> Optional[int]:
        return self.info.status

    @property
    def retry_after(self) -> Optional[float]:
        return self.info.retry_after

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "provider": self.provider,
            "status": self.info.status,
            "retry_after": self.info.retry_after,
        }


class CircuitOpenError(TripsiftError):
    code = "CIRCUIT_OPEN"

    def __init__(self, service_id: str, **kw: Any) -> None:
        super().__init__(f"Service {service_id} is temporarily unavailable (circuit open)", **kw)
        self.service_id = service_id


class ExtractionError(TripsiftError):
    code = "EXTRACTION"

    def __init__(self, message: str, *, category: str, **kw: Any) -> None:
        super().__init__(message, **kw)
        self.category = category


class PipelineError(TripsiftError):
    code = "PIPELINE"
