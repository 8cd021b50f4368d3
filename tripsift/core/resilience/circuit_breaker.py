"""Circuit breakers keyed by service id."""

import inspect
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, TypeVar, Union

from tripsift.core.errors import CircuitOpenError
from tripsift.core.logging import get_logger

_log = get_logger("core.circuit_breaker")

T = TypeVar("T")


class CircuitStatus(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitState:
    failures: int = 0
    last_failure_time: float = 0.0
    is_open: bool = False
    half_open_attempts: int = 0


class CircuitBreakerRegistry:
    """Per-service failure gate.

    States: CLOSED (normal) -> OPEN (failing) -> HALF_OPEN (probing) -> CLOSED

    An open circuit lets requests through again once ``reset_timeout``
    seconds have passed since the last failure. A failure while half-open
    re-opens it and restarts the timeout; a success closes it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout
        self._clock = clock
        self._states: Dict[str, CircuitState] = {}
        self._lock = threading.Lock()

    def _status(self, state: Optional[CircuitState]) -> CircuitStatus:
        if state is None or not state.is_open:
            return CircuitStatus.CLOSED
        if self._clock() - state.last_failure_time > self._reset_timeout:
            return CircuitStatus.HALF_OPEN
        return CircuitStatus.OPEN

    def is_closed(self, service_id: str) -> bool:
        """True when a request to ``service_id`` may proceed."""
        with self._lock:
            return self._status(self._states.get(service_id)) != CircuitStatus.OPEN

    def status(self, service_id: str) -> CircuitStatus:
        with self._lock:
            return self._status(self._states.get(service_id))

    def record_success(self, service_id: str) -> None:
        with self._lock:
            state = self._states.get(service_id)
            if state is None:
                return
            was_open = state.is_open
            state.failures = 0
            state.is_open = False
            state.half_open_attempts = 0
        if was_open:
            _log.info("Circuit closed", service=service_id)

    def record_failure(self, service_id: str) -> None:
        with self._lock:
            state = self._states.get(service_id)
            if state is None:
                state = CircuitState()
                self._states[service_id] = state

            half_open = self._status(state) == CircuitStatus.HALF_OPEN
            if half_open:
                state.half_open_attempts += 1

            state.failures += 1
            state.last_failure_time = self._clock()
            opened = False
            if half_open or state.failures >= self._failure_threshold:
                opened = not state.is_open or half_open
                state.is_open = True
            failures = state.failures

        if opened:
            _log.warning(
                "Circuit opened",
                service=service_id,
                failures=failures,
                half_open=half_open,
            )

    async def with_breaker(
        self,
        service_id: str,
        fn: Callable[[], Awaitable[T]],
        fallback: Optional[Callable[[], Union[T, Awaitable[T]]]] = None,
    ) -> T:
        """Run ``fn`` behind the breaker for ``service_id``.

        When the circuit is open the fallback result is returned, or
        CircuitOpenError is raised if there is none. Otherwise the outcome
        of ``fn`` is recorded and its result or error passes through as is.
        """
        if not self.is_closed(service_id):
            _log.warning("Circuit is open", service=service_id)
            if fallback is not None:
                result = fallback()
                if inspect.isawaitable(result):
                    return await result
                return result
            raise CircuitOpenError(service_id)

        try:
            result = await fn()
        except Exception:
            self.record_failure(service_id)
            raise
        self.record_success(service_id)
        return result

    def state(self, service_id: str) -> Optional[CircuitState]:
        """Copy of the stored state, or None if the service never failed."""
        with self._lock:
            state = self._states.get(service_id)
            return replace(state) if state is not None else None

    def reset(self, service_id: Optional[str] = None) -> None:
        with self._lock:
            if service_id is None:
                self._states.clear()
            else:
                self._states.pop(service_id, None)

    def get_all_status(self) -> Dict[str, str]:
        with self._lock:
            return {sid: self._status(s).value for sid, s in self._states.items()}
