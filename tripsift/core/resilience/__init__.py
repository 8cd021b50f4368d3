from .circuit_breaker import CircuitBreakerRegistry, CircuitState, CircuitStatus

__all__ = [
    "CircuitBreakerRegistry",
    "CircuitState",
    "CircuitStatus",
]
