"""Resilience patterns for calls to external services."""

from mentormatch.shared.resilience.circuit_breaker import CircuitBreaker, CircuitState

__all__ = ["CircuitBreaker", "CircuitState"]
