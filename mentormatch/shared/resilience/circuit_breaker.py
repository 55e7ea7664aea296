"""
Thread-safe circuit breaker for the vector index.

Matching runs its retrieval strategies on worker threads, so one request can
report several failures at once. After ``failure_threshold`` consecutive
failures the breaker opens and every strategy fails fast, which sends the
request straight to the in-memory fallback instead of waiting on timeouts.

Usage:
    cb = CircuitBreaker(name="vector-index", failure_threshold=5, recovery_timeout=30.0)

    if cb.allow_request():
        try:
            result = index.query(...)
            cb.record_success()
        except Exception:
            cb.record_failure()
            raise
"""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Optional

from mentormatch.shared.observability import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states following the standard pattern."""

    CLOSED = "closed"  # Normal operation, requests pass through
    OPEN = "open"  # Failing, reject requests immediately
    HALF_OPEN = "half_open"  # Testing recovery with single request


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Attributes:
        name: Identifier used in log events
        failure_threshold: Consecutive failures before opening
        recovery_timeout: Seconds to wait before letting a probe request through
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ) -> None:
        if failure_threshold <= 0:
            raise ValueError("failure_threshold must be positive")
        if recovery_timeout <= 0:
            raise ValueError("recovery_timeout must be positive")

        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._half_open_probe_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def allow_request(self) -> bool:
        """
        Check if a request may pass.

        CLOSED always allows. OPEN allows nothing until ``recovery_timeout``
        has elapsed, then moves to HALF_OPEN. HALF_OPEN allows a single probe.
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._last_failure_time is None:
                    return False
                elapsed = time.time() - self._last_failure_time
                if elapsed < self.recovery_timeout:
                    return False
                self._state = CircuitState.HALF_OPEN
                self._half_open_probe_in_flight = False
                logger.info(
                    "circuit_breaker_half_open",
                    breaker=self.name,
                    elapsed_seconds=round(elapsed, 2),
                )

            if self._half_open_probe_in_flight:
                return False
            self._half_open_probe_in_flight = True
            return True

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.info("circuit_breaker_closed", breaker=self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._half_open_probe_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.time()
            self._half_open_probe_in_flight = False

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("circuit_breaker_reopened", breaker=self.name)
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                self._state = CircuitState.OPEN
                logger.warning(
                    "circuit_breaker_opened",
                    breaker=self.name,
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold,
                )

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._half_open_probe_in_flight = False

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"CircuitBreaker(name={self.name!r}, state={self._state.value}, "
                f"failures={self._failure_count}/{self.failure_threshold})"
            )
