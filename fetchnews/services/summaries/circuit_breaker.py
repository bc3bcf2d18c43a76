"""
Circuit Breaker

Stops calling a failing dependency for a while instead of piling on.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from fetchnews.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(Exception):
    """Raised when a call is rejected because the circuit is open."""
    pass


class CircuitBreaker:
    """
    Three-state circuit breaker.

    CLOSED: calls pass; ``failure_threshold`` consecutive failures open it.
    OPEN: calls are rejected until ``reset_timeout_seconds`` elapse.
    HALF_OPEN: trial calls pass; ``success_threshold`` successes close it,
    any failure reopens it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        timeout_seconds: float = 60.0,
        reset_timeout_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.timeout_seconds = timeout_seconds
        self.reset_timeout_seconds = reset_timeout_seconds
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.next_attempt = 0.0
        self.last_failure_time: Optional[float] = None
        self.last_state_change = clock()

    async def execute(
        self,
        fn: Callable[[], Awaitable[T]],
        fallback: Optional[Callable[[], Awaitable[T]]] = None,
    ) -> T:
        """
        Run ``fn`` through the breaker.

        Raises:
            CircuitOpenError: Circuit is open and no fallback was given.
        """
        if self.state == CircuitState.OPEN:
            remaining = self.next_attempt - self._clock()
            if remaining > 0:
                logger.info("Circuit open, rejecting call", retry_in_seconds=round(remaining))
                if fallback is not None:
                    return await fallback()
                raise CircuitOpenError("Circuit breaker is OPEN - too many failures")

            self._transition(CircuitState.HALF_OPEN)
            self.success_count = 0

        try:
            result = await asyncio.wait_for(fn(), timeout=self.timeout_seconds)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        self.failure_count = 0

        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                self._transition(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self._transition(CircuitState.OPEN)
            self.next_attempt = self._clock() + self.reset_timeout_seconds

    def _transition(self, state: CircuitState) -> None:
        if state == self.state:
            return
        logger.warning("Circuit state change", previous=self.state.value, state=state.value)
        self.state = state
        self.last_state_change = self._clock()

    def reset(self) -> None:
        """Force the circuit closed (admin override)."""
        self._transition(CircuitState.CLOSED)
        self.failure_count = 0
        self.success_count = 0
        self.next_attempt = 0.0
        logger.info("Circuit breaker reset")

    def get_status(self) -> Dict[str, Any]:
        """Snapshot for health endpoints."""
        now = self._clock()
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "failure_threshold": self.failure_threshold,
            "seconds_until_retry": max(round(self.next_attempt - now), 0)
            if self.state == CircuitState.OPEN else 0,
            "seconds_since_state_change": round(now - self.last_state_change),
        }
