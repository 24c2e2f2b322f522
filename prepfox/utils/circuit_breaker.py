"""Per-operation circuit breaker for repeatedly failing remote calls."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from prepfox.config import Settings


@dataclass
class CircuitState:
    """Failure bookkeeping for one operation name."""
    failures: int = 0
    last_failure: float = 0.0
    is_open: bool = False


class CircuitBreaker:
    """Stops calling an operation after too many consecutive failures.

    State is keyed by operation name. An instance is passed explicitly to
    each with_retry() call that should share it; there is no global one.

    Example:
        breaker = CircuitBreaker(failure_threshold=5, reset_timeout=300)
        await with_retry(fetch_orders, policy, context, circuit_breaker=breaker)
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures that open the circuit
            reset_timeout: Seconds after the last failure before it closes again
            clock: Monotonic time source in seconds
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if reset_timeout <= 0:
            raise ValueError("reset_timeout must be positive")
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout
        self._clock = clock
        self._states: dict[str, CircuitState] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "CircuitBreaker":
        return cls(
            failure_threshold=settings.circuit_failure_threshold,
            reset_timeout=settings.circuit_reset_timeout_s,
        )

    def is_open(self, operation: str) -> bool:
        """Check whether calls to an operation should be refused.

        An open circuit closes itself once reset_timeout has elapsed since
        the last recorded failure.
        """
        state = self._states.get(operation)
        if state is None or not state.is_open:
            return False

        if self._clock() - state.last_failure > self._reset_timeout:
            self._states[operation] = CircuitState()
            return False

        return True

    def record_failure(self, operation: str) -> None:
        state = self._states.setdefault(operation, CircuitState())
        state.failures += 1
        state.last_failure = self._clock()
        state.is_open = state.failures >= self._failure_threshold

    def record_success(self, operation: str) -> None:
        self._states[operation] = CircuitState()

    def failure_count(self, operation: str) -> int:
        state = self._states.get(operation)
        return state.failures if state else 0
