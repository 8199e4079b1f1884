"""Circuit breaker for outbound mileage provider calls."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from .logging_config import get_logger
from .metrics import circuit_breaker_opened_total, circuit_breaker_rejected_total, circuit_breaker_state

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states"""

    CLOSED = "closed"  # Normal operation, requests allowed
    OPEN = "open"  # Circuit broken, requests rejected
    HALF_OPEN = "half_open"  # Testing if service recovered


_STATE_GAUGE = {CircuitState.CLOSED: 0, CircuitState.OPEN: 1, CircuitState.HALF_OPEN: 2}


@dataclass
class CircuitBreakerStats:
    """Statistics for circuit breaker monitoring"""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    last_failure_time: float | None = None
    last_success_time: float | None = None
    consecutive_failures: int = 0
    circuit_opened_count: int = 0


class CircuitOpenError(Exception):
    """Raised instead of calling through while the circuit is open."""

    def __init__(self, name: str, retry_in: float) -> None:
        super().__init__(
            f"Circuit breaker '{name}' is open. Retrying in {max(0.0, retry_in):.0f} seconds."
        )
        self.name = name
        self.retry_in = retry_in


class CircuitBreaker:
    """
    Circuit breaker to stop hammering a provider that keeps failing.

    The circuit breaker has three states:
    - CLOSED: Normal operation, all requests pass through
    - OPEN: After failure threshold, requests are immediately rejected
    - HALF_OPEN: After cooldown, trial requests are allowed

    Exceptions listed in `ignored` propagate without counting as a failure or a success.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        success_threshold: int = 1,
        enabled: bool = True,
        ignored: tuple[type[BaseException], ...] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.success_threshold = success_threshold
        self.enabled = enabled
        self.ignored = ignored
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._stats = CircuitBreakerStats()
        self._last_state_change = clock()
        self._half_open_successes = 0
        circuit_breaker_state.labels(circuit_name=name).set(0)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, checking for automatic transitions."""
        if self._state == CircuitState.OPEN:
            if self._clock() - self._last_state_change >= self.cooldown_seconds:
                self._transition_to(CircuitState.HALF_OPEN)
        return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        return self._stats

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._last_state_change = self._clock()
        circuit_breaker_state.labels(circuit_name=self.name).set(_STATE_GAUGE[new_state])

        if new_state == CircuitState.OPEN:
            self._stats.circuit_opened_count += 1
            circuit_breaker_opened_total.labels(circuit_name=self.name).inc()
            logger.warning(
                "circuit_opened",
                circuit=self.name,
                consecutive_failures=self._stats.consecutive_failures,
            )
        elif new_state == CircuitState.CLOSED:
            self._stats.consecutive_failures = 0
            self._half_open_successes = 0
            if old_state == CircuitState.HALF_OPEN:
                logger.info("circuit_closed", circuit=self.name)
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_successes = 0
            logger.info("circuit_half_open", circuit=self.name)

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Await `func(*args, **kwargs)` through the breaker.

        Raises:
            CircuitOpenError: If circuit is open
            Original exception: If func fails
        """
        if not self.enabled:
            return await func(*args, **kwargs)

        if self.state == CircuitState.OPEN:
            self._stats.rejected_calls += 1
            circuit_breaker_rejected_total.labels(circuit_name=self.name).inc()
            retry_in = self.cooldown_seconds - (self._clock() - self._last_state_change)
            raise CircuitOpenError(self.name, retry_in)

        try:
            result = await func(*args, **kwargs)
        except self.ignored:
            raise
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _on_success(self) -> None:
        self._stats.total_calls += 1
        self._stats.successful_calls += 1
        self._stats.last_success_time = self._clock()
        self._stats.consecutive_failures = 0

        if self._state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self.success_threshold:
                self._transition_to(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self._stats.total_calls += 1
        self._stats.failed_calls += 1
        self._stats.last_failure_time = self._clock()
        self._stats.consecutive_failures += 1

        if self._state == CircuitState.HALF_OPEN:
            # Failure in half-open state immediately opens circuit
            self._transition_to(CircuitState.OPEN)
        elif (
            self._state == CircuitState.CLOSED
            and self._stats.consecutive_failures >= self.failure_threshold
        ):
            self._transition_to(CircuitState.OPEN)

    def reset(self) -> None:
        """Manually reset the circuit breaker to closed state."""
        self._transition_to(CircuitState.CLOSED)
        logger.info("circuit_reset", circuit=self.name)

    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitOpenError",
    "CircuitState",
]
