"""
Circuit breaker guarding calls to sibling services.

After ``failure_threshold`` consecutive failures the breaker opens and calls
fail fast with ``CircuitBreakerOpenException``. Once ``recovery_timeout``
seconds have passed a single trial call is let through (half-open); its
outcome closes or re-opens the circuit.
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Tuple, Type, Union

from shared.logging import get_logger

ExceptionTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


class CircuitBreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """The circuit is open; the call was not attempted."""


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    Only ``expected_exception`` counts as a failure: a caller bug such as a
    ``ValueError`` says nothing about the health of the remote service.
    Instances belong to the client that uses them.
    """

    def __init__(self,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 30.0,
                 expected_exception: ExceptionTypes = Exception,
                 name: str = "default"):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name
        self.logger = get_logger(f"circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    def is_open(self) -> bool:
        return self._state == CircuitBreakerState.OPEN

    def _admit(self) -> bool:
        """Raise unless the call may run; True when it is the half-open trial call."""
        if self._state == CircuitBreakerState.CLOSED:
            return False
        if self._state == CircuitBreakerState.OPEN:
            if time.monotonic() - self._opened_at < self.recovery_timeout:
                raise CircuitBreakerOpenException(f"Circuit '{self.name}' is open")
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit half-open, trying one call", breaker=self.name)
        elif self._trial_in_flight:
            raise CircuitBreakerOpenException(f"Circuit '{self.name}' is half-open, trial call in flight")
        self._trial_in_flight = True
        return True

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await ``func`` unless the circuit is open."""
        trial = self._admit()
        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        finally:
            if trial:
                self._trial_in_flight = False

        self._on_success()
        return result

    def _on_success(self) -> None:
        if self._state == CircuitBreakerState.HALF_OPEN:
            self.logger.info("Circuit closed after successful trial call", breaker=self.name)
        self._state = CircuitBreakerState.CLOSED
        self._consecutive_failures = 0

    def _on_failure(self) -> None:
        self._consecutive_failures += 1
        tripped = (
            self._state == CircuitBreakerState.HALF_OPEN
            or self._consecutive_failures >= self.failure_threshold
        )
        if tripped:
            self._state = CircuitBreakerState.OPEN
            self._opened_at = time.monotonic()
            self.logger.warning(
                "Circuit opened",
                breaker=self.name,
                consecutive_failures=self._consecutive_failures,
                threshold=self.failure_threshold,
            )

    def get_state(self) -> Dict[str, Any]:
        """Snapshot for diagnostics."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }
