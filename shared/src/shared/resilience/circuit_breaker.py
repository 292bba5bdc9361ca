"""
Circuit Breaker for async ledger calls.

State Machine:
    CLOSED -> OPEN -> HALF_OPEN -> CLOSED
           |                    |
           +--------------------+

- CLOSED: Normal operation, counting failures
- OPEN: Blocking all calls until the recovery timeout elapses
- HALF_OPEN: Letting a few probe calls through
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.resilience.exceptions import CircuitBreakerOpenError


class CircuitBreakerState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """
    Circuit breaker configuration.

    Attributes:
        failure_threshold: Number of failures before opening circuit
        success_threshold: Number of successes to close from half-open
        timeout: Seconds to wait before trying half-open
        half_open_max_calls: Max probe calls in half-open state
        expected_exceptions: Exception types counted as failures
    """

    failure_threshold: int = 5
    success_threshold: int = 2
    timeout: float = 60.0
    half_open_max_calls: int = 3
    expected_exceptions: Tuple[Type[BaseException], ...] = (Exception,)


class CircuitBreaker:
    """
    Circuit breaker protecting an async endpoint.

    Only exceptions listed in ``expected_exceptions`` count as failures;
    anything else propagates without touching the breaker state.

    Example:
        breaker = CircuitBreaker("solana_rpc")
        result = await breaker.call_async(client.fetch, address)
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Unique name for this circuit breaker
            config: Configuration (uses defaults if not provided)
            clock: Monotonic time source
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> CircuitBreakerState:
        """Get current state (promoting OPEN to HALF_OPEN when due)."""
        if (
            self._state == CircuitBreakerState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self.config.timeout
        ):
            self._transition(CircuitBreakerState.HALF_OPEN)
        return self._state

    @property
    def failure_count(self) -> int:
        """Get current failure count."""
        return self._failure_count

    async def call_async(
        self, func: Callable[..., Awaitable[Any]], *args, **kwargs
    ) -> Any:
        """
        Await ``func`` under circuit breaker protection.

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Exception: Any exception from the function
        """
        state = self.state
        if state == CircuitBreakerState.OPEN:
            raise CircuitBreakerOpenError(self.name, self._failure_count)
        if state == CircuitBreakerState.HALF_OPEN:
            if self._half_open_calls >= self.config.half_open_max_calls:
                raise CircuitBreakerOpenError(self.name, self._failure_count)
            self._half_open_calls += 1

        try:
            result = await func(*args, **kwargs)
        except self.config.expected_exceptions:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        if self._state == CircuitBreakerState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.config.success_threshold:
                self._transition(CircuitBreakerState.CLOSED)
        else:
            self._failure_count = 0

    def _on_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitBreakerState.HALF_OPEN:
            self._transition(CircuitBreakerState.OPEN)
        elif self._failure_count >= self.config.failure_threshold:
            self._transition(CircuitBreakerState.OPEN)

    def _transition(self, state: CircuitBreakerState) -> None:
        self._state = state
        self._success_count = 0
        self._half_open_calls = 0
        if state == CircuitBreakerState.OPEN:
            self._opened_at = self._clock()
        elif state == CircuitBreakerState.CLOSED:
            self._failure_count = 0
            self._opened_at = None

    def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        self._transition(CircuitBreakerState.CLOSED)

    def get_stats(self) -> dict:
        """
        Get circuit breaker statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "config": {
                "failure_threshold": self.config.failure_threshold,
                "success_threshold": self.config.success_threshold,
                "timeout": self.config.timeout,
            },
        }
