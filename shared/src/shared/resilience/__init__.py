"""
Resilience patterns for ledger RPC access.

- Circuit Breaker: stops hammering an RPC endpoint that keeps failing
- Retry: exponential backoff for idempotent reads
"""

from shared.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
)
from shared.resilience.exceptions import (
    CircuitBreakerError,
    CircuitBreakerOpenError,
    RetryError,
)
from shared.resilience.retry import Retry, RetryConfig

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerError",
    "CircuitBreakerOpenError",
    # Retry
    "Retry",
    "RetryConfig",
    "RetryError",
]
