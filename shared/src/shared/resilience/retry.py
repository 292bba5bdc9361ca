"""
Retry with exponential backoff and jitter for async calls.

Used for idempotent ledger reads only; broadcasts are never retried.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.resilience.exceptions import RetryError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    """Maximum number of attempts (including the initial one)"""

    initial_delay: float = 1.0
    """Delay before the first retry in seconds"""

    max_delay: float = 30.0
    """Upper bound on a single delay in seconds"""

    exponential_base: float = 2.0
    """Multiplier applied per attempt"""

    jitter: bool = True
    """Add +/-10% random jitter to each delay"""

    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    """Exception types to retry on"""


class Retry:
    """
    Async retry handler.

    Example:
        retry = Retry("rpc_query", RetryConfig(max_attempts=5))
        result = await retry.execute_async(client.get_account_info, address)
    """

    def __init__(
        self,
        name: str = "retry",
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.name = name
        self.config = config or RetryConfig()
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay after a failed attempt.

        Args:
            attempt: Failed attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.config.initial_delay * (self.config.exponential_base**attempt)
        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            spread = delay * 0.1
            delay = max(0.0, delay + random.uniform(-spread, spread))

        return delay

    async def execute_async(
        self, func: Callable[..., Awaitable[Any]], *args, **kwargs
    ) -> Any:
        """
        Await ``func`` with retry logic.

        Raises:
            RetryError: When all attempts are exhausted
            Exception: Non-retryable exceptions propagate unchanged
        """
        for attempt in range(self.config.max_attempts):
            try:
                result = await func(*args, **kwargs)
            except self.config.retry_on as e:
                if attempt >= self.config.max_attempts - 1:
                    raise RetryError(
                        f"{self.name}: all {self.config.max_attempts} attempts "
                        f"exhausted. Last error: {type(e).__name__}: {e}",
                        attempts=self.config.max_attempts,
                        last_exception=e,
                    ) from e

                delay = self.calculate_delay(attempt)
                logger.warning(
                    f"{self.name}: {type(e).__name__}: {e}. "
                    f"Attempt {attempt + 1}/{self.config.max_attempts}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await self._sleep(delay)
                continue

            if attempt > 0:
                logger.info(
                    f"{self.name}: succeeded on attempt "
                    f"{attempt + 1}/{self.config.max_attempts}"
                )
            return result

        raise RetryError(
            f"{self.name}: no attempts configured",
            attempts=self.config.max_attempts,
        )
