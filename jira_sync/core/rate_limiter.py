"""
Rate limiting utilities for Jira API operations.

Provides a fixed pacing delay between page requests and exponential backoff
retry logic bounded by a total elapsed-time budget.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class BackoffConfig:
    """
    Exponential backoff parameters for a single request.

    Intervals grow from `initial_interval` by `multiplier`, each capped at
    `max_interval` and randomized by +/- `randomization_factor`. Retrying
    stops once the next wait would push total elapsed time past
    `max_elapsed_time`.
    """

    initial_interval: float = 0.5
    multiplier: float = 2.0
    max_elapsed_time: float = 30.0
    max_interval: float = 60.0
    randomization_factor: float = 0.5

    @classmethod
    def from_settings(cls, settings) -> "BackoffConfig":
        return cls(
            initial_interval=settings.jira_backoff_initial_ms / 1000.0,
            multiplier=settings.jira_backoff_multiplier,
            max_elapsed_time=settings.jira_backoff_max_elapsed_seconds,
        )

    def intervals(self) -> Iterator[float]:
        """Yield successive wait times in seconds."""
        current = self.initial_interval
        while True:
            if self.randomization_factor:
                delta = self.randomization_factor * current
                yield random.uniform(current - delta, current + delta)
            else:
                yield current
            current = min(current * self.multiplier, self.max_interval)


class RateLimiter:
    """
    Rate limiter for Jira API operations.

    Provides:
    - A configurable pause between page requests
    - Exponential backoff retry bounded by elapsed time
    - Tracking of operation counts and timing
    """

    def __init__(
        self,
        delay_ms: int = 1000,
        backoff: Optional[BackoffConfig] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            delay_ms: Delay in milliseconds applied by `delay()`
            backoff: Retry parameters (defaults to BackoffConfig())
            sleep: Coroutine used to wait (defaults to asyncio.sleep)
            clock: Monotonic clock used to measure elapsed retry time
        """
        self.delay_ms = delay_ms
        self.backoff = backoff or BackoffConfig()
        self._sleep = sleep
        self._clock = clock
        self.operation_count = 0
        self.retry_count = 0
        self.start_time: datetime | None = None

    async def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
        else:
            await asyncio.sleep(seconds)

    async def delay(self) -> None:
        """Apply configured delay between operations."""
        if self.delay_ms > 0:
            await self._wait(self.delay_ms / 1000.0)

    def start_tracking(self) -> None:
        """Start tracking operations (for metrics/logging)."""
        self.operation_count = 0
        self.retry_count = 0
        self.start_time = datetime.utcnow()

    def record_operation(self) -> None:
        """Record that an operation was performed."""
        self.operation_count += 1

    def get_metrics(self) -> dict[str, Any]:
        """
        Get metrics about rate-limited operations.

        Returns:
            Dictionary with operation count, retries, duration, and rate
        """
        if self.start_time is None:
            return {
                "operation_count": self.operation_count,
                "retry_count": self.retry_count,
                "duration_seconds": 0,
                "operations_per_second": 0
            }

        duration = (datetime.utcnow() - self.start_time).total_seconds()
        ops_per_sec = self.operation_count / duration if duration > 0 else 0

        return {
            "operation_count": self.operation_count,
            "retry_count": self.retry_count,
            "duration_seconds": round(duration, 2),
            "operations_per_second": round(ops_per_sec, 2)
        }

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str = "operation",
        is_retryable: Callable[[Exception], bool] = lambda e: True,
    ) -> T:
        """
        Execute an async operation, retrying failures with exponential backoff.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            operation_name: Name for logging purposes
            is_retryable: Predicate deciding whether an error is transient

        Returns:
            Result of the operation

        Raises:
            Exception: The last error, once it is not retryable or the
                elapsed-time budget is exhausted
        """
        started = self._clock()
        intervals = self.backoff.intervals()
        attempt = 0

        while True:
            attempt += 1
            try:
                result = await operation()
                self.record_operation()
                return result
            except Exception as e:
                if not is_retryable(e):
                    raise

                wait = next(intervals)
                elapsed = self._clock() - started
                if elapsed + wait > self.backoff.max_elapsed_time:
                    logger.error(
                        f"Giving up on {operation_name} after {attempt} attempt(s) "
                        f"and {elapsed:.1f}s: {e}"
                    )
                    raise

                self.retry_count += 1
                logger.warning(
                    f"{operation_name} failed (attempt {attempt}): {e}. "
                    f"Retrying in {wait:.2f}s..."
                )
                await self._wait(wait)
