"""
Database Retry Policy

Retry logic that distinguishes retryable errors (dropped connections,
timeouts, pooler overload) from non-retryable ones (bad data, missing files).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from asyncpg import exceptions as pg_errors

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Bounded exponential backoff for transient database failures."""

    # Transient failures worth another attempt
    RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
        ConnectionError,
        asyncio.TimeoutError,
        pg_errors.PostgresConnectionError,
        pg_errors.InterfaceError,
        pg_errors.TooManyConnectionsError,
        pg_errors.CannotConnectNowError,
        pg_errors.QueryCanceledError,
    )

    def __init__(
        self,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def should_retry(self, error: BaseException) -> bool:
        """
        Determine if an error should be retried.

        Args:
            error: Exception raised by the operation

        Returns:
            True if error is transient, False otherwise
        """
        return isinstance(error, self.RETRYABLE_EXCEPTIONS)

    def get_retry_delay(self, attempt: int) -> float:
        """
        Calculate retry delay with exponential backoff.

        Args:
            attempt: Current retry attempt (0-indexed)

        Returns:
            Number of seconds to wait before retrying
        """
        return min(self.base_delay * (2**attempt), self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        """
        Run operation, retrying transient failures.

        Raises:
            The last error once retries are exhausted, or any non-retryable error
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not self.should_retry(e) or attempt >= self.max_retries:
                    raise
                delay = self.get_retry_delay(attempt)
                attempt += 1
                logger.warning(
                    f"⚠️ {description} failed ({type(e).__name__}: {e}), "
                    f"retry {attempt}/{self.max_retries} in {delay:.1f}s"
                )
                await self._sleep(delay)
