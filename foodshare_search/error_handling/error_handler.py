"""
Error handler with retry logic for backend search calls.

Implements exponential backoff and diagnostic logging for transient
channel failures.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Maximum number of attempts (1 means no retry)
        backoff_base_seconds: Delay before the second attempt
        backoff_multiplier: Multiplier applied to the delay on each retry
    """
    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_multiplier: float = 2.0

    def get_backoff_delay(self, attempt: int) -> float:
        """
        Calculate backoff delay before the retry following an attempt.

        delay = backoff_base_seconds * (backoff_multiplier ^ attempt)

        Args:
            attempt: The attempt that just failed (0-indexed)

        Returns:
            Delay in seconds before the next attempt
        """
        return self.backoff_base_seconds * (self.backoff_multiplier ** attempt)


class ErrorHandler:
    """
    Runs async operations with retry and logs every failed attempt.

    Attributes:
        config: Retry configuration
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    async def retry_with_backoff(
        self,
        operation: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> Any:
        """
        Execute operation with exponential backoff retry logic.

        Cancellation is never retried; it propagates immediately.

        Args:
            operation: Async callable to execute
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            Result from successful operation execution

        Raises:
            Exception: The last exception encountered if all retries are exhausted
        """
        attempts = max(1, self.config.max_retries)
        name = getattr(operation, '__name__', repr(operation))
        last_exception: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                result = await operation(*args, **kwargs)
                if attempt > 0:
                    logger.info(f"Operation {name} succeeded on attempt {attempt + 1}")
                return result
            except Exception as e:
                last_exception = e
                self._log_error(name, attempt + 1, attempts, e)

                if attempt == attempts - 1:
                    break

                backoff_delay = self.config.get_backoff_delay(attempt)
                logger.info(f"Waiting {backoff_delay:.1f}s before retry...")
                await asyncio.sleep(backoff_delay)

        raise last_exception

    def _log_error(
        self,
        operation_name: str,
        attempt: int,
        max_attempts: int,
        error: Exception
    ) -> None:
        """
        Log error with timestamp and diagnostic context.

        Args:
            operation_name: Name of the operation that failed
            attempt: Current attempt number
            max_attempts: Maximum number of attempts
            error: The exception that occurred
        """
        context = {
            'timestamp': datetime.now().isoformat(),
            'operation': operation_name,
            'attempt': f"{attempt}/{max_attempts}",
            'error_type': type(error).__name__,
            'error_message': str(error),
        }

        logger.warning(
            f"Operation failed: {operation_name} | "
            f"Attempt: {attempt}/{max_attempts} | "
            f"Error: {type(error).__name__}: {error}"
        )
        logger.debug(f"Full error context: {context}")
