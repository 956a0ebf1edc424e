"""
Retry utilities for handling transient failures.

This module provides utilities for retrying async operations with
configurable backoff strategies.

Exception Handling:
- By default, retries on RetryableException and network/RPC errors
- NonRetryableException is never retried (propagates immediately)
- Can customize retryable_exceptions per operation

Backoff:
- LINEAR: wait ``attempt * base_delay`` after the failed attempt ``attempt``
  (1-based). This is what the campaign list fetch uses.
- EXPONENTIAL: wait ``base_delay * 2 ** (attempt - 1)``
- CONSTANT: wait ``base_delay``
- No jitter. ``max_delay`` caps the wait only when it is set.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type

from web3.exceptions import Web3Exception

from crowdfund_toolkit.shared.exceptions import (
    NonRetryableException,
    RetryableException,
)
from crowdfund_toolkit.shared.logging import get_logger

logger = get_logger(__name__)

# Default retryable exceptions (network/RPC related + RetryableException hierarchy)
DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    RetryableException,  # Includes FetchFailed, NoEndpointAvailable, APIException
    ConnectionError,
    TimeoutError,
    OSError,
    Web3Exception,
)


class Backoff(Enum):
    """Delay growth strategy between attempts."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    CONSTANT = "constant"


def compute_delay(
    attempt: int,
    base_delay: float,
    backoff: Backoff = Backoff.LINEAR,
    max_delay: Optional[float] = None,
) -> float:
    """
    Delay to wait after a failed attempt.

    Args:
        attempt: 1-based number of the attempt that just failed
        base_delay: Base delay in seconds
        backoff: Growth strategy
        max_delay: Optional upper bound (None means uncapped)

    Returns:
        Delay in seconds
    """
    if backoff is Backoff.LINEAR:
        delay = attempt * base_delay
    elif backoff is Backoff.EXPONENTIAL:
        delay = base_delay * (2 ** (attempt - 1))
    else:
        delay = base_delay

    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


async def retry_async_operation(
    operation: Callable[..., Any],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    backoff: Backoff = Backoff.LINEAR,
    max_delay: Optional[float] = None,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    operation_name: Optional[str] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    **kwargs: Any,
) -> Any:
    """
    Retry an async operation with configurable backoff.

    Retries a single call; RetryConfig.run applies a shared configuration.

    Args:
        operation: Async function to call
        *args: Positional arguments for the operation
        max_attempts: Maximum number of attempts (not retries)
        base_delay: Base delay between retries
        backoff: Delay growth strategy
        max_delay: Optional cap on the delay
        retryable_exceptions: Exception types to retry on
        operation_name: Optional name for logging
        on_retry: Optional callback called on each retry with (exception, attempt)
        **kwargs: Keyword arguments for the operation

    Returns:
        Result of the operation

    Example:
        campaigns = await retry_async_operation(
            service.get_campaigns,
            max_attempts=3,
            base_delay=1.0,
            operation_name="get_campaigns",
        )
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if retryable_exceptions is None:
        retryable_exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

    name = operation_name or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation(*args, **kwargs)
        except NonRetryableException:
            raise
        except retryable_exceptions as e:
            last_exception = e

            if attempt < max_attempts:
                delay = compute_delay(attempt, base_delay, backoff, max_delay)

                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed for "
                    f"{name}: {e}. Retrying in {delay:.1f}s..."
                )

                if on_retry:
                    on_retry(e, attempt)

                await asyncio.sleep(delay)

    logger.error(f"{name} failed after {max_attempts} attempts")
    if last_exception:
        raise last_exception
    raise RuntimeError(
        "Unexpected state: no exception but all attempts exhausted"
    )


class RetryConfig:
    """
    Configuration class for retry behavior.

    Can be used to share retry settings across multiple operations.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        backoff: Backoff = Backoff.LINEAR,
        max_delay: Optional[float] = None,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff = backoff
        self.max_delay = max_delay
        self.retryable_exceptions = (
            retryable_exceptions or DEFAULT_RETRYABLE_EXCEPTIONS
        )

    async def run(
        self,
        operation: Callable[..., Any],
        *args: Any,
        operation_name: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Run an async operation under this config."""
        return await retry_async_operation(
            operation,
            *args,
            operation_name=operation_name,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            backoff=self.backoff,
            max_delay=self.max_delay,
            retryable_exceptions=self.retryable_exceptions,
            **kwargs,
        )


# Pinata and other off-chain HTTP services
HTTP_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=0.5,
    backoff=Backoff.EXPONENTIAL,
    max_delay=5.0,
)
