"""Retry handler with fixed or exponential backoff."""

import asyncio
import inspect
import random
import logging
from typing import Awaitable, Callable, Optional, Tuple, TypeVar


T = TypeVar('T')


class RetryHandler:
    """
    Retry a callable until it succeeds or attempts run out.

    With backoff_factor=1 the delay is fixed, which is how the exporter
    waits for a usable configuration file at startup.
    """

    @staticmethod
    async def with_retry(
        func: Callable[[], T],
        max_attempts: Optional[int] = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        backoff_factor: float = 2.0,
        jitter: bool = True,
        exceptions: Tuple[type, ...] = (Exception,),
        logger: logging.Logger = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> T:
        """
        Execute function with retry.

        Args:
            func: Sync or async callable to execute
            max_attempts: Maximum attempts, None to retry forever
            base_delay: Initial delay in seconds
            max_delay: Maximum delay in seconds
            backoff_factor: Multiplier applied to the delay after each failure
            jitter: Add 0-10% random jitter to each delay
            exceptions: Tuple of exception types to retry on
            logger: Optional logger for retry events
            sleep: Sleep coroutine (replaced in tests)

        Returns:
            Result from successful function execution

        Raises:
            Exception: Last exception if all retries exhausted
        """
        logger = logger or logging.getLogger(__name__)

        attempt = 0
        while True:
            attempt += 1
            try:
                if inspect.iscoroutinefunction(func):
                    return await func()
                return func()

            except exceptions as e:
                if max_attempts is not None and attempt >= max_attempts:
                    logger.error(f"All {max_attempts} retry attempts exhausted: {e}")
                    raise

                delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
                if jitter:
                    delay += random.uniform(0, delay * 0.1)

                limit = max_attempts if max_attempts is not None else "inf"
                logger.warning(
                    f"Attempt {attempt}/{limit} failed: {e}. "
                    f"Retrying in {delay:.2f}s..."
                )

                await sleep(delay)

    @staticmethod
    async def retry_forever(
        func: Callable[[], T],
        delay: float,
        exceptions: Tuple[type, ...] = (Exception,),
        logger: logging.Logger = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ) -> T:
        """Retry func with a fixed delay until it succeeds."""
        return await RetryHandler.with_retry(
            func,
            max_attempts=None,
            base_delay=delay,
            max_delay=delay,
            backoff_factor=1.0,
            jitter=False,
            exceptions=exceptions,
            logger=logger,
            sleep=sleep
        )
