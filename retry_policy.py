"""
Fixed-delay retry around operations that may fail with a transient
connection error.
"""

import logging
import sys
import time
from typing import Callable, Tuple, Type, TypeVar

try:
    from .errors import RetryExhaustedError, TransientConnectionError
except ImportError:
    from errors import RetryExhaustedError, TransientConnectionError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def with_retry(
    operation: Callable[[], T],
    max_attempts: int,
    delay: float,
    exit_on_exhaustion: bool = False,
    retry_on: Tuple[Type[BaseException], ...] = (TransientConnectionError,),
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Call operation, retrying up to max_attempts more times on failure.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Retries allowed after the first call (0 = single attempt)
        delay: Seconds to wait between attempts
        exit_on_exhaustion: Terminate the process with status 0 once
            retries are exhausted instead of raising
        retry_on: Exception types treated as transient; anything else
            propagates immediately
        sleep: Delay function (injectable for tests)

    Returns:
        Result of the first successful call

    Raises:
        RetryExhaustedError: All attempts failed and exit_on_exhaustion is False
        ValueError: max_attempts is negative
    """
    if max_attempts < 0:
        raise ValueError(f"max_attempts must be >= 0, got {max_attempts}")

    total_attempts = max_attempts + 1
    last_error = None

    for attempt in range(1, total_attempts + 1):
        try:
            return operation()
        except retry_on as e:
            last_error = e
            if attempt < total_attempts:
                logger.warning(
                    f"Error connecting to server (attempt {attempt}/{total_attempts}): {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                sleep(delay)

    logger.error(f"All retry attempts exhausted after {total_attempts} attempts: {last_error}")

    if exit_on_exhaustion:
        logger.info("Shutting down...")
        sys.exit(0)

    raise RetryExhaustedError(total_attempts, last_error)
