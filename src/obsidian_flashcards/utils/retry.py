"""Retry logic with exponential backoff."""

import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from obsidian_flashcards.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
) -> Callable:
    """
    Retry decorator with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay in seconds
        backoff_factor: Multiplier for delay after each attempt
        exceptions: Tuple of exceptions to catch and retry

    Returns:
        Decorator function
    """
    if max_attempts < 1:
        msg = "max_attempts must be at least 1"
        raise ValueError(msg)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay
            retry_start_time = time.time()
            cumulative_wait_time = 0.0

            for attempt in range(1, max_attempts + 1):
                try:
                    result = func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        if max_attempts > 1:
                            logger.error(
                                "retry_exhausted",
                                func=func.__name__,
                                attempts=attempt,
                                error=str(e),
                                error_type=type(e).__name__,
                                total_retry_time=round(
                                    time.time() - retry_start_time, 2
                                ),
                            )
                        raise

                    logger.warning(
                        "retry_attempt",
                        func=func.__name__,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e),
                        error_type=type(e).__name__,
                        cumulative_wait_time=round(cumulative_wait_time, 2),
                    )

                    time.sleep(delay)
                    cumulative_wait_time += delay
                    delay *= backoff_factor
                else:
                    if attempt > 1:
                        logger.info(
                            "retry_succeeded",
                            func=func.__name__,
                            attempt=attempt,
                            total_retry_time=round(time.time() - retry_start_time, 2),
                        )
                    return result

            # Unreachable: the last attempt either returns or raises.
            msg = "retry loop exited without result"
            raise RuntimeError(msg)

        return wrapper

    return decorator
