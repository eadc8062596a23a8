# src/api/retry.py
#
# Retry with exponential backoff for outbound HTTP calls (smart scheduler, notifications)

import logging
import time
from functools import wraps
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

# worth retrying: connection problems and timeouts, not 4xx/5xx answers
TRANSIENT_HTTP_ERRORS = (httpx.TransportError,)


def retry_sync(
    max_retries: int = 2,
    initial_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    exceptions: tuple = TRANSIENT_HTTP_ERRORS,
    sleep: Callable[[float], None] = None,
):
    """
    Decorator retrying a synchronous call on the given exceptions.

    Usage:
        @retry_sync(max_retries=3)
        def fetch():
            ...

    The last exception is re-raised once all attempts fail.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        logger.error(f"All {max_retries + 1} attempts failed for {func.__name__}. Last error: {e}")
                        raise

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} failed for {func.__name__}: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    (sleep or time.sleep)(delay)
                    delay = min(delay * exponential_base, max_delay)

        return wrapper
    return decorator
