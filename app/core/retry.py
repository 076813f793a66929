"""
Retry utilities with exponential backoff for async storage and database calls.

Listing a vehicle's photo folder goes over the network on every dashboard
load; a single dropped connection should not blank out a car's gallery, so
those calls are retried a bounded number of times before the caller's
degrade-to-empty path takes over.
"""

import asyncio
import logging
from functools import wraps
from typing import Any, Callable, Tuple, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class RetryableError(Exception):
    """
    Transient failure that may succeed on a later attempt.

    Raised by adapters for connection resets, throttling (HTTP 429/503 from
    the object store) and timeouts.
    """
    pass


class NonRetryableError(Exception):
    """
    Deterministic failure that will not change on retry.

    Raised for missing buckets, denied access and malformed requests.
    """
    pass


DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (
    RetryableError,
    SQLAlchemyError,
    asyncio.TimeoutError,
    ConnectionError,
)


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 0.25,
    max_delay: float = 5.0,
    retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_ON,
) -> Callable[[F], F]:
    """Decorator for async functions with exponential backoff retry logic.

    Args:
        max_attempts: Maximum number of attempts, including the first one
        base_delay: Initial delay in seconds between attempts
        max_delay: Upper bound for a single delay

    Error Handling:
    - NonRetryableError: raised immediately
    - exceptions listed in ``retry_on``: retried, last one re-raised
    - anything else: raised immediately

    Backoff Strategy:
    - delay = base_delay * (2 ^ attempt), capped at max_delay
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)

                except NonRetryableError:
                    raise

                except retry_on as e:
                    last_exception = e
                    if attempt < max_attempts - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(
                            f"Retry attempt {attempt + 1}/{max_attempts} for {func.__name__}. "
                            f"Error: {str(e)}. Waiting {delay:.2f}s..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"All {max_attempts} attempts failed for {func.__name__}. "
                            f"Final error: {str(e)}"
                        )

            raise last_exception if last_exception else RuntimeError("Retry failed")

        return wrapper
    return decorator
