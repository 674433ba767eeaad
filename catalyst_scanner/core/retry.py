"""Retry wrapper with exponential backoff for transient feed failures."""

import time
from functools import wraps
from typing import Any, Callable, Tuple, Type, TypeVar, cast

from catalyst_scanner.core.logger import logger

F = TypeVar('F', bound=Callable[..., Any])


def with_retries(
    max_retries: int = 2,
    initial_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """
    A decorator that retries a function upon failure using exponential backoff.

    Only exceptions listed in ``retry_on`` trigger another attempt; anything
    else propagates immediately. After the last attempt the original
    exception is re-raised.

    Args:
        max_retries (int): Maximum number of retry attempts after the first call.
        initial_delay (float): Seconds to wait before the first retry.
                               Subsequent delays double with each attempt.
        retry_on (tuple): Exception types considered transient.

    Returns:
        Callable: The decorated function.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= max_retries:
                        logger.error(f"'{func.__name__}' failed after {max_retries} retries: {e}")
                        raise

                    attempt += 1
                    logger.warning(
                        f"'{func.__name__}' failed (attempt {attempt}/{max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                    delay *= 2
        return cast(F, wrapper)
    return decorator
