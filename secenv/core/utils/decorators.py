"""Reusable decorators for the application."""

import functools
import time
from typing import Callable

from secenv.core.utils.logging import get_logger

logger = get_logger(__name__)


def log_time(func: Callable) -> Callable:
    """
    Log execution time of a function.

    Usage:
        @log_time
        def resolve(profile):
            ...
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
        logger.info(f"{func.__qualname__} completed in {elapsed:.3f}s")
        return result

    return wrapper


def log_call(func: Callable) -> Callable:
    """
    Log when function is called and returns.

    Only the function name is logged, never its arguments: callers pass
    key material and ciphertext through these functions.

    Usage:
        @log_call
        def export_private_key(fingerprint):
            ...
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f"Calling {func.__qualname__}")
        result = func(*args, **kwargs)
        logger.debug(f"{func.__qualname__} returned")
        return result

    return wrapper
