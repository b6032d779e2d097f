"""
Utility functions for valstats.

This module provides:
- A timing decorator for pipeline stages
- Numeric helpers shared by the summarizer and the ledger
- Small formatting helpers used by the CLI
"""

import logging
import math
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

# Type variable for generic decorators
F = TypeVar("F", bound=Callable[..., Any])


def timed(func: F) -> F:
    """
    Decorator to measure and log function execution time.

    Usage:
        @timed
        def my_function():
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time
        logger.debug(f"{func.__name__} completed in {elapsed:.3f}s")
        return result

    return wrapper  # type: ignore


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is 0.

    Args:
        numerator: Top of fraction
        denominator: Bottom of fraction
        default: Value to return if denominator is 0

    Returns:
        Result of division or default
    """
    if denominator == 0:
        return default
    return numerator / denominator


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves toward +infinity.

    Python's round() uses banker's rounding, which would turn an ACS of
    212.5 into 212. Scoreboards expect 213.
    """
    return math.floor(value + 0.5)


def format_percentage(value: float, decimals: int = 1) -> str:
    """Format a 0-100 value as a percentage string."""
    return f"{value:.{decimals}f}%"
