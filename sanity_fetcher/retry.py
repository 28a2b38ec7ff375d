"""
Retry utilities with tenacity.

Optional decorator around the fetch primitive. Only transport failures and
retryable upstream statuses (429, 5xx) are retried; configuration errors and
other 4xx responses fail on the first attempt.
"""
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .errors import RemoteRequestError, TransportError

logger = logging.getLogger("sanity_fetcher.retry")

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    attempts: int = 3          # total attempts, first call included
    min_wait: float = 0.1      # seconds
    max_wait: float = 2.0      # seconds
    multiplier: float = 2.0

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        return cls(
            attempts=settings.retry_attempts,
            min_wait=settings.retry_min_wait_ms / 1000.0,
            max_wait=settings.retry_max_wait_ms / 1000.0,
        )


def is_retryable(exc: BaseException) -> bool:
    """Check whether a failed fetch is worth another attempt."""
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, RemoteRequestError):
        return exc.is_retryable
    return False


def with_retry(fn: Callable[..., T], config: RetryConfig = None) -> Callable[..., T]:
    """
    Wrap a fetch function with exponential-backoff retries.

    Args:
        fn: Function to wrap
        config: Retry configuration (defaults to RetryConfig())

    Returns:
        Wrapped function; the last error is re-raised once attempts run out
    """
    config = config or RetryConfig()

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        for attempt in Retrying(
            stop=stop_after_attempt(config.attempts),
            wait=wait_exponential(
                multiplier=config.multiplier,
                min=config.min_wait,
                max=config.max_wait,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return fn(*args, **kwargs)

    return wrapper
