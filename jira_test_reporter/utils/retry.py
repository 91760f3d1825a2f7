"""Retry utilities with exponential backoff."""

import logging
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from jira.exceptions import JIRAError


logger = logging.getLogger(__name__)

# Type variable for generic function signatures
F = TypeVar("F", bound=Callable[..., Any])

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def exponential_backoff_retry(
    max_retries: int = 3,
    delays: list[int] | None = None,
) -> Callable[[F], F]:
    """Decorator for exponential backoff retry (2s, 4s, 8s).

    Retries on Jira rate limits (429) and transient server errors (5xx).
    Only apply to idempotent calls: a retried create could produce a
    second issue when the first attempt succeeded server-side.

    Args:
        max_retries: Maximum number of retry attempts (default: 3).
        delays: List of delay seconds between retries (default: [2, 4, 8]).

    Returns:
        Callable: Decorated function with retry logic.

    Examples:
        >>> @exponential_backoff_retry()
        ... def search_jira():
        ...     # Jira API call here
        ...     pass
    """
    if delays is None:
        delays = [2, 4, 8]

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except JIRAError as e:
                    if e.status_code in RETRYABLE_STATUS_CODES and attempt < max_retries:
                        delay = delays[min(attempt, len(delays) - 1)]
                        logger.warning(
                            f"Jira error {e.status_code} in {func.__name__}, retrying in {delay}s"
                        )
                        time.sleep(delay)
                        continue
                    # Non-retryable error or retries exhausted
                    raise
            raise RuntimeError(
                f"Max retries ({max_retries}) exhausted for {func.__name__}"
            )

        return wrapper  # type: ignore

    return decorator
