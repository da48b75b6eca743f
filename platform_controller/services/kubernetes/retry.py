"""
Bounded retry combinators for store operations.

Uses tenacity to express the two retry loops the controllers need:
- Optimistic concurrency: re-run a read-modify-write when the API server
  answers 409 Conflict
- Collaborator polling: re-run a lookup while the resources it needs have not
  been created yet

Each combinator wraps a single idempotent async operation, retries only the
errors it is meant for and re-raises the last one once the budget is spent.
"""

import logging
from typing import Any, Awaitable, Callable, Type

from tenacity import (
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
    before_sleep_log,
)

from ...errors import CollaboratorNotYetAvailableError, is_conflict

logger = logging.getLogger(__name__)


def create_retry_decorator(
    retry_predicate: Callable[[BaseException], bool],
    max_attempts: int = 5,
    initial_wait: float = 0.01,
    max_wait: float = 1.0,
    jitter: float = 0.1
) -> Callable:
    """
    Create a retry decorator for async store operations.

    Waits grow exponentially from initial_wait up to max_wait, each with up to
    `jitter` seconds of random noise added.

    Args:
        retry_predicate: Returns True for exceptions that should be retried
        max_attempts: Total number of attempts, including the first one
        initial_wait: Wait before the first retry, in seconds
        max_wait: Upper bound for a single wait, in seconds
        jitter: Maximum random addition to each wait, in seconds

    Returns:
        Retry decorator for async functions
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(multiplier=initial_wait, max=max_wait, jitter=jitter),
        retry=retry_if_exception(retry_predicate),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )


def create_custom_retry(
    retryable_exceptions: Type[BaseException],
    max_attempts: int = 4,
    initial_wait: float = 0.01,
    max_wait: float = 2.0
) -> Callable:
    """
    Create a retry decorator keyed on exception types instead of a predicate.

    Args:
        retryable_exceptions: Exception type (or tuple of types) to retry on
        max_attempts: Total number of attempts, including the first one
        initial_wait: Wait before the first retry, in seconds
        max_wait: Upper bound for a single wait, in seconds

    Returns:
        Retry decorator for async functions
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(multiplier=initial_wait, max=max_wait, jitter=initial_wait),
        retry=retry_if_exception_type(retryable_exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )


async def retry_on_conflict(operation: Callable[[], Awaitable[Any]], settings) -> Any:
    """
    Run a read-modify-write operation, retrying it on 409 Conflict.

    The operation must re-read the object on every attempt.

    Args:
        operation: Async function doing get, modify, update (an `async def`,
            not a lambda returning a coroutine)
        settings: Settings carrying the conflict_retry_* budget

    Returns:
        Whatever the operation returns
    """
    decorator = create_retry_decorator(
        is_conflict,
        max_attempts=settings.conflict_retry_attempts,
        initial_wait=settings.conflict_retry_initial_wait,
        max_wait=settings.conflict_retry_max_wait,
        jitter=settings.conflict_retry_initial_wait,
    )
    return await decorator(operation)()


async def retry_until_available(operation: Callable[[], Awaitable[Any]], settings) -> Any:
    """
    Run a lookup, retrying it while it raises CollaboratorNotYetAvailableError.

    Any other error is raised straight away.

    Args:
        operation: Async function doing the lookup (an `async def`)
        settings: Settings carrying the collaborator_retry_* budget

    Returns:
        Whatever the operation returns
    """
    decorator = create_custom_retry(
        CollaboratorNotYetAvailableError,
        max_attempts=settings.collaborator_retry_attempts,
        initial_wait=settings.collaborator_retry_initial_wait,
        max_wait=settings.collaborator_retry_max_wait,
    )
    return await decorator(operation)()
