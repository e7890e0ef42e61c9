"""Bounded retry combinator built on tenacity."""

import logging
import time
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying after transient failure",
        extra={"attempt": retry_state.attempt_number, "error": str(exc)},
    )


def with_retry(
    max_attempts: int,
    is_retriable: Callable[[BaseException], bool],
    operation: Callable[[], T],
    wait_seconds: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Runs `operation`, retrying failures that `is_retriable` accepts.

    Args:
        max_attempts: Total number of calls allowed, including the first.
        is_retriable: Predicate deciding whether an exception is transient.
        operation: Zero-argument callable to invoke.
        wait_seconds: Fixed delay between attempts.
        sleep: Delay function, injectable so callers can honour cancellation.

    Returns:
        The first successful result of `operation`.

    Raises:
        The last exception raised by `operation` once attempts are exhausted,
        or immediately for an exception `is_retriable` rejects.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max(max_attempts, 1)),
        retry=retry_if_exception(is_retriable),
        wait=wait_fixed(wait_seconds),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
    return retrying(operation)
