"""Bounded polling helpers for adminkit."""

from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from adminkit.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def poll_until(
    func: Callable[[], T],
    attempts: int = 5,
    interval: float = 1.0,
    description: str = "condition",
) -> T:
    """Call ``func`` until it returns a truthy value or attempts run out.

    Exceptions raised by ``func`` are not retried; they propagate immediately.

    Args:
        func: Zero-argument callable to poll
        attempts: Maximum number of calls (at least 1)
        interval: Fixed wait between calls (seconds)
        description: Label used in log events

    Returns:
        The first truthy result, or the last (falsy) result when attempts are exhausted
    """

    def before_sleep(retry_state: RetryCallState) -> None:
        logger.debug(
            "poll_waiting",
            description=description,
            attempt=retry_state.attempt_number,
            max_attempts=attempts,
        )

    def on_exhausted(retry_state: RetryCallState) -> T:
        logger.debug("poll_exhausted", description=description, attempts=attempts)
        return retry_state.outcome.result()

    retrying = Retrying(
        retry=retry_if_result(lambda result: not result),
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_fixed(interval),
        before_sleep=before_sleep,
        retry_error_callback=on_exhausted,
    )
    return retrying(func)
