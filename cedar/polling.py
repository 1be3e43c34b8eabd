"""
Bounded Status Polling

Long-running generation jobs (video) are checked at a fixed interval
until they report a terminal state.

GUARANTEES:
- Polling always ends: done, error, cancellation or attempt cap
- An exception raised by the status check stops polling at once
- Timeout and cancellation are distinct errors
- A cancel during the wait ends polling without another check

Built on tenacity's AsyncRetrying: a non-terminal status is treated as a
result worth retrying, exceptions are never retried.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, Protocol, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    stop_when_event_set,
    wait_fixed,
)

logger = structlog.get_logger(__name__)

# How often a pending wait looks at the cancel event
CANCEL_CHECK_SECONDS = 0.05


class CancellationEvent(Protocol):
    """Anything with is_set(), e.g. asyncio.Event or threading.Event."""

    def is_set(self) -> bool: ...


class PollStatus(Protocol):
    done: bool


StatusT = TypeVar("StatusT", bound=PollStatus)


class PollError(Exception):
    """Base exception for polling that ended without a terminal status."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)


class PollTimeoutError(PollError):
    """The attempt cap was reached before the job finished."""
    pass


class PollCancelledError(PollError):
    """The caller cancelled polling."""
    pass


def _not_done(status: PollStatus) -> bool:
    return not status.done


async def _wait(seconds: float, cancel_event: Optional[CancellationEvent]) -> None:
    """Sleep for `seconds`, returning early once `cancel_event` is set."""
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return
    loop = asyncio.get_running_loop()
    deadline = loop.time() + seconds
    while not cancel_event.is_set():
        remaining = deadline - loop.time()
        if remaining <= 0:
            return
        await asyncio.sleep(min(remaining, CANCEL_CHECK_SECONDS))


async def poll_until_done(
    check: Callable[[], Awaitable[StatusT]],
    interval_seconds: float,
    max_attempts: int,
    cancel_event: Optional[CancellationEvent] = None,
) -> StatusT:
    """
    Call `check` until it returns a status with `done` set.

    Args:
        check: Coroutine function returning the latest status
        interval_seconds: Wait between checks
        max_attempts: Maximum number of checks, including the first
        cancel_event: Polling stops when this is set

    Returns:
        The terminal status

    Raises:
        PollTimeoutError: `max_attempts` checks returned non-terminal status
        PollCancelledError: `cancel_event` was set
        Exception: whatever `check` raised, unchanged
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    if cancel_event is not None and cancel_event.is_set():
        raise PollCancelledError("Polling was cancelled before it started", attempts=0)

    stop = stop_after_attempt(max_attempts)
    if cancel_event is not None:
        stop = stop | stop_when_event_set(cancel_event)

    def _log_wait(retry_state: RetryCallState) -> None:
        logger.debug(
            "poll_pending",
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
        )

    def _check_cancelled(retry_state: RetryCallState) -> None:
        if cancel_event is not None and cancel_event.is_set():
            attempts = retry_state.attempt_number - 1
            raise PollCancelledError(
                f"Polling was cancelled after {attempts} checks",
                attempts=attempts,
            )

    async def _sleep(seconds: float) -> None:
        await _wait(seconds, cancel_event)

    retrying = AsyncRetrying(
        retry=retry_if_result(_not_done),
        stop=stop,
        wait=wait_fixed(interval_seconds),
        before=_check_cancelled,
        before_sleep=_log_wait,
        sleep=_sleep,
    )

    try:
        return await retrying(check)
    except RetryError as e:
        attempts = e.last_attempt.attempt_number
        if cancel_event is not None and cancel_event.is_set():
            raise PollCancelledError(
                f"Polling was cancelled after {attempts} checks",
                attempts=attempts,
            ) from None
        raise PollTimeoutError(
            f"Job did not finish after {attempts} checks",
            attempts=attempts,
        ) from None
