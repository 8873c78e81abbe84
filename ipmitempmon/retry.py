#!/usr/bin/env python3
"""
Retry with exponential backoff.

Wraps a single external call so transient ipmitool hiccups do not
surface as failures. Backoff waits are interruptible through the
monitor's stop event.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Tuple, Type, TypeVar

from .config import ThresholdConfig

T = TypeVar("T")


class Cancelled(Exception):
    """Raised when the stop event fires during a backoff wait."""


class RetryExhausted(Exception):
    """Raised when an operation still fails after the last retry."""

    def __init__(self, message: str, attempts: int, last_result: Any = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_result = last_result


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff schedule.

    retry_count retries follow the first attempt; the n-th retry waits
    initial_delay * backoff_factor ** n seconds.
    """
    retry_count: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0

    @classmethod
    def from_thresholds(cls, config: ThresholdConfig) -> "RetryPolicy":
        return cls(
            retry_count=config.retry_count,
            initial_delay=config.retry_initial_delay_ms / 1000.0,
            backoff_factor=config.retry_backoff_factor,
        )


def backoff_delays(policy: RetryPolicy) -> Iterator[float]:
    """Yield the wait before each retry, in seconds."""
    delay = policy.initial_delay
    for _ in range(policy.retry_count):
        yield delay
        delay *= policy.backoff_factor


def with_retry(operation: Callable[[], T],
               policy: RetryPolicy,
               retry_on: Tuple[Type[BaseException], ...] = (),
               retry_if: Optional[Callable[[T], bool]] = None,
               stop_event: Optional[threading.Event] = None,
               description: str = "operation") -> T:
    """
    Run operation, retrying on failure.

    An attempt fails when it raises one of retry_on, or when retry_if
    returns True for its result. Other exceptions propagate untouched.

    Raises:
        RetryExhausted: every attempt failed. The last exception, if any,
            is chained as the cause.
        Cancelled: stop_event was set while waiting to retry.
    """
    stop_event = stop_event or threading.Event()
    delays = backoff_delays(policy)
    attempt = 0

    while True:
        attempt += 1
        last_error = None
        result = None
        try:
            result = operation()
        except retry_on as exc:
            last_error = exc
            reason = str(exc)
        else:
            if retry_if is None or not retry_if(result):
                return result
            reason = "unacceptable result"

        delay = next(delays, None)
        if delay is None:
            raise RetryExhausted(
                f"{description} failed after {attempt} attempt(s): {reason}",
                attempts=attempt,
                last_result=result,
            ) from last_error

        logging.warning("%s failed (%s), retry %d/%d in %.2fs",
                        description, reason, attempt, policy.retry_count, delay)
        if stop_event.wait(delay):
            raise Cancelled(f"{description} cancelled during backoff")
