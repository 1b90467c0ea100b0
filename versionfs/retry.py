"""Bounded polling for eventually-visible ledger effects."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ready(Generic[T]):
    """The polled value became available."""

    value: T
    attempts: int

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class TimedOut:
    """Every attempt came back empty."""

    attempts: int

    def __bool__(self) -> bool:
        return False


def poll(
    fetch: Callable[[], T | None],
    *,
    attempts: int,
    interval: float,
    backoff: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> "Ready[T] | TimedOut":
    """Call ``fetch`` until it returns something other than None.

    Sleeps ``interval`` seconds between attempts, multiplying the delay
    by ``backoff`` after each one. There is no sleep after the last
    attempt. Exceptions raised by ``fetch`` propagate unchanged.

    Returns:
        ``Ready(value, attempts)`` or ``TimedOut(attempts)``.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    delay = interval
    for attempt in range(1, attempts + 1):
        value = fetch()
        if value is not None:
            return Ready(value, attempt)
        if attempt < attempts:
            logger.debug("Not ready (attempt %d/%d), waiting %.2fs",
                         attempt, attempts, delay)
            sleep(delay)
            delay *= backoff
    return TimedOut(attempts)
