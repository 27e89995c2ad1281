"""
Bounded retry with backoff
One loop shared by rate-limit handling, invalid-response retries and artifact polling
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Optional, Tuple, Type

logger = logging.getLogger(__name__)


def exponential_delays(initial: float = 1.0, factor: float = 2.0, cap: float = 8.0) -> Iterator[float]:
    """Yield initial, initial*factor, ... never exceeding cap"""
    delay = initial
    while True:
        yield min(delay, cap)
        delay = min(delay * factor, cap)


def fixed_delays(interval: float) -> Iterator[float]:
    while True:
        yield interval


@dataclass
class RetryOutcome:
    """Result of a bounded retry loop"""
    value: Any
    accepted: bool
    attempts: int
    last_error: Optional[BaseException] = None
    waited: float = 0.0


async def retry_until(
    operation: Callable[[int], Any],
    max_attempts: int,
    accept: Callable[[Any], bool] = lambda value: True,
    delays: Optional[Iterable[float]] = None,
    retry_on: Tuple[Type[BaseException], ...] = (),
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    label: str = "operation",
    sleep_after_last: bool = True
) -> RetryOutcome:
    """
    Call operation until its result is accepted or attempts run out

    The loop never runs more than max_attempts times. After every attempt that
    is not accepted the next delay from the schedule is slept, so a schedule of
    1, 2, 4 over three attempts waits 1s, 2s and 4s. With sleep_after_last=False
    the final attempt is not followed by a delay.

    Args:
        operation: Callable receiving the 1-based attempt number; may be sync or async
        max_attempts: Hard cap on attempts (must be >= 1)
        accept: Predicate deciding whether a returned value ends the loop
        delays: Delay schedule in seconds (None = no waiting)
        retry_on: Exception types treated as a failed attempt instead of propagating
        sleep: Awaitable sleep function (defaults to asyncio.sleep)
        label: Name used in log lines
        sleep_after_last: Whether the last unaccepted attempt is followed by a delay

    Returns:
        RetryOutcome with the last value, whether it was accepted and the attempt count
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    sleep = sleep or asyncio.sleep
    schedule = iter(delays) if delays is not None else None
    value = None
    last_error = None
    waited = 0.0

    for attempt in range(1, max_attempts + 1):
        try:
            value = operation(attempt)
            if inspect.isawaitable(value):
                value = await value
            last_error = None
            if accept(value):
                return RetryOutcome(value=value, accepted=True, attempts=attempt, waited=waited)
        except retry_on as e:
            value = None
            last_error = e
            logger.debug(f" {label}: attempt {attempt}/{max_attempts} raised {type(e).__name__}: {e}")

        if schedule is not None and (sleep_after_last or attempt < max_attempts):
            delay = next(schedule, 0)
            if delay > 0:
                logger.debug(f"⏳ {label}: waiting {delay:g}s before next attempt")
                await sleep(delay)
                waited += delay

    return RetryOutcome(
        value=value,
        accepted=False,
        attempts=max_attempts,
        last_error=last_error,
        waited=waited
    )
