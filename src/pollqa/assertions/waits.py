"""
Bounded retry-with-backoff primitive.

A wait never raises for the expected "not yet visible" state. It returns
either ``Found`` (the probe produced an accepted value) or ``TimedOut``
(the bound elapsed), and callers decide how to report the outcome.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

import structlog

from pollqa.config import WaitPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Found(Generic[T]):
    """The probe produced an accepted value within the bound."""

    value: T
    attempts: int
    elapsed_ms: int


@dataclass(frozen=True, slots=True)
class TimedOut:
    """The bound elapsed without an accepted value."""

    attempts: int
    elapsed_ms: int
    last_value: Any = None
    last_error: BaseException | None = None


WaitResult = Found[T] | TimedOut


def _truthy(value: Any) -> bool:
    return value is not None and value is not False


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    policy: WaitPolicy,
    *,
    accept: Callable[[T], bool] | None = None,
) -> Found[T] | TimedOut:
    """
    Probe until an accepted value appears or the policy's timeout elapses.

    The probe always runs at least once, so a zero timeout is a single
    snapshot. Exceptions raised by the probe count as "not yet" and the most
    recent one is returned on ``TimedOut``.

    Args:
        probe: Coroutine factory reading the current state
        policy: Timeout and pacing
        accept: Predicate for the probed value (default: not None/False)

    Returns:
        Found with the accepted value, or TimedOut
    """
    accept = accept or _truthy
    start = time.monotonic()
    deadline = start + policy.timeout_ms / 1000
    interval_ms = float(policy.interval_ms)
    attempts = 0
    last_value: Any = None
    last_error: BaseException | None = None

    while True:
        attempts += 1
        try:
            last_value = await probe()
            last_error = None
            if accept(last_value):
                return Found(
                    value=last_value,
                    attempts=attempts,
                    elapsed_ms=int((time.monotonic() - start) * 1000),
                )
        except Exception as e:
            last_error = e

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval_ms / 1000, remaining))
        interval_ms = policy.next_interval(interval_ms)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.debug(
        "Wait timed out",
        attempts=attempts,
        elapsed_ms=elapsed_ms,
        last_error=str(last_error) if last_error else None,
    )
    return TimedOut(
        attempts=attempts,
        elapsed_ms=elapsed_ms,
        last_value=last_value,
        last_error=last_error,
    )
