"""Bounded polling for readiness checks.

poll_until() re-evaluates a check on a fixed interval until the check
reports ready, raises a FatalConditionError, the deadline passes, or the
caller sets the cancel event. Any other exception raised by the check is
logged and counted as "still pending".
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .errors import FatalConditionError, WaitCancelledError, WaitTimeoutError


@dataclass(frozen=True)
class Readiness:
    """Verdict of a single readiness check.

    Attributes:
        ready: Whether the resource has converged
        reason: Human-readable explanation while pending
        value: Optional output of a ready check (e.g. a route host)
    """

    ready: bool
    reason: str = ""
    value: Any = None

    @classmethod
    def done(cls, value: Any = None) -> Readiness:
        return cls(ready=True, value=value)

    @classmethod
    def pending(cls, reason: str = "") -> Readiness:
        return cls(ready=False, reason=reason)


Check = Callable[[], Awaitable[Readiness]]


async def _sleep(delay: float, cancel: asyncio.Event | None) -> bool:
    """Sleep for delay seconds; return True if cancel was set meanwhile."""
    if cancel is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return False
    return True


async def poll_until(
    check: Check,
    *,
    interval: float,
    timeout: float,
    resource: str,
    cancel: asyncio.Event | None = None,
) -> Readiness:
    """Wait until check() reports ready.

    The first evaluation happens one interval after the call; after that the
    check runs at most once per interval. When less than a full interval is
    left before the deadline, the poll waits out the remainder and times out
    without another check, so it never overshoots the timeout by more than
    scheduling delay.

    Args:
        check: Async callable returning a Readiness verdict
        interval: Seconds between evaluations
        timeout: Overall deadline in seconds
        resource: Description of what is being waited on, for errors and logs
        cancel: Optional event; setting it ends the wait early

    Returns:
        The first ready verdict

    Raises:
        FatalConditionError: If the check reported a permanent failure
        WaitTimeoutError: If the deadline passed while still pending
        WaitCancelledError: If cancel was set before the resource was ready
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    deadline = started + timeout
    last_error: Exception | None = None
    ticks = 0

    while True:
        now = loop.time()
        if cancel is not None and cancel.is_set():
            raise WaitCancelledError(resource, now - started)
        if now >= deadline:
            raise WaitTimeoutError(resource, now - started, last_error)

        remaining = deadline - now
        if await _sleep(min(interval, remaining), cancel):
            raise WaitCancelledError(resource, loop.time() - started)
        if remaining < interval:
            raise WaitTimeoutError(resource, loop.time() - started, last_error)

        ticks += 1
        try:
            verdict = await check()
        except FatalConditionError:
            raise
        except Exception as e:
            last_error = e
            logger.warning(f"Checking {resource} failed (tick {ticks}): {e}")
            continue

        if verdict.ready:
            logger.debug(
                f"{resource} ready after {loop.time() - started:.1f}s ({ticks} checks)"
            )
            return verdict

        logger.debug(f"Waiting for {resource}: {verdict.reason or 'not ready'}")
