"""Timeout/retry and bounded racing primitives for upstream calls.

Both helpers take zero-argument coroutine factories so that every attempt
gets a fresh coroutine. Cancellation is plain asyncio task cancellation: a
timed-out attempt or a losing racer is cancelled and its result discarded.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from fareflex.services.errors import AttemptTimeout, is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 1,
    timeout: float,
    backoff: float = 0.0,
    label: str = "operation",
) -> T:
    """
    Run `operation` with a per-attempt deadline and linear backoff.

    Only transient failures (timeouts, transport errors, 503/504) are
    retried; anything else propagates immediately. Before retry k the
    helper sleeps backoff * k seconds. When every attempt fails the last
    error is re-raised as-is.
    """
    attempts = max(1, attempts)
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        if attempt > 1:
            await asyncio.sleep(backoff * (attempt - 1))

        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                return await operation()
        except TimeoutError as e:
            if not deadline.expired():
                raise
            last_error = AttemptTimeout(timeout)
            last_error.__cause__ = e
        except Exception as e:
            if not is_transient(e):
                raise
            last_error = e

        logger.warning(f"{label} attempt {attempt}/{attempts} failed: {last_error!r}")

    assert last_error is not None
    raise last_error


async def race_with_limit(
    candidates: Iterable[Callable[[], Awaitable[R | None]]],
    limit: int,
    *,
    abort_on: tuple[type[BaseException], ...] = (),
) -> R | None:
    """
    Run candidates with at most `limit` in flight; first non-None result wins.

    Candidates are started in input order as slots free up. The winner is
    whichever finishes first in wall-clock time. Once a winner exists, no
    further candidates are started and the ones still running are
    cancelled. Failures and None results just free their slot, except
    exceptions listed in `abort_on`, which cancel the race and propagate.
    """
    queue = deque(candidates)
    limit = max(1, limit)
    in_flight: set[asyncio.Future] = set()

    def fill_slots() -> None:
        while queue and len(in_flight) < limit:
            factory = queue.popleft()
            in_flight.add(asyncio.ensure_future(factory()))

    fill_slots()
    try:
        while in_flight:
            done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
            in_flight.difference_update(done)

            winner = abort = None
            for task in done:
                try:
                    result = _settled_result(task, abort_on)
                except abort_on as e:
                    abort = abort or e
                    continue
                if winner is None and result is not None:
                    winner = result
            if abort is not None:
                raise abort
            if winner is not None:
                return winner

            fill_slots()
        return None
    finally:
        for task in in_flight:
            task.cancel()


def _settled_result(task: asyncio.Future, abort_on: tuple[type[BaseException], ...]):
    """Result of a finished racer, or None for a miss."""
    if task.cancelled():
        return None
    exc = task.exception()
    if exc is not None:
        if abort_on and isinstance(exc, abort_on):
            raise exc
        logger.debug(f"Racer failed: {exc!r}")
        return None
    return task.result()
