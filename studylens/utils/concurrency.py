"""Shared concurrency primitives for background work.

Two patterns are exposed:

1. **TaskSupervisor** -- the single place background work is started.
   Upload processing and analysis continuations are submitted here right
   after the synchronous part of a request returns.  The supervisor bounds
   how many tasks execute at once, keeps a strong reference to every task
   (so the event loop cannot garbage-collect a running task), and records a
   :class:`TaskOutcome` per task so failures are observable instead of
   vanishing into an unawaited coroutine.

2. **throttled_gather** -- a drop-in replacement for ``asyncio.gather`` that
   wraps each awaitable in a semaphore acquire/release.  Used for fan-out
   retrieval queries.

# ─── WHY A SUPERVISOR (Junior Developer Guide) ─────────────────────────
#
#   Request handler ──submit()──→ TaskSupervisor ──semaphore──→ coroutine
#                                      │
#                                      └── outcomes[name] = TaskOutcome
#
#   - submit() returns immediately; the handler responds 201/202.
#   - At most ``max_concurrency`` tasks run; the rest wait on the semaphore.
#   - A task that raises is logged and its error recorded.  The exception
#     is NOT re-raised: the owning entity already carries a failed status.
#   - drain() awaits everything in flight (shutdown and tests).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Coroutine, TypeVar

import structlog

from studylens.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass
class TaskOutcome:
    """Result record for one supervised background task."""

    name: str
    submitted_at: datetime = field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def done(self) -> bool:
        return self.finished_at is not None

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None


class TaskSupervisor:
    """Bounded, observable runner for fire-and-forget coroutines.

    Parameters
    ----------
    max_concurrency:
        Upper bound on background tasks executing simultaneously.
    max_outcomes:
        How many finished outcomes to retain for inspection.  Oldest
        entries are dropped first.
    """

    def __init__(self, max_concurrency: int = 4, max_outcomes: int = 500) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_outcomes = max_outcomes
        self._tasks: set[asyncio.Task[Any]] = set()
        self._outcomes: dict[str, TaskOutcome] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """Schedule *coro* on the running loop and return its task.

        Must be called from inside a running event loop (request handlers
        and async services always are).
        """
        outcome = TaskOutcome(name=name)
        self._record(outcome)
        task = asyncio.get_running_loop().create_task(
            self._run(coro, outcome), name=name
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        _logger.debug("background_task_submitted", task=name, in_flight=len(self._tasks))
        return task

    def get_outcome(self, name: str) -> TaskOutcome | None:
        return self._outcomes.get(name)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Drain in-flight work; called from the application lifespan."""
        pending = self.in_flight
        await self.drain()
        _logger.info("task_supervisor_shutdown", drained=pending)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run(self, coro: Coroutine[Any, Any, Any], outcome: TaskOutcome) -> None:
        async with self._semaphore:
            try:
                await coro
            except Exception as exc:
                outcome.error = str(exc) or type(exc).__name__
                _logger.error(
                    "background_task_failed",
                    task=outcome.name,
                    error_type=type(exc).__name__,
                    error=outcome.error,
                )
            finally:
                outcome.finished_at = datetime.now(tz=timezone.utc)  # noqa: UP017

    def _record(self, outcome: TaskOutcome) -> None:
        self._outcomes[outcome.name] = outcome
        while len(self._outcomes) > self._max_outcomes:
            oldest = next(iter(self._outcomes))
            del self._outcomes[oldest]


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with optional semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  Without one the
        awaitables run unthrottled, exactly like ``asyncio.gather``.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        return await asyncio.gather(*coros, return_exceptions=return_exceptions)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)
