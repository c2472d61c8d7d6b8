"""Lifecycle guard: generations, run handles and the one scheduled callback.

Every async continuation of a run holds a :class:`RunHandle` and asks
``handle.is_active()`` before touching shared state.  A handle goes stale when
a newer run starts, when the run is cancelled, or when the guard is torn down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class RunHandle:
    """Captured generation of one run plus its cancellation signal."""

    def __init__(self, guard: "LifecycleGuard", generation: int) -> None:
        self._guard = guard
        self.generation = generation
        self.cancelled = False
        # set on cancel/supersede/teardown; wakes retry backoff sleeps
        self.cancel_event = asyncio.Event()

    def is_active(self) -> bool:
        return not self.cancelled and self._guard.is_active(self.generation)

    def cancel(self) -> None:
        if not self.cancelled:
            logger.debug("run %d cancelled", self.generation)
        self.cancelled = True
        self.cancel_event.set()

    def __repr__(self) -> str:
        state = "active" if self.is_active() else "stale"
        return f"<RunHandle generation={self.generation} {state}>"


class ScheduledCallback:
    """A cancellable ``call_later`` wrapper that can also be awaited."""

    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        loop = asyncio.get_running_loop()
        self._callback = callback
        self._done: asyncio.Future = loop.create_future()
        self._timer = loop.call_later(max(0.0, delay), self._fire)

    def _fire(self) -> None:
        if self._done.done():
            return
        try:
            self._callback()
        except Exception as exc:  # delivered to whoever awaits ``wait``
            self._done.set_exception(exc)
            return
        self._done.set_result(True)

    @property
    def pending(self) -> bool:
        return not self._done.done()

    def cancel(self) -> None:
        self._timer.cancel()
        if not self._done.done():
            self._done.set_result(False)

    async def wait(self) -> bool:
        """Return ``True`` if the callback ran, ``False`` if it was cancelled."""
        return await asyncio.shield(self._done)


class LifecycleGuard:
    """Generation counter plus mount flag shared by all runs of one host."""

    def __init__(self) -> None:
        self.generation = 0
        self.mounted = True
        self._current: Optional[RunHandle] = None
        self._scheduled: Optional[ScheduledCallback] = None

    def start_run(self) -> RunHandle:
        """Begin a new generation, superseding any previous run."""
        if self._current is not None:
            self._current.cancel()
        self.cancel_scheduled()
        self.generation += 1
        self._current = RunHandle(self, self.generation)
        logger.debug("run %d started", self.generation)
        return self._current

    def is_active(self, generation: int) -> bool:
        return self.mounted and self.generation == generation

    @property
    def current(self) -> Optional[RunHandle]:
        return self._current

    def schedule(self, delay: float, callback: Callable[[], Any]) -> ScheduledCallback:
        """Replace the single scheduled callback slot."""
        self.cancel_scheduled()
        self._scheduled = ScheduledCallback(delay, callback)
        return self._scheduled

    def cancel_scheduled(self) -> None:
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None

    def teardown(self) -> None:
        """Unmount: every handle goes stale and the pending timer is dropped."""
        self.mounted = False
        if self._current is not None:
            self._current.cancel()
        self.cancel_scheduled()
        logger.debug("lifecycle torn down at generation %d", self.generation)
