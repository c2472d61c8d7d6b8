"""Batch engine: one entry point that runs an operation over selected notes.

A run resolves to ``pending`` rows for every item, drives the operation
through :class:`~bulknote.core.scheduler.BatchScheduler` with every call
wrapped by the retry controller, and records terminal outcomes in the
:class:`~bulknote.core.results.ResultAggregator`.  All writes are gated by
the run's :class:`~bulknote.core.lifecycle.RunHandle`, so a superseded or
cancelled run never touches the live table.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from .config import BatchSettings
from .errors import NotFound, NothingSelected, TimedOut, classify, error_detail
from .lifecycle import LifecycleGuard, RunHandle
from .progress import ProgressTracker, calculate_eta
from .results import OperationResult, ResultAggregator, WorkItem
from .retry import RetryPolicy, Sleep, attempt, cancellable_sleep
from .scheduler import BatchScheduler, ItemOutcome, batch_size_for

logger = logging.getLogger(__name__)

Operation = Callable[[WorkItem], Awaitable[Any]]


class BatchEngine:
    """Runs batched operations for one host (a command, a screen...).

    Callbacks:

    * ``on_progress(message)`` for live ``"k/n • ~eta"`` and retry notices;
    * ``on_item(result)`` after each item reached a terminal state;
    * ``on_complete(results)`` once per finished, still-active run.
    """

    def __init__(
        self,
        settings: BatchSettings | None = None,
        *,
        on_progress: Callable[[str], None] | None = None,
        on_item: Callable[[OperationResult], None] | None = None,
        on_complete: Callable[[List[OperationResult]], None] | None = None,
        sleep: Sleep | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.settings = settings or BatchSettings()
        self.guard = LifecycleGuard()
        self.results = ResultAggregator()
        self.on_progress = on_progress
        self.on_item = on_item
        self.on_complete = on_complete
        self._sleep = sleep or cancellable_sleep
        self._clock = clock or time.monotonic
        self.last_scheduler: Optional[BatchScheduler] = None

    @property
    def policy(self) -> RetryPolicy:
        s = self.settings
        return RetryPolicy(max_retries=s.max_retries, base_delay_ms=s.base_delay_ms, max_delay_ms=s.max_delay_ms)

    def _emit(self, handle: RunHandle, message: str) -> None:
        if self.on_progress is not None and handle.is_active():
            self.on_progress(message)

    async def start_run(
        self,
        items: Sequence[WorkItem],
        op: Operation,
        *,
        batch_size: int | None = None,
        timeout: float | None = None,
    ) -> List[OperationResult]:
        """Process *items* with *op* and return this run's result rows.

        *op* receives the :class:`WorkItem`; an item whose ``payload_ref`` is
        ``None`` is reported as not found without calling *op*.  *timeout*
        bounds each call; expiry leaves the item ``pending`` and is reported
        as possibly finishing in the background.
        """
        if not items:
            raise NothingSelected("No notes selected")

        handle = self.guard.start_run()
        by_id: Dict[str, WorkItem] = {item.id: item for item in items}
        self.results.reset(items, handle)
        rows = self.results.results()
        size = batch_size or batch_size_for(len(items), self.settings.max_batch_size)
        scheduler = BatchScheduler(size)
        self.last_scheduler = scheduler
        tracker = ProgressTracker(len(items), clock=self._clock)
        policy = self.policy
        logger.info("run %d: %d items in windows of %d", handle.generation, len(items), size)
        self._emit(handle, f"{len(items)} notes in batches of {size} (~{calculate_eta(len(items), size)})")

        async def bounded(item: WorkItem) -> Any:
            try:
                return await op(item)
            except (asyncio.TimeoutError, TimeoutError) as exc:
                # keep the op's own timeouts apart from the run deadline below
                raise classify(exc)

        async def call(item: WorkItem) -> Any:
            if timeout is None:
                return await op(item)
            try:
                return await asyncio.wait_for(bounded(item), timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise TimedOut("Timed out; the operation may still finish in the background") from exc

        async def run_one(item_id: str) -> Any:
            item = by_id[item_id]
            if item.payload_ref is None:
                raise NotFound("Note not found in local cache")

            def on_retry(attempt_no: int, delay_ms: int) -> None:
                self._emit(
                    handle,
                    f"Rate limited, retrying in {math.ceil(delay_ms / 1000)}s (attempt {attempt_no})",
                )

            return await attempt(
                call,
                item,
                policy=policy,
                on_retry=on_retry,
                cancel_event=handle.cancel_event,
                sleep=self._sleep,
            )

        async for outcome in scheduler.run([item.id for item in items], run_one, handle=handle):
            if not handle.is_active():
                logger.debug("run %d stale, dropping outcome for %s", handle.generation, outcome.item_id)
                continue
            self._record(handle, outcome)
            self._emit(handle, tracker.advance().message)

        if handle.is_active():
            await self._finish(handle)
        return rows

    def _record(self, handle: RunHandle, outcome: ItemOutcome) -> None:
        if outcome.ok:
            self.results.mark_success(outcome.item_id, outcome.payload, handle=handle)
        elif isinstance(outcome.error, TimedOut):
            title = self.results.get(outcome.item_id).title
            self._emit(handle, f"{title}: {outcome.error.message}")
        elif outcome.cancelled:
            return
        else:
            self.results.mark_error(
                outcome.item_id,
                outcome.error.message,
                error_detail(outcome.error, outcome.item_id),
                handle=handle,
            )
        if self.on_item is not None:
            self.on_item(self.results.get(outcome.item_id))

    async def _finish(self, handle: RunHandle) -> bool:
        def deliver() -> None:
            if handle.is_active() and self.on_complete is not None:
                self.on_complete(self.results.results())

        scheduled = self.guard.schedule(self.settings.summary_delay, deliver)
        return await scheduled.wait()

    def cancel(self) -> None:
        """Cancel the live run; its remaining windows never start."""
        if self.guard.current is not None:
            self.guard.current.cancel()

    def teardown(self) -> None:
        self.guard.teardown()
