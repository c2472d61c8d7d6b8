"""Window-barrier batch scheduler.

Ids are cut into consecutive windows of ``batch_size``.  All operations of a
window run concurrently and the next window starts only once every one of
them has settled, so at most ``batch_size`` operations are ever in flight.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence

from .config import MIN_BATCH_SIZE
from .errors import BatchError, Cancelled, classify
from .lifecycle import RunHandle

logger = logging.getLogger(__name__)


@dataclass
class ItemOutcome:
    """Settled outcome of one operation: a payload or a classified error."""

    item_id: str
    payload: Any = None
    error: Optional[BatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, Cancelled)


def batch_size_for(total: int, configured_max: int) -> int:
    """Window size for *total* items given the operator's maximum."""
    if total <= 0:
        return MIN_BATCH_SIZE
    return min(total, max(MIN_BATCH_SIZE, int(configured_max)))


def windows(ids: Sequence[str], batch_size: int) -> List[List[str]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(ids[i:i + batch_size]) for i in range(0, len(ids), batch_size)]


async def _settle(op: Callable[[str], Awaitable[Any]], item_id: str) -> ItemOutcome:
    try:
        payload = await op(item_id)
    except Exception as exc:
        return ItemOutcome(item_id, error=classify(exc))
    return ItemOutcome(item_id, payload=payload)


class BatchScheduler:
    """Drives ``op(id)`` over ids one window at a time."""

    def __init__(self, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self.windows_started = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def _tracked(self, op: Callable[[str], Awaitable[Any]], item_id: str) -> ItemOutcome:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await _settle(op, item_id)
        finally:
            self.in_flight -= 1

    async def run(
        self,
        ids: Sequence[str],
        op: Callable[[str], Awaitable[Any]],
        handle: RunHandle | None = None,
    ) -> AsyncIterator[ItemOutcome]:
        """Yield every item's terminal outcome, window by window.

        Within a window outcomes arrive in completion order.  When *handle*
        goes stale no further window is started; outcomes of the window
        already running are still yielded and left to the caller to discard.
        """
        for index, window in enumerate(windows(ids, self.batch_size)):
            if handle is not None and not handle.is_active():
                logger.debug("run %d inactive, skipping windows from %d", handle.generation, index)
                return
            self.windows_started += 1
            logger.debug("window %d: %d items", index, len(window))
            tasks = [asyncio.ensure_future(self._tracked(op, item_id)) for item_id in window]
            try:
                for next_done in asyncio.as_completed(tasks):
                    yield await next_done
            finally:
                # consumer walked away mid-window
                for task in tasks:
                    if not task.done():
                        task.cancel()
