"""Progress and ETA formatting for batch runs."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

# assumed cost of one item before anything has been measured
DEFAULT_ITEM_MS = 500
# rough wall time of one window, used for the estimate shown before a run
DEFAULT_WINDOW_SECONDS = 2


@dataclass(frozen=True)
class ProgressUpdate:
    message: str
    eta_seconds: int


def estimate_eta_seconds(processed: int, total: int, elapsed_ms: float) -> int:
    """Linear estimate of the seconds left for ``total - processed`` items."""
    remaining = max(0, total - processed)
    per_item = elapsed_ms / processed if processed > 0 else DEFAULT_ITEM_MS
    return math.ceil(remaining * per_item / 1000)


def format_eta(seconds: int) -> str:
    if seconds >= 60:
        return f"{math.ceil(seconds / 60)}m"
    return f"{seconds}s"


def format_progress_message(processed: int, total: int, eta: str | None = None) -> str:
    if eta:
        return f"{processed}/{total} • ~{eta}"
    return f"{processed}/{total}"


def calculate_eta(remaining: int, batch_size: int) -> str:
    """Estimate shown before any item finished: one window time per window."""
    if remaining <= 0:
        return format_eta(0)
    windows = math.ceil(remaining / max(1, batch_size))
    return format_eta(windows * DEFAULT_WINDOW_SECONDS)


def progress_update(processed: int, total: int, start_time: float, now: float | None = None) -> ProgressUpdate:
    """Return the message and ETA for *processed* of *total* items.

    Times are seconds on the same clock as ``time.monotonic``.
    """
    now = time.monotonic() if now is None else now
    eta = estimate_eta_seconds(processed, total, (now - start_time) * 1000)
    shown = format_eta(eta) if processed < total else None
    return ProgressUpdate(format_progress_message(processed, total, shown), eta)


class ProgressTracker:
    """Turns ``processed`` counts into ``"k/n • ~eta"`` messages."""

    def __init__(self, total: int, start_time: float | None = None, clock: Optional[Callable[[], float]] = None) -> None:
        self.total = total
        self._clock = clock or time.monotonic
        self.start_time = self._clock() if start_time is None else start_time
        self.processed = 0

    def update(self, processed: int | None = None) -> ProgressUpdate:
        if processed is not None:
            self.processed = processed
        return progress_update(self.processed, self.total, self.start_time, self._clock())

    def advance(self, count: int = 1) -> ProgressUpdate:
        return self.update(self.processed + count)
