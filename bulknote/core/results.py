"""Per-item result table of a run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .lifecycle import RunHandle

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Note"


class ItemStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class WorkItem:
    """Immutable snapshot of one item for the duration of a run."""

    id: str
    title: str = UNTITLED
    payload_ref: Any = None

    @classmethod
    def from_note(cls, note: dict) -> "WorkItem":
        return cls(id=note.get("id"), title=note.get("title") or UNTITLED, payload_ref=note)


@dataclass
class OperationResult:
    item_id: str
    title: str
    status: ItemStatus = ItemStatus.PENDING
    payload: Any = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status is not ItemStatus.PENDING


@dataclass(frozen=True)
class Summary:
    success_count: int
    error_count: int
    pending_count: int

    @property
    def total(self) -> int:
        return self.success_count + self.error_count + self.pending_count


class ResultAggregator:
    """Id-keyed, insertion-ordered table of :class:`OperationResult`.

    The table belongs to the run handle passed to :meth:`reset`.  Updates
    carrying any other handle, or arriving after the handle went stale, are
    ignored, as is a second terminal update for the same item.
    """

    def __init__(self) -> None:
        self._table: Dict[str, OperationResult] = {}
        self._handle: Optional[RunHandle] = None

    def reset(self, items: Iterable[WorkItem], handle: RunHandle | None = None) -> None:
        """Replace the whole table with ``pending`` rows for *items*."""
        self._table = {item.id: OperationResult(item_id=item.id, title=item.title) for item in items}
        self._handle = handle

    def _accepts(self, item_id: str, handle: RunHandle | None) -> Optional[OperationResult]:
        owner = handle or self._handle
        if owner is not None and (owner is not self._handle or not owner.is_active()):
            logger.debug("discarding stale result for %s (generation %s)", item_id, owner.generation)
            return None
        row = self._table.get(item_id)
        if row is None or row.terminal:
            return None
        return row

    def mark_success(self, item_id: str, payload: Any = None, handle: RunHandle | None = None) -> bool:
        row = self._accepts(item_id, handle)
        if row is None:
            return False
        row.status = ItemStatus.SUCCESS
        row.payload = payload
        return True

    def mark_error(
        self,
        item_id: str,
        message: str,
        detail: str | None = None,
        handle: RunHandle | None = None,
    ) -> bool:
        row = self._accepts(item_id, handle)
        if row is None:
            return False
        row.status = ItemStatus.ERROR
        row.error = message
        row.error_detail = detail or message
        return True

    def get(self, item_id: str) -> Optional[OperationResult]:
        return self._table.get(item_id)

    def results(self) -> List[OperationResult]:
        return list(self._table.values())

    def first_success(self) -> Optional[OperationResult]:
        return next((r for r in self._table.values() if r.status is ItemStatus.SUCCESS), None)

    def summary(self) -> Summary:
        counts = {status: 0 for status in ItemStatus}
        for row in self._table.values():
            counts[row.status] += 1
        return Summary(
            success_count=counts[ItemStatus.SUCCESS],
            error_count=counts[ItemStatus.ERROR],
            pending_count=counts[ItemStatus.PENDING],
        )

    def __len__(self) -> int:
        return len(self._table)
