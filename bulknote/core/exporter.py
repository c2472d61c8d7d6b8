"""Export pipeline: batch engine output staged on disk and zipped."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from .engine import BatchEngine
from .results import ItemStatus, OperationResult, WorkItem
from .staging import create_export_filename, item_file_name, staging_area
from .utils import parse_created

logger = logging.getLogger(__name__)

NOTES_PREFIX = "bulknote_export"
TRANSCRIPTS_PREFIX = "bulknote_transcripts"


@dataclass
class ExportOutcome:
    results: List[OperationResult]
    archive_path: Optional[Path]


def render_note(note: dict, body: str, *, heading: str = "Notes", now: datetime | None = None) -> str:
    """Render one note as a Markdown document."""
    title = note.get("title") or "Untitled Note"
    created = parse_created(note.get("created_at"))
    created_text = created.strftime("%Y-%m-%d") if created else "Unknown"
    source = note.get("creation_source") or "Unknown"
    exported = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    body = body.strip() or f"No {heading.lower()} available."
    return (
        f"# {title}\n\n"
        f"## {heading}\n\n"
        f"{body}\n\n"
        "---\n\n"
        f"*Exported on {exported}*  \n"
        f"**Created:** {created_text} | **Source:** {source}\n"
    )


async def export_notes(
    engine: BatchEngine,
    items: Sequence[WorkItem],
    fetch_content: Callable[[WorkItem], Awaitable[str]],
    *,
    out_dir: Path | str,
    prefix: str = NOTES_PREFIX,
    folder_of: Dict[str, str] | None = None,
    render: Callable[[WorkItem, str], str] | None = None,
    batch_size: int | None = None,
) -> ExportOutcome:
    """Fetch, render and stage every item, then zip what succeeded.

    A failed fetch or write only fails that item.  The archive is built when
    at least one item succeeded; a failure to build it raises
    :class:`~bulknote.core.errors.StagingError`.  The staging directory is
    removed on every path out of this function.
    """
    folder_of = folder_of or {}
    if render is None:
        def render(item: WorkItem, body: str) -> str:
            return render_note(item.payload_ref or {"title": item.title}, body)

    with staging_area(prefix) as area:

        async def export_one(item: WorkItem) -> str:
            body = await fetch_content(item)
            return area.write_item(
                item.id,
                item_file_name(item.title, item.id),
                render(item, body),
                folder_of.get(item.id),
            )

        results = await engine.start_run(items, export_one, batch_size=batch_size)
        written = sum(1 for r in results if r.status is ItemStatus.SUCCESS)
        if not written:
            logger.warning("nothing exported, skipping archive")
            return ExportOutcome(results, None)
        if engine.on_progress is not None:
            engine.on_progress("Creating zip archive...")
        archive = area.finalize(create_export_filename(prefix), out_dir)
    return ExportOutcome(results, archive)
