"""Note listing and the selection step shared by ``export`` and ``save``."""

from __future__ import annotations

import sys
from typing import List, Tuple

from ..core import (
    ALL,
    WorkItem,
    folder_index,
    folder_label,
    format_rows,
    get_base_and_token,
    list_folders,
    list_notes,
    resolve,
    resolve_view,
    sort_notes_by_date,
)
from ..core.interactive import interactive_confirm, interactive_pick_filter, interactive_select_notes


def load_notes_and_folders(args, base: str, token: str) -> Tuple[List[dict], List[dict]]:
    refresh = getattr(args, "refresh_cache", False)
    workers = getattr(args, "workers", 8)
    print("Loading notes and folders...", file=sys.stderr)
    notes = list_notes(base, token, refresh_cache=refresh, workers=workers, desc=None)
    folders = list_folders(base, token, refresh_cache=refresh, workers=workers, desc=None)
    return sort_notes_by_date(notes), folders


def gather_items(args, base: str, token: str) -> Tuple[List[WorkItem], List[dict], str]:
    """Resolve the command line / interactive selection into work items.

    Returns the items, the folder records and a label for the chosen view.
    Ids given with ``--ids`` that are not known locally are kept so that they
    show up as not-found results.
    """
    notes, folders = load_notes_and_folders(args, base, token)
    selected_filter = getattr(args, "folder", None) or ALL
    explicit = list(getattr(args, "ids", None) or [])

    if getattr(args, "interactive", False):
        selected_filter = interactive_pick_filter(notes, folders)
        view = resolve_view(notes, folders, selected_filter)
        explicit = interactive_select_notes(view.notes, folders)

    ids = resolve(notes, folders, selected_filter, explicit)
    by_id = {n.get("id"): n for n in notes}
    items = []
    for note_id in ids:
        note = by_id.get(note_id)
        if note is None:
            items.append(WorkItem(id=note_id, title="Unknown Note", payload_ref=None))
        else:
            items.append(WorkItem.from_note(note))
    if getattr(args, "interactive", False) and items:
        if not interactive_confirm(f"Process {len(items)} notes?"):
            return [], folders, "Selected Notes"
    label = "Selected Notes" if explicit else folder_label(selected_filter, folders)
    return items, folders, label


def cmd_list(args):
    base, token = get_base_and_token()
    notes, folders = load_notes_and_folders(args, base, token)
    selected_filter = args.folder or ALL
    view = resolve_view(notes, folders, selected_filter)
    if args.folders:
        rows = [
            {"id": f.get("id"), "title": f.get("title"), "notes": view.counts.get(f.get("id"), 0)}
            for f in sorted(folders, key=lambda f: (f.get("title") or "").lower())
        ]
        rows.append({"id": "orphans", "title": "Notes Not in Folders", "notes": len(view.orphans)})
        format_rows(rows, ["id", "title", "notes"])
        return 0

    folders_by_note = folder_index(folders)
    rows = [
        {
            "id": n.get("id"),
            "title": n.get("title") or "Untitled Note",
            "created": (n.get("created_at") or "")[:10],
            "folders": ", ".join(folders_by_note.get(n.get("id"), [])),
        }
        for n in view.notes
    ]
    print(f"{folder_label(selected_filter, folders)}: {len(rows)} notes")
    format_rows(rows, ["id", "title", "created", "folders"])
    return 0
