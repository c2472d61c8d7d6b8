"""Selection resolver: which note ids a run should process.

Folder membership is always looked up through prebuilt indexes (folder id to
a set of note ids, note id to folder titles) rather than by scanning every
folder for every note.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Set

ALL = "all"
ORPHANS = "orphans"


@dataclass
class FolderView:
    """Notes visible under one filter plus the per-folder counters."""

    notes: List[dict]
    orphans: List[dict]
    counts: Dict[str, int] = field(default_factory=dict)


def membership_index(folders: Iterable[dict]) -> Dict[str, Set[str]]:
    """Return ``{folder_id: {note ids}}`` for folders carrying ``document_ids``."""
    return {
        f.get("id"): set(f.get("document_ids") or [])
        for f in folders
        if f.get("id")
    }


def folder_index(folders: Iterable[dict]) -> Dict[str, List[str]]:
    """Return ``{note_id: [folder titles]}``, titles in alphabetical order."""
    index: Dict[str, List[str]] = {}
    for folder in sorted(folders, key=lambda f: (f.get("title") or "").lower()):
        title = folder.get("title") or "Untitled Folder"
        for note_id in folder.get("document_ids") or []:
            titles = index.setdefault(note_id, [])
            if title not in titles:
                titles.append(title)
    return index


def folder_label(selected_filter: str, folders: Iterable[dict]) -> str:
    if selected_filter == ALL:
        return "All Notes"
    if selected_filter == ORPHANS:
        return "Notes Not in Folders"
    for folder in folders:
        if folder.get("id") == selected_filter:
            return folder.get("title") or "Selected Folder"
    return "Selected Folder"


def resolve_view(notes: Sequence[dict], folders: Sequence[dict], selected_filter: str = ALL) -> FolderView:
    """Split *notes* by folder membership in a single pass.

    ``counts`` holds, for every folder, how many of *notes* it contains;
    ``orphans`` are the notes absent from every folder.
    """
    if not notes:
        return FolderView(notes=[], orphans=[], counts={})

    note_ids = {n.get("id") for n in notes}
    members = membership_index(folders)
    in_any: Set[str] = set()
    counts: Dict[str, int] = {}
    for folder_id, ids in members.items():
        present = ids & note_ids
        counts[folder_id] = len(present)
        in_any |= present

    orphans = [n for n in notes if n.get("id") not in in_any]
    if selected_filter == ALL:
        visible = list(notes)
    elif selected_filter == ORPHANS:
        visible = orphans
    else:
        wanted = members.get(selected_filter, set())
        visible = [n for n in notes if n.get("id") in wanted]
    return FolderView(notes=visible, orphans=orphans, counts=counts)


def resolve(
    all_items: Sequence[dict],
    folder_membership: Mapping[str, Iterable[str]] | Sequence[dict],
    selected_filter: str = ALL,
    explicit_selection: Iterable[str] | None = None,
) -> List[str]:
    """Return the ordered list of item ids to process.

    A non-empty *explicit_selection* wins and is kept in ``all_items`` order
    (unknown ids are appended so they surface as not-found results).
    Otherwise ``"all"`` takes every item, ``"orphans"`` the items that no
    folder contains, and any other value is treated as a folder id.
    ``folder_membership`` is either a ``{folder_id: ids}`` mapping or the raw
    folder records with ``document_ids``.
    """
    explicit = list(dict.fromkeys(explicit_selection or []))
    if explicit:
        wanted = set(explicit)
        ordered = [item.get("id") for item in all_items if item.get("id") in wanted]
        known = set(ordered)
        return ordered + [i for i in explicit if i not in known]

    if isinstance(folder_membership, Mapping):
        members = {k: set(v) for k, v in folder_membership.items()}
    else:
        members = membership_index(folder_membership)

    if selected_filter == ALL:
        return [item.get("id") for item in all_items]
    if selected_filter == ORPHANS:
        in_any: Set[str] = set().union(*members.values()) if members else set()
        return [item.get("id") for item in all_items if item.get("id") not in in_any]
    wanted = members.get(selected_filter, set())
    return [item.get("id") for item in all_items if item.get("id") in wanted]
