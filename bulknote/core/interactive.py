"""Interactive helpers using InquirerPy.

Two prompts are offered: picking the folder filter and checking individual
notes within it.  Both return plain values so commands can feed them to the
selection resolver.
"""

from __future__ import annotations

import sys
from typing import Dict, List, Sequence

from InquirerPy import inquirer

from .selection import ALL, ORPHANS, folder_index, resolve_view
from .utils import parse_created


def _execute(prompt):
    """Execute a prompt and handle ``Ctrl-C`` gracefully."""
    try:
        return prompt.execute()
    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        sys.exit(1)


def _note_label(note: dict, folders_by_note: Dict[str, List[str]]) -> str:
    title = note.get("title") or "Untitled Note"
    created = parse_created(note.get("created_at"))
    date = created.strftime("%Y-%m-%d") if created else "unknown date"
    where = ", ".join(folders_by_note.get(note.get("id"), [])) or "no folder"
    return f"{title}  ({date}, {where})"


def interactive_pick_filter(notes: Sequence[dict], folders: Sequence[dict]) -> str:
    """Ask which view to work on: all notes, orphans or one folder."""
    view = resolve_view(notes, folders)
    choices = [{"name": f"All Notes ({len(notes)})", "value": ALL}]
    if view.orphans:
        choices.append({"name": f"Notes Not in Folders ({len(view.orphans)})", "value": ORPHANS})
    for folder in sorted(folders, key=lambda f: (f.get("title") or "").lower()):
        count = view.counts.get(folder.get("id"), 0)
        choices.append({"name": f"{folder.get('title') or 'Untitled Folder'} ({count})", "value": folder.get("id")})

    prompt = inquirer.select(
        message="Filter by folder:",
        choices=choices,
        instruction="↑/↓, Enter",
        height="90%",
    )
    return _execute(prompt)


def interactive_select_notes(notes: Sequence[dict], folders: Sequence[dict]) -> List[str]:
    """Check notes and return their ids; an empty answer means "all shown"."""
    folders_by_note = folder_index(folders)
    choices = [{"name": _note_label(n, folders_by_note), "value": n.get("id")} for n in notes]

    prompt = inquirer.checkbox(
        message="Select notes (Space to toggle, Enter to confirm, nothing selected = all):",
        choices=choices,
        instruction="↑/↓, Space: toggle, Ctrl+A: all, Enter",
        transformer=lambda res: f"{len(res)} selected",
        height="90%",
        keybindings={
            "toggle": [{"key": "space"}],
            "toggle-all-true": [{"key": "c-a"}],
        },
    )
    result = _execute(prompt)
    return list(result or [])


def interactive_confirm(message: str, default: bool = True) -> bool:
    return bool(_execute(inquirer.confirm(message=message, default=default)))
