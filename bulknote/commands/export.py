"""``bulknote export``: selected notes into one zip archive."""

from __future__ import annotations

import asyncio
import sys
import webbrowser
from pathlib import Path

from ..core import (
    BatchEngine,
    NOTES_PREFIX,
    StagingError,
    TRANSCRIPTS_PREFIX,
    WorkItem,
    api,
    export_notes,
    folder_index,
    get_base_and_token,
    load_settings,
    render_note,
    tqdm,
)
from .notes import gather_items
from .report import print_report


def cmd_export(args):
    base, token = get_base_and_token()
    settings = load_settings()
    if args.batch_size:
        settings.max_batch_size = max(1, args.batch_size)
    out_dir = Path(args.out_dir).expanduser().resolve()

    items, folders, label = gather_items(args, base, token)
    if not items:
        print("Nothing selected for export", file=sys.stderr)
        return 1

    folders_by_note = folder_index(folders)
    folder_of = {item.id: folders_by_note[item.id][0] for item in items if folders_by_note.get(item.id)}

    if args.kind == "transcripts":
        prefix, heading, fetch = TRANSCRIPTS_PREFIX, "Transcript", api.fetch_transcript
    else:
        prefix, heading, fetch = NOTES_PREFIX, "Notes", api.fetch_note_content

    async def fetch_content(item: WorkItem) -> str:
        return await fetch(base, token, item.id)

    def render(item: WorkItem, body: str) -> str:
        return render_note(item.payload_ref or {"title": item.title}, body, heading=heading)

    print(f"Exporting {len(items)} notes from {label}", file=sys.stderr)
    with tqdm(total=len(items), unit="note", desc="Exporting") as bar:
        engine = BatchEngine(
            settings,
            on_progress=bar.set_postfix_str,
            on_item=lambda _result: bar.update(1),
        )
        try:
            outcome = asyncio.run(
                export_notes(
                    engine,
                    items,
                    fetch_content,
                    out_dir=out_dir,
                    prefix=prefix,
                    folder_of=folder_of,
                    render=render,
                )
            )
        except StagingError as e:
            print(f"Export failed: {e.message}", file=sys.stderr)
            return 2
        except KeyboardInterrupt:
            engine.teardown()
            print("\nCancelled by user", file=sys.stderr)
            return 1

    failed = print_report(outcome.results, "Exported", show_details=args.show_details)
    if outcome.archive_path is None:
        print("No archive created: no note was exported", file=sys.stderr)
        return 2
    print(f"Archive: {outcome.archive_path}")
    if args.open:
        webbrowser.open(outcome.archive_path.as_uri())
    return 1 if failed else 0
