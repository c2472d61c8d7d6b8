"""``bulknote save``: save selected notes to the connected external service."""

from __future__ import annotations

import asyncio
import sys
import webbrowser
from typing import List

from ..core import (
    BatchEngine,
    ItemStatus,
    OperationResult,
    WorkItem,
    api,
    get_base_and_token,
    load_settings,
    tqdm,
)
from .notes import gather_items
from .report import print_report


def first_page_url(results: List[OperationResult]) -> str | None:
    for r in results:
        if r.status is ItemStatus.SUCCESS and isinstance(r.payload, dict) and r.payload.get("page_url"):
            return r.payload["page_url"]
    return None


def cmd_save(args):
    base, token = get_base_and_token()
    settings = load_settings()
    if args.batch_size:
        settings.max_batch_size = max(1, args.batch_size)

    items, _folders, label = gather_items(args, base, token)
    if not items:
        print("Nothing selected to save", file=sys.stderr)
        return 1

    async def save_one(item: WorkItem):
        return await api.save_note(base, token, item.id, timeout=settings.save_timeout)

    summary: dict = {}

    def on_complete(_results: List[OperationResult]) -> None:
        counts = engine.results.summary()
        line = f"Save complete: {counts.success_count} successful, {counts.error_count} failed"
        if counts.pending_count:
            line += f", {counts.pending_count} still pending"
        summary["line"] = line

    print(f"Saving {len(items)} notes from {label}", file=sys.stderr)
    with tqdm(total=len(items), unit="note", desc="Saving") as bar:
        engine = BatchEngine(
            settings,
            on_progress=bar.set_postfix_str,
            on_item=lambda _result: bar.update(1),
            on_complete=on_complete,
        )
        try:
            results = asyncio.run(engine.start_run(items, save_one, timeout=settings.save_timeout))
        except KeyboardInterrupt:
            engine.teardown()
            print("\nCancelled by user", file=sys.stderr)
            return 1

    if summary:
        print(summary["line"], file=sys.stderr)
    failed = print_report(results, "Saved", show_details=args.show_details)
    url = first_page_url(results)
    if url:
        print(f"First saved note: {url}")
        if args.open:
            webbrowser.open(url)
    return 1 if failed else 0
