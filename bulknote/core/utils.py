"""Utility functions for bulknote."""

from __future__ import annotations

import json
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Dict, List

from tqdm import tqdm

from .config import API_MAX_LIMIT
from .http import http_json

__all__ = [
    "fetch_all_concurrent",
    "format_rows",
    "safe_name",
    "ensure_text",
    "parse_created",
    "sort_notes_by_date",
    "tqdm",
]


def _post_page(base: str, token: str, path: str, params: Dict[str, Any], limit: int, offset: int) -> Dict[str, Any]:
    """POST a single paginated request and return the JSON payload."""
    if limit > API_MAX_LIMIT:
        limit = API_MAX_LIMIT
    payload = dict(params or {})
    payload.update({"limit": limit, "offset": offset})

    if path.startswith("http://") or path.startswith("https://"):
        url = path
    elif path.startswith("/"):
        url = f"{base.rstrip('/')}{path}"
    else:
        url = f"{base.rstrip('/')}/{path}"

    data = http_json("POST", url, token, payload)
    if not isinstance(data, dict):
        return {"data": []}
    if "data" not in data:
        data["data"] = data.get("results") or data.get("docs") or []
    return data


def fetch_all_concurrent(
    base: str,
    token: str,
    path: str,
    *,
    params: Dict[str, Any] | None = None,
    limit: int = API_MAX_LIMIT,
    workers: int = 8,
    desc: str | None = "Loading",
) -> List[dict]:
    """Fetch all pages concurrently until a short page is received."""
    limit = min(limit, API_MAX_LIMIT)
    params = dict(params or {})
    disable = desc is None

    first = _post_page(base, token, path, params, limit, 0)
    items = list(first.get("data") or [])

    if len(items) < limit:
        with tqdm(total=1, unit="pg", desc=desc, disable=disable) as bar:
            bar.update(1)
        return items

    results: List[dict] = items
    next_offset = limit
    with tqdm(total=None, unit="pg", desc=desc, disable=disable) as bar:
        bar.update(1)
        while True:
            offsets = list(range(next_offset, next_offset + limit * workers, limit))
            stop = False
            with ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
                futures = {ex.submit(_post_page, base, token, path, params, limit, off): off for off in offsets}
                for fut in as_completed(futures):
                    page_items = fut.result().get("data") or []
                    results.extend(page_items)
                    bar.update(1)
                    if len(page_items) < limit:
                        stop = True
            next_offset += limit * workers
            if stop:
                break
    return results


def format_rows(rows: List[Dict[str, Any]], fields: List[str]) -> None:
    if not rows:
        print("(no data)")
        return
    widths = [max(len(str(r.get(f, ""))) for r in rows + [dict(zip(fields, fields))]) for f in fields]
    header = " | ".join(f.ljust(w) for f, w in zip(fields, widths))
    sep = "-+-".join("-" * w for w in widths)
    print(header)
    print(sep)
    for r in rows:
        print(" | ".join(str(r.get(f, "")).ljust(w) for f, w in zip(fields, widths)))


def safe_name(name: str, maxlen: int = 120) -> str:
    """Return a filesystem-safe representation of *name*.

    Path separators, characters reserved on common filesystems and control
    characters become ``_``; leading dots are dropped so a title can never
    name a hidden file or walk up a directory.
    """
    name = (name or "").strip()
    name = re.sub(r"[\\/:*?\"<>|\x00-\x1f]", "_", name)
    name = re.sub(r"\s+", " ", name)
    name = name.lstrip(".").strip()
    if len(name) > maxlen:
        name = name[:maxlen].rstrip()
    return name or "untitled"


def ensure_text(value: Any) -> str:
    """Return *value* decoded to text.

    The API sometimes returns note content either as a string, raw bytes, or
    a JSON-serialized Node.js ``Buffer`` object of the form
    ``{"type": "Buffer", "data": [...]}``.  This helper normalizes those
    representations into a UTF-8 ``str``.
    """

    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    if isinstance(value, dict):
        # handle Node.js Buffer serialization
        buf_type = value.get("type")
        buf_data = value.get("data")
        if buf_type == "Buffer" and isinstance(buf_data, list):
            try:
                return bytes(buf_data).decode("utf-8")
            except (ValueError, UnicodeDecodeError):
                pass
        inner = value.get("data")
        if inner is not None and set(value.keys()) == {"data"}:
            return ensure_text(inner)
    # Fallback to JSON string representation to avoid obscure AttributeError
    return json.dumps(value, ensure_ascii=False)


def parse_created(value: Any) -> datetime | None:
    """Parse an ISO ``created_at`` timestamp, tolerating a trailing ``Z``."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def sort_notes_by_date(notes: List[dict]) -> List[dict]:
    """Return *notes* newest first; notes without a date go last."""

    def key(note: dict) -> float:
        created = parse_created(note.get("created_at"))
        return created.timestamp() if created else float("-inf")

    return sorted(notes, key=key, reverse=True)
