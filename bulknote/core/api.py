"""Remote operations used by the batch commands.

Each per-item call is a blocking :func:`http_json` request with
``handle_error=False`` pushed onto a worker thread, so failures surface as
:class:`~bulknote.core.errors.RemoteCallError` for the retry controller to
classify instead of terminating the program.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from .errors import RemoteCallError
from .http import http_json
from .utils import ensure_text, fetch_all_concurrent


def list_notes(base: str, token: str, *, workers: int = 8, desc: str | None = "Fetch notes") -> List[dict]:
    return fetch_all_concurrent(base, token, "/notes.list", params={}, workers=workers, desc=desc)


def list_folders(base: str, token: str, *, workers: int = 8, desc: str | None = "Fetch folders") -> List[dict]:
    """Folders including their ``document_ids`` membership lists."""
    folders = fetch_all_concurrent(
        base,
        token,
        "/folders.list",
        params={"includeDocumentIds": True},
        workers=workers,
        desc=desc,
    )
    for folder in folders:
        folder["document_ids"] = list(folder.get("document_ids") or [])
    return folders


def _content_of(data: Any) -> str:
    if isinstance(data, dict) and "data" in data:
        data = data["data"]
        if isinstance(data, dict):
            for key in ("markdown", "text", "content", "transcript"):
                if data.get(key) is not None:
                    return ensure_text(data[key])
    return ensure_text(data)


def _post(base: str, token: str, endpoint: str, payload: Dict[str, Any], timeout: float = 60) -> Any:
    return http_json("POST", f"{base}/{endpoint}", token, payload, handle_error=False, timeout=timeout)


async def fetch_note_content(base: str, token: str, note_id: str) -> str:
    """Return the Markdown body of one note."""
    data = await asyncio.to_thread(_post, base, token, "notes.export", {"id": note_id})
    return _content_of(data)


async def fetch_transcript(base: str, token: str, note_id: str) -> str:
    data = await asyncio.to_thread(_post, base, token, "notes.transcript", {"id": note_id})
    return _content_of(data)


async def save_note(base: str, token: str, note_id: str, *, timeout: float = 120) -> Dict[str, Any]:
    """Save one note to the connected external service.

    Returns the response payload, which carries the created ``page_url``.
    A response whose ``status`` is not ``"success"`` is a remote error.
    """
    data = await asyncio.to_thread(
        _post, base, token, "notes.saveToService", {"document_id": note_id}, timeout
    )
    if not isinstance(data, dict):
        raise RemoteCallError(None, "Save failed: malformed response")
    result = data.get("data") if isinstance(data.get("data"), dict) else data
    if result.get("status") != "success":
        raise RemoteCallError(None, f"Save failed with status: {result.get('status')}")
    return result
