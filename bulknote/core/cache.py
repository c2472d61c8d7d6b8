"""Cache helpers for bulknote."""

from __future__ import annotations

import json
import sys
from typing import List

from . import api
from .config import CACHE_PATH


def load_cache() -> dict:
    if CACHE_PATH.exists():
        try:
            return json.loads(CACHE_PATH.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def save_cache(cache: dict) -> None:
    try:
        CACHE_PATH.write_text(json.dumps(cache, ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as e:
        print(f"Cannot write cache {CACHE_PATH}: {e}", file=sys.stderr)


def list_notes(
    base: str,
    token: str,
    *,
    use_cache: bool = True,
    refresh_cache: bool = False,
    workers: int = 8,
    desc: str | None = "Fetch notes",
) -> List[dict]:
    cache = load_cache() if use_cache else {}
    if use_cache and not refresh_cache and "notes" in cache:
        return cache["notes"]
    notes = api.list_notes(base, token, workers=workers, desc=desc)
    if use_cache:
        cache["notes"] = notes
        save_cache(cache)
    return notes


def list_folders(
    base: str,
    token: str,
    *,
    use_cache: bool = True,
    refresh_cache: bool = False,
    workers: int = 8,
    desc: str | None = "Fetch folders",
) -> List[dict]:
    cache = load_cache() if use_cache else {}
    if use_cache and not refresh_cache and "folders" in cache:
        return cache["folders"]
    folders = api.list_folders(base, token, workers=workers, desc=desc)
    if use_cache:
        cache["folders"] = folders
        save_cache(cache)
    return folders
