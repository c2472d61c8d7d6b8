"""Cache management commands."""

from __future__ import annotations

import json

from ..core import CACHE_PATH


def cache_info(_args):
    p = CACHE_PATH
    if p.exists():
        print(f"Cache file: {p}  ({p.stat().st_size} bytes)")
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            print(f"Cannot parse cache: {e}")
            return 1
        print(f"Notes: {len(data.get('notes') or [])}")
        print(f"Folders: {len(data.get('folders') or [])}")
    else:
        print(f"No cache file at: {p}")
    return 0


def cache_clear(_args):
    p = CACHE_PATH
    if p.exists():
        p.unlink()
        print(f"Removed {p}")
    else:
        print("Nothing to clear.")
    return 0
