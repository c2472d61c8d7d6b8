"""Configuration helpers for bulknote."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Tuple

CONFIG_PATH = Path(os.path.expanduser("~")) / ".bulknote.json"
CACHE_PATH = Path(os.path.expanduser("~")) / ".bulknote-cache.json"
# Default API endpoint used when no base URL is configured
DEFAULT_BASE = "https://api.bulknote.app/api"
# API limit for the ``limit`` parameter
API_MAX_LIMIT = 100

DEFAULT_MAX_BATCH_SIZE = 20
MIN_BATCH_SIZE = 1


@dataclass
class BatchSettings:
    """Operator-tunable knobs of the batch engine."""

    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_retries: int = 2
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    # seconds; expiry of a single save is reported, not failed
    save_timeout: float = 120.0
    # seconds between the last window and the final summary
    summary_delay: float = 0.1


def _load_file() -> Dict[str, Any]:
    if CONFIG_PATH.exists():
        try:
            return json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def load_config() -> Dict[str, Any]:
    """Load configuration from disk and environment."""
    cfg = _load_file()
    if os.getenv("BULKNOTE_BASE_URL"):
        cfg["base_url"] = os.getenv("BULKNOTE_BASE_URL")
    if os.getenv("BULKNOTE_TOKEN"):
        cfg["token"] = os.getenv("BULKNOTE_TOKEN")
    if os.getenv("BULKNOTE_MAX_BATCH_SIZE"):
        batch = dict(cfg.get("batch") or {})
        batch["max_batch_size"] = os.getenv("BULKNOTE_MAX_BATCH_SIZE")
        cfg["batch"] = batch
    return cfg


def _write_config(cfg: Dict[str, Any]) -> None:
    CONFIG_PATH.write_text(json.dumps(cfg, ensure_ascii=False, indent=2), encoding="utf-8")


def save_config(base_url: str | None, token: str | None) -> None:
    """Persist configuration to CONFIG_PATH."""
    cfg = _load_file()
    if base_url is not None:
        cfg["base_url"] = base_url.rstrip("/")
    if token is not None:
        cfg["token"] = token
    _write_config(cfg)
    print(f"Saved config to {CONFIG_PATH}")


def get_base_and_token() -> Tuple[str, str]:
    """Return API base URL and token or exit if missing.

    ``base_url`` in config may omit the trailing ``/api`` segment which the
    API expects. Normalize it here so network helpers always receive a
    base URL that already includes ``/api``.
    """
    cfg = load_config()
    base = cfg.get("base_url") or DEFAULT_BASE
    if not base.rstrip("/").endswith("/api"):
        base = base.rstrip("/") + "/api"
    token = cfg.get("token")
    if not token:
        print("Missing token. Run: bulknote auth set --token <TOKEN>", file=sys.stderr)
        sys.exit(2)
    return base, token


def parse_max_batch_size(value: Any) -> int:
    """Return a usable max batch size for a raw config value.

    Anything that is not a finite number falls back to the default, numbers
    are floored and clamped to at least ``MIN_BATCH_SIZE``.
    """
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_BATCH_SIZE
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return DEFAULT_MAX_BATCH_SIZE
    return max(MIN_BATCH_SIZE, int(parsed))


def load_settings() -> BatchSettings:
    """Return :class:`BatchSettings` from the ``batch`` section of the config."""
    raw = load_config().get("batch") or {}
    settings = BatchSettings()
    settings.max_batch_size = parse_max_batch_size(raw.get("max_batch_size", settings.max_batch_size))
    for f in fields(BatchSettings):
        if f.name == "max_batch_size" or f.name not in raw:
            continue
        try:
            value = float(raw[f.name]) if f.type in (float, "float") else int(raw[f.name])
        except (TypeError, ValueError):
            continue
        if value < 0:
            continue
        setattr(settings, f.name, value)
    return settings


def save_settings(**changes: Any) -> BatchSettings:
    """Merge ``changes`` into the stored batch settings and return the result."""
    cfg = _load_file()
    batch = dict(cfg.get("batch") or {})
    for key, value in changes.items():
        if value is not None:
            batch[key] = value
    cfg["batch"] = batch
    _write_config(cfg)
    return load_settings()


def settings_as_dict(settings: BatchSettings) -> Dict[str, Any]:
    return asdict(settings)
