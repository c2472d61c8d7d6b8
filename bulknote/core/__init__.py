"""Core utilities for bulknote."""

from .config import (
    CONFIG_PATH,
    CACHE_PATH,
    DEFAULT_BASE,
    API_MAX_LIMIT,
    BatchSettings,
    load_config,
    save_config,
    get_base_and_token,
    load_settings,
    save_settings,
    settings_as_dict,
)
from .http import http_json, parse_retry_after
from .errors import (
    BatchError,
    RateLimited,
    RemoteError,
    NotFound,
    Cancelled,
    TimedOut,
    StagingError,
    NothingSelected,
    RemoteCallError,
    classify,
    error_message,
    error_detail,
)
from .utils import (
    fetch_all_concurrent,
    format_rows,
    safe_name,
    ensure_text,
    sort_notes_by_date,
    tqdm,
)
from .cache import load_cache, save_cache, list_notes, list_folders
from .selection import ALL, ORPHANS, resolve, resolve_view, folder_index, folder_label
from .results import ItemStatus, WorkItem, OperationResult, ResultAggregator, Summary
from .engine import BatchEngine
from .exporter import ExportOutcome, export_notes, render_note, NOTES_PREFIX, TRANSCRIPTS_PREFIX
from . import api

__all__ = [
    "CONFIG_PATH", "CACHE_PATH", "DEFAULT_BASE", "API_MAX_LIMIT",
    "BatchSettings", "load_config", "save_config", "get_base_and_token",
    "load_settings", "save_settings", "settings_as_dict",
    "http_json", "parse_retry_after",
    "BatchError", "RateLimited", "RemoteError", "NotFound", "Cancelled", "TimedOut",
    "StagingError", "NothingSelected", "RemoteCallError",
    "classify", "error_message", "error_detail",
    "fetch_all_concurrent",
    "format_rows",
    "safe_name",
    "ensure_text",
    "sort_notes_by_date",
    "tqdm",
    "load_cache", "save_cache", "list_notes", "list_folders",
    "ALL", "ORPHANS", "resolve", "resolve_view", "folder_index", "folder_label",
    "ItemStatus", "WorkItem", "OperationResult", "ResultAggregator", "Summary",
    "BatchEngine",
    "ExportOutcome", "export_notes", "render_note", "NOTES_PREFIX", "TRANSCRIPTS_PREFIX",
    "api",
]
