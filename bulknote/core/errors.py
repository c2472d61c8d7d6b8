"""Error taxonomy of the batch engine.

Remote collaborators raise whatever they like.  :func:`classify` is the one
place where those raw shapes are inspected; everything downstream only looks
at the tagged :class:`BatchError` subclasses defined here.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

RATE_LIMIT_PHRASES = ("rate limit", "rate_limit", "ratelimit", "too many requests")


class BatchError(Exception):
    """Base class for errors that reach a per-item result."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or message


class RateLimited(BatchError):
    """Throttled by the remote side; worth waiting out."""

    def __init__(self, message: str, retry_after_ms: int | None = None, detail: str | None = None) -> None:
        super().__init__(message, detail)
        self.retry_after_ms = retry_after_ms


class RemoteError(BatchError):
    """Permanent failure reported by the remote operation."""

    def __init__(self, message: str, status: int | None = None, detail: str | None = None) -> None:
        super().__init__(message, detail)
        self.status = status


class NotFound(BatchError):
    """The referenced item is missing locally."""


class Cancelled(BatchError):
    """The run was superseded, cancelled or its host torn down."""


class TimedOut(Cancelled):
    """A remote call hit its ceiling; it may still finish in the background."""


class StagingError(BatchError):
    """Filesystem failure while staging or assembling an export."""


class NothingSelected(BatchError):
    """A run was requested for an empty item list."""


class RemoteCallError(Exception):
    """Raw error raised by the HTTP helpers for per-item callers."""

    def __init__(self, status: int | None, message: str, retry_after_ms: int | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.retry_after_ms = retry_after_ms


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def error_message(error: Any) -> str:
    """Return a human readable message for any error-ish value."""
    if isinstance(error, BatchError):
        return error.message or "Unknown error"
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    if isinstance(error, str):
        return error
    if isinstance(error, (int, float, bool)):
        return str(error)
    if isinstance(error, dict):
        for key in ("message", "error", "detail", "details", "description", "statusText"):
            msg = _clean(error.get(key))
            if msg:
                return msg
        status = error.get("status")
        if isinstance(status, int):
            text = _clean(error.get("statusText"))
            return f"HTTP {status}: {text}" if text else f"HTTP {status}"
        try:
            dumped = json.dumps(error, ensure_ascii=False)
        except (TypeError, ValueError):
            dumped = None
        if dumped and dumped != "{}":
            return dumped
    return "Unknown error"


def is_rate_limit(status: int | None, message: str) -> bool:
    if status == 429:
        return True
    lowered = (message or "").lower()
    return any(phrase in lowered for phrase in RATE_LIMIT_PHRASES)


def classify(error: BaseException) -> BatchError:
    """Map a raw exception from a collaborator onto the engine taxonomy."""
    if isinstance(error, asyncio.CancelledError):
        raise error
    if isinstance(error, BatchError):
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        # a collaborator's own timeout; the engine's deadline raises TimedOut itself
        timed_out = RemoteError(f"Request timed out: {error}" if str(error) else "Request timed out")
        timed_out.__cause__ = error
        return timed_out

    status = getattr(error, "status", None)
    if status is None:
        status = getattr(error, "code", None)
    if not isinstance(status, int):
        status = None
    message = getattr(error, "message", None) or error_message(error)

    if is_rate_limit(status, message):
        hint = getattr(error, "retry_after_ms", None)
        if not isinstance(hint, (int, float)) or hint != hint:
            hint = None
        rate_limited = RateLimited(message, retry_after_ms=hint)
        rate_limited.__cause__ = error
        return rate_limited
    remote = RemoteError(message, status=status)
    remote.__cause__ = error
    return remote


def error_detail(error: BatchError, item_id: str) -> str:
    """Return a copyable diagnostic line for a failed item."""
    message = error.message or ""
    lowered = message.lower()
    status = getattr(error, "status", None)
    if status == 500 or "internal server error" in lowered:
        return (
            "HTTP 500 - this note may contain invalid data or the service is "
            f"temporarily unavailable. Note ID: {item_id}"
        )
    if isinstance(error, RateLimited):
        return f"Rate limited - too many requests. Note ID: {item_id}"
    if status in (401, 403) or "unauthorized" in lowered:
        return f"Authentication failed - check the configured token. Note ID: {item_id}"
    if isinstance(error, NotFound):
        return f"Note not found locally; remote call skipped. Note ID: {item_id}"
    if status == 404:
        return f"HTTP 404 - the service does not know this note. Note ID: {item_id}"
    return f"{message} (Note ID: {item_id})"
