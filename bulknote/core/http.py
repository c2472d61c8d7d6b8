"""Minimal HTTP helpers for the CLI.

The implementation uses :mod:`urllib` from the Python standard library to
avoid external dependencies.  Functions are intentionally small so they can
be modified easily if the API changes.
"""

from __future__ import annotations

import json
import sys
import time
from email.utils import parsedate_to_datetime
from typing import Any, Dict
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import RemoteCallError


def http_json(
    method: str,
    url: str,
    token: str,
    payload: Dict[str, Any] | None = None,
    *,
    handle_error: bool = True,
    timeout: float = 60,
) -> Dict[str, Any] | bytes:
    """Perform an HTTP request and return parsed JSON or raw bytes.

    By default HTTP errors are handled via :func:`_handle_http_error` which
    prints a message and exits the program.  Batch callers deal with errors on
    a per-item basis; for those ``handle_error`` can be set to ``False`` so a
    :class:`RemoteCallError` carrying the status and any ``Retry-After`` hint
    is raised instead.
    """

    headers = {"Accept": "application/json", "Authorization": f"Bearer {token}"}
    data = None
    if payload is not None:
        # JSON body for POST/PUT requests
        headers["Content-Type"] = "application/json"
        data = json.dumps(payload).encode("utf-8")
    req = Request(url=url, method=method.upper(), headers=headers, data=data)
    try:
        with urlopen(req, timeout=timeout) as resp:
            ctype = (resp.headers.get("Content-Type") or "").lower()
            raw = resp.read()
            if "application/json" in ctype:
                try:
                    return json.loads(raw.decode("utf-8"))
                except ValueError:
                    # Return raw bytes if the body is not valid JSON
                    return raw
            return raw
    except HTTPError as e:
        if handle_error:
            _handle_http_error(e)
        raise error_from_http(e) from e
    except URLError as e:
        if handle_error:
            print(f"Network error: {e.reason}", file=sys.stderr)
            sys.exit(2)
        raise RemoteCallError(None, f"Network error: {e.reason}") from e


def parse_retry_after(value: str | None, now: float | None = None) -> int | None:
    """Return a ``Retry-After`` header value in milliseconds.

    Both forms are accepted: delta seconds (``"2"``) and an HTTP date.
    Values in the past clamp to ``0``; anything unparsable yields ``None``.
    """
    if not value or not value.strip():
        return None
    value = value.strip()
    try:
        return max(0, int(float(value) * 1000))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    now = time.time() if now is None else now
    return max(0, int((when.timestamp() - now) * 1000))


def _error_text(e: HTTPError) -> str:
    try:
        body = e.read().decode("utf-8", errors="ignore")
    except (OSError, AttributeError):
        body = ""
    message = body or (e.reason if isinstance(e.reason, str) else "") or f"HTTP {e.code}"
    try:
        data = json.loads(body)
        if isinstance(data, dict):
            message = data.get("error") or data.get("message") or message
    except ValueError:
        pass
    return str(message)


def error_from_http(e: HTTPError) -> RemoteCallError:
    """Convert an :class:`HTTPError` into a :class:`RemoteCallError`."""
    retry_after_ms = None
    if e.code == 429 and e.headers is not None:
        retry_after_ms = parse_retry_after(e.headers.get("Retry-After"))
    return RemoteCallError(e.code, _error_text(e), retry_after_ms)


def _handle_http_error(e: HTTPError) -> None:
    message = _error_text(e)
    if e.code == 401:
        print(f"Authentication failed: {message}", file=sys.stderr)
    elif e.code == 403:
        print(f"Forbidden: {message} (check the token permissions)", file=sys.stderr)
    else:
        print(f"[HTTP {e.code}] {message}", file=sys.stderr)
    sys.exit(2)
