import pathlib
import sys
from datetime import datetime, timezone
from io import BytesIO
from urllib.error import HTTPError, URLError

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))
from bulknote.core.errors import RemoteCallError
from bulknote.core.http import http_json, parse_retry_after


def test_http_json_forbidden(monkeypatch, capsys):
    def fake_urlopen(req, timeout=60):
        body = b'{"ok":false,"error":"Unauthorized"}'
        raise HTTPError(req.full_url, 403, "Forbidden", None, BytesIO(body))

    monkeypatch.setattr("bulknote.core.http.urlopen", fake_urlopen)
    with pytest.raises(SystemExit) as exc:
        http_json("GET", "https://example/api", "token")
    assert exc.value.code == 2
    err = capsys.readouterr().err
    assert "Forbidden" in err
    assert "Unauthorized" in err


def test_http_json_rate_limited_raises_with_hint(monkeypatch):
    def fake_urlopen(req, timeout=60):
        body = b'{"error":"Too Many Requests"}'
        raise HTTPError(req.full_url, 429, "Too Many Requests", {"Retry-After": "2"}, BytesIO(body))

    monkeypatch.setattr("bulknote.core.http.urlopen", fake_urlopen)
    with pytest.raises(RemoteCallError) as exc:
        http_json("POST", "https://example/api/notes.saveToService", "token", {}, handle_error=False)
    assert exc.value.status == 429
    assert exc.value.retry_after_ms == 2000
    assert exc.value.message == "Too Many Requests"


def test_http_json_network_error_per_item(monkeypatch):
    def fake_urlopen(req, timeout=60):
        raise URLError("connection refused")

    monkeypatch.setattr("bulknote.core.http.urlopen", fake_urlopen)
    with pytest.raises(RemoteCallError) as exc:
        http_json("POST", "https://example/api", "token", {}, handle_error=False)
    assert exc.value.status is None
    assert "connection refused" in exc.value.message


def test_parse_retry_after_forms():
    assert parse_retry_after("2") == 2000
    assert parse_retry_after("0.5") == 500
    assert parse_retry_after("") is None
    assert parse_retry_after(None) is None
    assert parse_retry_after("soon") is None

    when = datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc).timestamp()
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=when - 5) == 5000
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=when + 5) == 0
