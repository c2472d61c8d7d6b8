import asyncio
import pathlib
import sys

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))
from bulknote.core.errors import (
    NotFound,
    RateLimited,
    RemoteCallError,
    RemoteError,
    classify,
    error_detail,
    error_message,
)


class StatusError(Exception):
    def __init__(self, status, message):
        super().__init__(message)
        self.status = status


def test_classify_rate_limits():
    by_status = classify(RemoteCallError(429, "slow down", retry_after_ms=3000))
    assert isinstance(by_status, RateLimited)
    assert by_status.retry_after_ms == 3000
    assert isinstance(by_status.__cause__, RemoteCallError)

    by_text = classify(RuntimeError("Rate limit exceeded for workspace"))
    assert isinstance(by_text, RateLimited)
    assert by_text.retry_after_ms is None


def test_classify_other_failures():
    remote = classify(StatusError(500, "Internal Server Error"))
    assert isinstance(remote, RemoteError)
    assert remote.status == 500


def test_remote_404_is_not_a_local_miss():
    error = classify(RemoteCallError(404, "Document not found"))
    assert isinstance(error, RemoteError)
    assert not isinstance(error, NotFound)
    assert error.status == 404
    detail = error_detail(error, "n1")
    assert detail.startswith("HTTP 404")
    assert "locally" not in detail
    assert "Note ID: n1" in detail


def test_lookup_errors_from_collaborators_are_remote_errors():
    assert isinstance(classify(IndexError("list index out of range")), RemoteError)
    assert isinstance(classify(KeyError("data")), RemoteError)


def test_collaborator_timeout_is_a_failure():
    error = classify(TimeoutError("The read operation timed out"))
    assert type(error) is RemoteError
    assert error.message == "Request timed out: The read operation timed out"
    assert type(classify(asyncio.TimeoutError())) is RemoteError


def test_classify_passes_tagged_errors_and_propagates_cancellation():
    tagged = NotFound("missing")
    assert classify(tagged) is tagged
    with pytest.raises(asyncio.CancelledError):
        classify(asyncio.CancelledError())


@pytest.mark.parametrize(
    "value, expected",
    [
        ("plain", "plain"),
        ({"error": "Bad token"}, "Bad token"),
        ({"status": 502}, "HTTP 502"),
        ({"foo": 1}, '{"foo": 1}'),
        ({}, "Unknown error"),
        (None, "Unknown error"),
        (ValueError(), "ValueError"),
    ],
)
def test_error_message(value, expected):
    assert error_message(value) == expected


def test_error_detail_variants():
    assert error_detail(RemoteError("Internal Server Error", 500), "n1").startswith("HTTP 500")
    assert "Rate limited" in error_detail(RateLimited("Too Many Requests"), "n1")
    assert "Authentication failed" in error_detail(RemoteError("Unauthorized", 401), "n1")
    assert error_detail(RemoteError("weird", 418), "n1") == "weird (Note ID: n1)"
