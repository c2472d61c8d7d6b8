import asyncio
import pathlib
import sys
import time

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))
from bulknote.core.errors import Cancelled, RateLimited, RemoteCallError, RemoteError
from bulknote.core.retry import (
    RetryPhase,
    RetryPolicy,
    RetryState,
    attempt,
    cancellable_sleep,
)


class FlakyOp:
    """Fails with the given errors in order, then returns ``"ok"``."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self, item):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def _recorder():
    delays = []

    async def fake_sleep(delay_ms, cancel_event=None):
        delays.append(delay_ms)

    return delays, fake_sleep


def test_retry_after_hint_is_used_for_every_retry():
    op = FlakyOp(
        RemoteCallError(429, "Too Many Requests", retry_after_ms=2000),
        RemoteCallError(429, "Too Many Requests", retry_after_ms=2000),
    )
    delays, fake_sleep = _recorder()
    retries = []

    result = asyncio.run(
        attempt(op, "note-x", policy=RetryPolicy(max_retries=2), on_retry=lambda n, d: retries.append((n, d)), sleep=fake_sleep)
    )

    assert result == "ok"
    assert op.calls == 3
    assert delays == [2000, 2000]
    assert retries == [(1, 2000), (2, 2000)]


def test_exponential_backoff_without_hint_then_gives_up():
    op = FlakyOp(*[RemoteCallError(None, "rate limit exceeded") for _ in range(5)])
    delays, fake_sleep = _recorder()

    with pytest.raises(RateLimited):
        asyncio.run(attempt(op, "note", policy=RetryPolicy(max_retries=2), sleep=fake_sleep))

    assert op.calls == 3
    assert delays == [1000, 2000]


def test_non_rate_limited_failure_is_not_retried():
    op = FlakyOp(RemoteCallError(500, "Internal Server Error"))
    delays, fake_sleep = _recorder()
    retries = []

    with pytest.raises(RemoteError) as exc:
        asyncio.run(attempt(op, "note", on_retry=lambda n, d: retries.append(n), sleep=fake_sleep))

    assert exc.value.status == 500
    assert op.calls == 1
    assert delays == []
    assert retries == []


def test_zero_hint_falls_back_to_backoff():
    op = FlakyOp(RemoteCallError(429, "slow down", retry_after_ms=0))
    delays, fake_sleep = _recorder()
    asyncio.run(attempt(op, "note", policy=RetryPolicy(base_delay_ms=250), sleep=fake_sleep))
    assert delays == [250]


def test_delay_is_capped():
    policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=10000)
    assert policy.delay_for(0) == 1000
    assert policy.delay_for(3) == 8000
    assert policy.delay_for(4) == 10000
    assert policy.delay_for(4, hint_ms=30000) == 30000


def test_cancellable_sleep_settles_as_cancelled():
    async def main():
        event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, event.set)
        started = time.monotonic()
        with pytest.raises(Cancelled):
            await cancellable_sleep(5000, event)
        return time.monotonic() - started

    assert asyncio.run(main()) < 1


def test_cancellable_sleep_completes_without_cancel():
    async def main():
        await cancellable_sleep(10, asyncio.Event())

    asyncio.run(main())


def test_cancel_during_backoff_stops_retrying():
    op = FlakyOp(RemoteCallError(429, "Too Many Requests", retry_after_ms=5000))

    async def main():
        event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, event.set)
        await attempt(op, "note", cancel_event=event)

    with pytest.raises(Cancelled):
        asyncio.run(main())
    assert op.calls == 1


def test_illegal_transition_rejected():
    state = RetryState()
    state.advance(RetryPhase.SUCCEEDED)
    with pytest.raises(RuntimeError):
        state.advance(RetryPhase.ATTEMPTING)
