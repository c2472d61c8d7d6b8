"""Rate-limit aware retry around one item's remote call.

Only :class:`~bulknote.core.errors.RateLimited` failures are retried; every
other failure surfaces after the first attempt.  The loop is a small state
machine whose transitions are listed in :data:`TRANSITIONS`; the number of
attempts can never exceed ``max_retries + 1``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

from .errors import BatchError, Cancelled, RateLimited, classify

logger = logging.getLogger(__name__)


class RetryPhase(Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TRANSITIONS: Dict[RetryPhase, FrozenSet[RetryPhase]] = {
    RetryPhase.ATTEMPTING: frozenset({RetryPhase.SUCCEEDED, RetryPhase.FAILED, RetryPhase.BACKOFF}),
    RetryPhase.BACKOFF: frozenset({RetryPhase.ATTEMPTING, RetryPhase.FAILED}),
    RetryPhase.SUCCEEDED: frozenset(),
    RetryPhase.FAILED: frozenset(),
}


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000

    def delay_for(self, attempt: int, hint_ms: Optional[float] = None) -> int:
        """Server hint if positive, else capped exponential backoff."""
        if hint_ms is not None and hint_ms > 0:
            return int(hint_ms)
        return int(min(self.max_delay_ms, self.base_delay_ms * (2 ** attempt)))


@dataclass
class RetryState:
    attempt: int = 0
    last_delay_ms: int = 0
    phase: RetryPhase = RetryPhase.ATTEMPTING

    def advance(self, phase: RetryPhase) -> None:
        if phase not in TRANSITIONS[self.phase]:
            raise RuntimeError(f"illegal retry transition {self.phase.value} -> {phase.value}")
        self.phase = phase


async def cancellable_sleep(delay_ms: float, cancel_event: asyncio.Event | None = None) -> None:
    """Sleep for *delay_ms*, settling as :class:`Cancelled` if *cancel_event* fires."""
    if cancel_event is None:
        await asyncio.sleep(delay_ms / 1000)
        return
    if cancel_event.is_set():
        raise Cancelled("Cancelled before retry")
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay_ms / 1000)
    except asyncio.TimeoutError:
        return
    raise Cancelled("Cancelled while waiting to retry")


Sleep = Callable[[float, Optional[asyncio.Event]], Awaitable[None]]


async def attempt(
    op: Callable[[Any], Awaitable[Any]],
    item: Any,
    *,
    policy: RetryPolicy | None = None,
    on_retry: Callable[[int, int], None] | None = None,
    cancel_event: asyncio.Event | None = None,
    sleep: Sleep = cancellable_sleep,
) -> Any:
    """Run ``op(item)`` and retry rate-limited failures per *policy*.

    Raises the classified :class:`BatchError` of the last failure, or
    :class:`Cancelled` if *cancel_event* fires during a backoff wait.
    ``on_retry(attempt_number, delay_ms)`` fires once before every retry.
    """
    policy = policy or RetryPolicy()
    state = RetryState()
    last_error: BatchError | None = None

    for _ in range(policy.max_retries + 1):
        if state.phase is RetryPhase.BACKOFF:
            state.advance(RetryPhase.ATTEMPTING)
        try:
            result = await op(item)
        except Exception as exc:
            last_error = classify(exc)
        else:
            state.advance(RetryPhase.SUCCEEDED)
            return result

        if not isinstance(last_error, RateLimited) or state.attempt >= policy.max_retries:
            state.advance(RetryPhase.FAILED)
            raise last_error

        state.advance(RetryPhase.BACKOFF)
        delay_ms = policy.delay_for(state.attempt, last_error.retry_after_ms)
        state.attempt += 1
        state.last_delay_ms = delay_ms
        logger.info("rate limited on %r, retry %d in %d ms", item, state.attempt, delay_ms)
        if on_retry is not None:
            on_retry(state.attempt, delay_ms)
        try:
            await sleep(delay_ms, cancel_event)
        except Cancelled:
            state.advance(RetryPhase.FAILED)
            raise

    # unreachable: the last permitted attempt either returns or raises above
    raise last_error or RuntimeError("retry loop exhausted")
