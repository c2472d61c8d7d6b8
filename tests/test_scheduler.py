import asyncio
import pathlib
import sys

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))
from bulknote.core.errors import RemoteError
from bulknote.core.lifecycle import LifecycleGuard
from bulknote.core.scheduler import BatchScheduler, batch_size_for, windows


def test_windows_split():
    ids = [str(i) for i in range(7)]
    assert [len(w) for w in windows(ids, 3)] == [3, 3, 1]
    assert windows([], 3) == []
    with pytest.raises(ValueError):
        windows(ids, 0)


@pytest.mark.parametrize(
    "total, configured, expected",
    [(7, 3, 3), (2, 20, 2), (50, 20, 20), (5, 0, 1), (0, 20, 1)],
)
def test_batch_size_for(total, configured, expected):
    assert batch_size_for(total, configured) == expected


def _collect(scheduler, ids, op, handle=None):
    async def main():
        return [o async for o in scheduler.run(ids, op, handle=handle)]

    return asyncio.run(main())


def test_window_barrier_and_concurrency_bound():
    log = []

    async def op(item_id):
        log.append(("start", item_id))
        # later ids in a window finish first
        await asyncio.sleep(0.01 * (10 - int(item_id)))
        log.append(("end", item_id))
        return item_id

    scheduler = BatchScheduler(3)
    outcomes = _collect(scheduler, [str(i) for i in range(7)], op)

    assert sorted(o.item_id for o in outcomes) == [str(i) for i in range(7)]
    assert all(o.ok for o in outcomes)
    assert scheduler.windows_started == 3
    assert scheduler.max_in_flight <= 3

    # nothing of window 2 starts before all of window 1 ended
    first_start_w2 = log.index(("start", "3"))
    for item_id in ("0", "1", "2"):
        assert log.index(("end", item_id)) < first_start_w2
    # within a window, outcomes are yielded in completion order
    assert [o.item_id for o in outcomes[:3]] == ["2", "1", "0"]


def test_failures_are_classified_per_item():
    async def op(item_id):
        if item_id == "b":
            raise KeyError(item_id)
        if item_id == "c":
            raise RuntimeError("boom")
        return item_id.upper()

    outcomes = {o.item_id: o for o in _collect(BatchScheduler(2), ["a", "b", "c"], op)}
    assert outcomes["a"].payload == "A"
    assert isinstance(outcomes["b"].error, RemoteError)
    assert isinstance(outcomes["c"].error, RemoteError)
    assert outcomes["c"].error.message == "boom"


def test_stale_handle_stops_before_next_window():
    async def main():
        guard = LifecycleGuard()
        handle = guard.start_run()
        scheduler = BatchScheduler(2)
        seen = []

        async def op(item_id):
            return item_id

        async for outcome in scheduler.run(["1", "2", "3", "4", "5"], op, handle=handle):
            seen.append(outcome.item_id)
            if len(seen) == 2:
                guard.start_run()
        return scheduler, seen

    scheduler, seen = asyncio.run(main())
    assert sorted(seen) == ["1", "2"]
    assert scheduler.windows_started == 1


def test_zero_batch_size_rejected():
    with pytest.raises(ValueError):
        BatchScheduler(0)
