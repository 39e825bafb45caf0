from __future__ import annotations

import threading
import time

import pytest


def _batch(n: int):
    from watch_history_enricher.models import RawEntry

    return [RawEntry(title=f"Title {i}") for i in range(n)]


def _resolved(entry):
    from watch_history_enricher.models import MediaIds, ResolvedEntry

    return ResolvedEntry(
        raw=entry,
        ids=MediaIds(simkl=entry.title.rsplit(" ", 1)[-1]),
        kind="movie",
        canonical_title=entry.title,
        year=None,
        provider="simkl",
    )


def test_bounded_concurrency_overlaps_lookups():
    from watch_history_enricher.pipelines.scheduler import ConcurrencyScheduler

    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def resolve(entry, _cancel):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.05)
        with lock:
            state["active"] -= 1
        return _resolved(entry)

    batch = _batch(20)
    t0 = time.monotonic()
    outcomes = ConcurrencyScheduler(max_in_flight=4).run(batch, resolve)
    elapsed = time.monotonic() - t0

    assert len(outcomes) == 20
    assert state["peak"] <= 4
    # 20 entries x 0.05s over 4 workers is 0.25s; serial would be 1.0s.
    assert elapsed >= 0.24
    assert elapsed < 0.9


def test_every_entry_yields_exactly_one_outcome_in_batch_order():
    from watch_history_enricher.errors import CANCELLED
    from watch_history_enricher.models import FailedEntry
    from watch_history_enricher.pipelines.scheduler import ConcurrencyScheduler

    def resolve(entry, _cancel):
        n = int(entry.title.rsplit(" ", 1)[-1])
        if n % 3 == 0:
            return FailedEntry(raw=entry, reason="AllProvidersFailed")
        return _resolved(entry)

    batch = _batch(10)
    outcomes = ConcurrencyScheduler(max_in_flight=3).run(batch, resolve)

    assert [o.raw for o in outcomes] == batch
    assert sum(isinstance(o, FailedEntry) for o in outcomes) == 4
    assert not any(getattr(o, "reason", "") == CANCELLED for o in outcomes)


def test_cancel_marks_unstarted_entries_cancelled():
    from watch_history_enricher.errors import CANCELLED, RunCancelled
    from watch_history_enricher.models import FailedEntry, ResolvedEntry
    from watch_history_enricher.pipelines.scheduler import ConcurrencyScheduler

    cancel = threading.Event()
    started: list[str] = []

    def resolve(entry, cancel_):
        started.append(entry.title)
        if len(started) == 2:
            cancel_.set()
            raise RunCancelled("interrupted during backoff")
        return _resolved(entry)

    outcomes = ConcurrencyScheduler(max_in_flight=1).run(_batch(5), resolve, cancel=cancel)

    assert started == ["Title 0", "Title 1"]
    assert isinstance(outcomes[0], ResolvedEntry)
    assert all(isinstance(o, FailedEntry) and o.reason == CANCELLED for o in outcomes[1:])


def test_empty_batch_and_invalid_bound():
    from watch_history_enricher.pipelines.scheduler import ConcurrencyScheduler

    assert ConcurrencyScheduler(max_in_flight=2).run([], lambda e, c: pytest.fail("unused")) == []
    with pytest.raises(ValueError):
        ConcurrencyScheduler(max_in_flight=0)


def test_unexpected_resolver_crash_propagates():
    from watch_history_enricher.pipelines.scheduler import ConcurrencyScheduler

    def resolve(entry, _cancel):
        raise KeyError("bug")

    with pytest.raises(RuntimeError) as ei:
        ConcurrencyScheduler(max_in_flight=2).run(_batch(3), resolve)
    assert isinstance(ei.value.__cause__, KeyError)


def test_keyboard_interrupt_cancels_pending_entries(monkeypatch, caplog):
    from watch_history_enricher.errors import CANCELLED
    from watch_history_enricher.pipelines import scheduler as scheduler_mod
    from watch_history_enricher.pipelines.scheduler import ConcurrencyScheduler

    def interrupted(_futures):
        raise KeyboardInterrupt

    monkeypatch.setattr(scheduler_mod, "as_completed", interrupted)

    def resolve(entry, _cancel):
        time.sleep(0.05)
        return _resolved(entry)

    cancel = threading.Event()
    outcomes = ConcurrencyScheduler(max_in_flight=1).run(_batch(5), resolve, cancel=cancel)

    assert cancel.is_set()
    assert len(outcomes) == 5
    assert all(o.reason == CANCELLED for o in outcomes[1:])
    assert "Interrupted: cancelling" in caplog.text
