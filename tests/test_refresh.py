import threading
from datetime import timedelta

import pytest

import refresh
from errors import PipelineError, RefreshInProgressError
from refresh import RefreshOrchestrator, RefreshState
from snapshot_store import SnapshotStore
from tests.conftest import FakeFetcher, raw_job


@pytest.fixture
def store(clock):
    return SnapshotStore(clock=clock)


def make_orchestrator(store, fetcher, plan, clock, pacer, **kwargs):
    return RefreshOrchestrator(
        store=store,
        fetcher=fetcher,
        plan=plan,
        pacer=pacer,
        clock=clock,
        max_age=timedelta(days=7),
        new_threshold=timedelta(hours=6),
        **kwargs,
    )


def test_refresh_publishes_sorted_deduplicated_jobs(store, plan, clock, no_pacing):
    fetcher = FakeFetcher({
        "alpha": [raw_job(title="Older", age=timedelta(days=1)), raw_job(title="Newest", age=timedelta(minutes=10))],
        "beta": [raw_job(title="Newest", age=timedelta(minutes=10))],
        "gamma": [raw_job(title="Stale", age=timedelta(days=9))],
    })
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    result = orchestrator.trigger_refresh()

    assert result.status == "success"
    assert result.fetched == 4
    assert [j.title for j in store.snapshot.jobs] == ["Newest", "Older"]
    assert store.snapshot.total_fetched == 4
    assert store.current_stats().total == 2
    assert store.current_stats().new == 1
    assert fetcher.calls == ["alpha", "beta", "gamma"]
    assert orchestrator.state is RefreshState.IDLE


def test_partial_failure_isolated(store, plan, clock, no_pacing):
    fetcher = FakeFetcher({
        "alpha": [raw_job(title="From Alpha")],
        "beta": RuntimeError("upstream exploded"),
        "gamma": [raw_job(title="From Gamma")],
    })
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    result = orchestrator.trigger_refresh()

    assert {j.title for j in store.snapshot.jobs} == {"From Alpha", "From Gamma"}
    errors = [e for e in store.fetch_log() if e.status == "error"]
    assert [e.category for e in errors] == ["beta"]
    assert "upstream exploded" in errors[0].error
    assert result.errors == ["beta: upstream exploded"]
    assert [e.category for e in store.fetch_log() if e.status == "success"] == ["alpha", "gamma"]


def test_reingesting_same_posting_is_idempotent(store, plan, clock, no_pacing):
    record = raw_job(age=timedelta(hours=2))
    fetcher = FakeFetcher({"alpha": [record], "beta": [record]})
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    orchestrator.trigger_refresh()
    orchestrator.trigger_refresh()

    assert len(store.snapshot.jobs) == 1


def test_previous_jobs_carry_over_and_age_out(store, plan, clock, no_pacing):
    results = {"alpha": [raw_job(title="Carried", age=timedelta(hours=5))]}
    fetcher = FakeFetcher(results)
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    orchestrator.trigger_refresh()
    assert store.snapshot.jobs[0].is_new is True

    results.clear()
    clock.advance(timedelta(hours=2))
    orchestrator.trigger_refresh()
    carried = store.snapshot.jobs[0]
    assert carried.title == "Carried"
    assert carried.is_new is False
    assert store.current_stats().new == 0

    clock.advance(timedelta(days=7))
    orchestrator.trigger_refresh()
    assert store.snapshot.jobs == ()


def test_pipeline_failure_keeps_previous_snapshot(store, plan, clock, no_pacing, monkeypatch):
    fetcher = FakeFetcher({"alpha": [raw_job()]})
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)
    orchestrator.trigger_refresh()
    before = store.snapshot

    def broken(jobs):
        raise RuntimeError("dedup bug")

    monkeypatch.setattr(refresh, "deduplicate_jobs", broken)
    with pytest.raises(PipelineError, match="dedup bug"):
        orchestrator.trigger_refresh()

    assert store.snapshot.jobs == before.jobs
    assert store.snapshot.last_updated == before.last_updated
    assert orchestrator.state is RefreshState.IDLE
    assert not orchestrator.is_running


def test_second_trigger_is_rejected_while_running(store, plan, clock, no_pacing):
    started = threading.Event()
    release = threading.Event()

    def slow():
        started.set()
        release.wait(timeout=5)
        return [raw_job()]

    fetcher = FakeFetcher({"alpha": slow})
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    worker = threading.Thread(target=orchestrator.trigger_refresh)
    worker.start()
    assert started.wait(timeout=5)

    assert orchestrator.state is RefreshState.FETCHING
    with pytest.raises(RefreshInProgressError):
        orchestrator.trigger_refresh()
    # Readers still see the pre-refresh snapshot
    assert store.snapshot.jobs == ()

    release.set()
    worker.join(timeout=5)
    assert len(store.snapshot.jobs) == 1
    assert orchestrator.state is RefreshState.IDLE


def test_run_scheduled_swallows_failures(store, plan, clock, no_pacing, monkeypatch):
    orchestrator = make_orchestrator(store, FakeFetcher(), plan, clock, no_pacing)

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(refresh, "remove_expired_jobs", broken)
    orchestrator.run_scheduled()
    assert store.snapshot.last_updated is None


def test_pacing_between_categories(store, plan, clock):
    sleeps = []
    ticks = [0.0]

    def fake_sleep(seconds):
        sleeps.append(seconds)
        ticks[0] += seconds

    pacer = refresh.Pacer(1.0, sleep=fake_sleep, clock=lambda: ticks[0])
    orchestrator = make_orchestrator(store, FakeFetcher(), plan, clock, pacer)

    orchestrator.trigger_refresh()

    assert sleeps == [1.0, 1.0]


def test_bounded_worker_pool_isolates_failures(store, plan, clock, no_pacing):
    fetcher = FakeFetcher({
        "alpha": [raw_job(title="A", age=timedelta(hours=1))],
        "beta": [raw_job(title="B", age=timedelta(hours=1))],
        "gamma": RuntimeError("down"),
    })
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing, fetch_workers=3)

    result = orchestrator.trigger_refresh()

    assert sorted(j.title for j in store.snapshot.jobs) == ["A", "B"]
    assert result.errors == ["gamma: down"]


def test_malformed_record_does_not_break_refresh(store, plan, clock, no_pacing):
    fetcher = FakeFetcher({"alpha": [raw_job(title="Good"), {"company": "not-a-dict", "created": 5, "title": ["x"]}]})
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    orchestrator.trigger_refresh()

    assert [j.title for j in store.snapshot.jobs] == ["Good"]


def test_unrepresentable_salary_does_not_break_refresh(store, plan, clock, no_pacing):
    fetcher = FakeFetcher({
        "alpha": [raw_job(title="Good")],
        "beta": [raw_job(title="Huge Salary", salary_min=10**400)],
    })
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    result = orchestrator.trigger_refresh()

    assert result.status == "success"
    by_title = {j.title: j for j in store.snapshot.jobs}
    assert set(by_title) == {"Good", "Huge Salary"}
    assert by_title["Huge Salary"].salary_min is None


def test_unexpected_record_error_is_skipped(store, plan, clock, no_pacing, monkeypatch):
    real_normalize = refresh.normalize_job

    def flaky(raw, category, now):
        if raw["title"] == "Bad":
            raise OverflowError("int too large to convert to float")
        return real_normalize(raw, category, now)

    monkeypatch.setattr(refresh, "normalize_job", flaky)
    fetcher = FakeFetcher({"alpha": [raw_job(title="Good")], "beta": [raw_job(title="Bad")]})
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)

    orchestrator.trigger_refresh()
    orchestrator.run_scheduled()

    assert [j.title for j in store.snapshot.jobs] == ["Good"]


class BrokenPacer:
    def reset(self):
        pass

    def wait(self):
        raise RuntimeError("clock went backwards")


def test_fetch_phase_failure_surfaces_as_pipeline_error(store, plan, clock, no_pacing):
    fetcher = FakeFetcher({"alpha": [raw_job()]})
    orchestrator = make_orchestrator(store, fetcher, plan, clock, no_pacing)
    orchestrator.trigger_refresh()
    before = store.snapshot

    orchestrator.pacer = BrokenPacer()
    with pytest.raises(PipelineError, match="clock went backwards"):
        orchestrator.trigger_refresh()

    assert store.snapshot is before
    assert orchestrator.state is RefreshState.IDLE
    assert not orchestrator.is_running

    # Scheduled runs log the same failure instead of raising
    orchestrator.run_scheduled()
    assert store.snapshot is before
