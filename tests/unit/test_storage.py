"""Tests for local JSON storage."""

import asyncio
from datetime import datetime, timedelta, timezone

from focusflow.analytics.aggregator import aggregate, analyze_user
from focusflow.intelligence.providers import HistoricalProvider
from focusflow.intelligence.features import extract_features
from focusflow.models import SessionRecord, SessionType, TaskContext, TaskRecord
from focusflow.storage import LocalStore

START = datetime(2026, 3, 2, tzinfo=timezone.utc)


def _make_task(
    task_id: str,
    day: int = 0,
    category: str = "coding",
    actual: float | None = None,
    completed_hours: float | None = None,
) -> TaskRecord:
    created = START + timedelta(days=day, hours=9)
    completed_at = created + timedelta(hours=completed_hours) if completed_hours is not None else None
    return TaskRecord(
        id=task_id,
        user_id="u1",
        title=f"Task {task_id}",
        category=category,
        created_at=created,
        completed_at=completed_at,
        is_completed=completed_at is not None,
        actual_duration_minutes=actual,
    )


def _make_session(session_id: str, day: int, minutes: float = 25) -> SessionRecord:
    return SessionRecord(
        id=session_id,
        user_id="u1",
        start_time=START + timedelta(days=day, hours=10),
        duration_minutes=minutes,
        session_type=SessionType.FOCUS,
    )


def test_directories_created(tmp_path):
    LocalStore(tmp_path / "data")
    assert (tmp_path / "data" / "tasks").is_dir()
    assert (tmp_path / "data" / "sessions").is_dir()
    assert (tmp_path / "data" / "analytics").is_dir()


# ── Tasks ────────────────────────────────────────────────────


def test_save_and_load_tasks(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [_make_task("t1"), _make_task("t2", day=1)])

    loaded = store.load_tasks("u1")
    assert [t.id for t in loaded] == ["t1", "t2"]
    assert loaded[0].title == "Task t1"
    assert store.load_tasks("someone-else") == []


def test_update_existing_task(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [_make_task("t1"), _make_task("t2")])

    done = _make_task("t1", actual=45, completed_hours=1)
    store.save_tasks("u1", [done])

    loaded = store.load_tasks("u1")
    assert [t.id for t in loaded] == ["t1", "t2"]
    assert loaded[0].is_completed
    assert loaded[0].actual_duration_minutes == 45


def test_tasks_in_range(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [_make_task(f"t{d}", day=d) for d in range(10)])

    found = store.tasks_in_range("u1", START, START + timedelta(days=7))
    assert [t.id for t in found] == [f"t{d}" for d in range(7)]


def test_range_accepts_naive_bounds(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [_make_task("t0")])
    assert store.tasks_in_range("u1", datetime(2026, 3, 1), datetime(2026, 3, 3))


def test_recent_completed_tasks(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [
        _make_task("old", day=0, actual=30, completed_hours=1),
        _make_task("new", day=2, actual=50, completed_hours=1),
        _make_task("open", day=3),
        _make_task("other", day=1, category="review", actual=20, completed_hours=1),
    ])

    recent = store.recent_completed_tasks("u1", "coding", limit=20)
    assert [t.id for t in recent] == ["new", "old"]
    assert [t.id for t in store.recent_completed_tasks("u1", "coding", limit=1)] == ["new"]


def test_store_feeds_historical_provider(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [
        _make_task("a", actual=30, completed_hours=1),
        _make_task("b", day=1, actual=50, completed_hours=1),
    ])
    ctx = TaskContext(title="Another coding task", category="coding", user_id="u1")
    vote = asyncio.run(HistoricalProvider(store).vote(ctx, extract_features(ctx)))
    assert vote.minutes == 40


def test_corrupt_file_reads_as_empty(tmp_path):
    store = LocalStore(tmp_path)
    (tmp_path / "tasks" / "u1.json").write_text("{not json")
    assert store.load_tasks("u1") == []


def test_user_ids_are_sanitized(tmp_path):
    store = LocalStore(tmp_path)
    path = store.save_tasks("../escape", [_make_task("t1")])
    assert path.parent == tmp_path / "tasks"
    assert store.load_tasks("../escape")[0].id == "t1"


# ── Sessions ─────────────────────────────────────────────────


def test_sessions_in_range(tmp_path):
    store = LocalStore(tmp_path)
    store.save_sessions("u1", [_make_session(f"s{d}", d) for d in range(10)])
    store.save_sessions("u1", [_make_session("s0", 0, minutes=50)])

    found = store.sessions_in_range("u1", START, START + timedelta(days=3))
    assert [s.id for s in found] == ["s0", "s1", "s2"]
    assert found[0].duration_minutes == 50


def test_store_feeds_analytics(tmp_path):
    store = LocalStore(tmp_path)
    store.save_tasks("u1", [_make_task("t1", actual=30, completed_hours=1)])
    store.save_sessions("u1", [_make_session("s1", 0), _make_session("s2", 1)])

    snapshot = asyncio.run(analyze_user(store, "u1", START, START + timedelta(days=7)))
    assert snapshot.metrics.total_tasks == 1
    assert snapshot.metrics.total_time_spent == 50


# ── Snapshots ────────────────────────────────────────────────


def test_snapshot_current_and_archives(tmp_path):
    store = LocalStore(tmp_path)
    week1 = aggregate("u1", [], [], START, START + timedelta(days=7))
    week2 = aggregate("u1", [], [], START + timedelta(days=7), START + timedelta(days=14))

    path = store.save_snapshot(week1, kind="weekly")
    store.save_snapshot(week2, kind="weekly")
    store.save_snapshot(week2, kind="daily")

    assert path.name == "week-2026-03-02.json"
    assert store.load_current_snapshot("u1").period_start == week2.period_start
    assert [s.period_start for s in store.load_snapshots("u1", "weekly")] == [
        week1.period_start,
        week2.period_start,
    ]
    assert len(store.load_snapshots("u1", "daily")) == 1


def test_previous_snapshot(tmp_path):
    store = LocalStore(tmp_path)
    week1 = aggregate("u1", [], [], START, START + timedelta(days=7))
    store.save_snapshot(week1, kind="weekly")

    assert store.previous_snapshot("u1", before=START) is None
    found = store.previous_snapshot("u1", before=START + timedelta(days=7))
    assert found.period_start == week1.period_start


def test_missing_snapshots(tmp_path):
    store = LocalStore(tmp_path)
    assert store.load_current_snapshot("u1") is None
    assert store.load_snapshots("u1") == []


def test_first_snapshot_for_new_user(tmp_path):
    store = LocalStore(tmp_path)
    snapshot = aggregate("fresh", [], [], START, START + timedelta(days=7))

    path = store.save_snapshot(snapshot, kind="weekly")

    assert path.exists()
    assert (tmp_path / "analytics" / "fresh" / "current.json").exists()
    assert store.load_current_snapshot("fresh").user_id == "fresh"


def test_previous_snapshot_skips_overlapping_window(tmp_path):
    store = LocalStore(tmp_path)
    week1 = aggregate("u1", [], [], START, START + timedelta(days=7))
    week2 = aggregate("u1", [], [], START + timedelta(days=7), START + timedelta(days=14))
    store.save_snapshot(week1, kind="weekly")
    store.save_snapshot(week2, kind="weekly")

    # A window starting a minute after week2 still overlaps it
    rerun_start = START + timedelta(days=7, minutes=1)
    found = store.previous_snapshot("u1", before=rerun_start)
    assert found.period_start == week1.period_start

    found = store.previous_snapshot("u1", before=START + timedelta(days=14))
    assert found.period_start == week2.period_start
