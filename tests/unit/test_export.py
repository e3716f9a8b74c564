"""Tests for JSON/CSV export."""

import csv
import io
import json
from datetime import datetime, timedelta

import pytest

from focusflow.analytics.aggregator import aggregate
from focusflow.export import (
    build_export_bundle,
    export_data,
    export_filename,
    export_to_file,
    sessions_to_csv,
    snapshot_to_json,
    tasks_to_csv,
)
from focusflow.intelligence.engine import fallback_result
from focusflow.models import SessionRecord, SessionType, TaskContext, TaskRecord

START = datetime(2026, 3, 2)
END = START + timedelta(days=7)


def _make_task(task_id: str, completed: bool = False) -> TaskRecord:
    return TaskRecord(
        id=task_id,
        title=f"Fix bug, {task_id}",
        category="coding",
        priority="high",
        created_at=START,
        completed_at=START + timedelta(hours=2) if completed else None,
        is_completed=completed,
        estimated_duration_minutes=60,
        actual_duration_minutes=75 if completed else None,
        intelligence=fallback_result(TaskContext(title=task_id, category="coding")),
    )


def _make_session(session_id: str, minutes: float = 25) -> SessionRecord:
    return SessionRecord(
        id=session_id,
        task_id="t1",
        start_time=START + timedelta(hours=9),
        duration_minutes=minutes,
        session_type=SessionType.FOCUS,
    )


# ── Tasks CSV ────────────────────────────────────────────────


def test_tasks_csv():
    content = tasks_to_csv([_make_task("t1", completed=True), _make_task("t2")])
    rows = list(csv.reader(io.StringIO(content)))

    assert rows[0] == [
        "Title", "Category", "Priority", "Status",
        "Created", "Completed", "Estimated Duration", "Actual Duration",
    ]
    assert len(rows) == 3
    # Commas in titles survive quoting
    assert rows[1][0] == "Fix bug, t1"
    assert rows[1][3] == "completed"
    assert rows[1][7] == "75.0"
    assert rows[2][3] == "open"
    assert rows[2][5] == ""
    assert rows[2][7] == ""


def test_tasks_csv_empty():
    rows = list(csv.reader(io.StringIO(tasks_to_csv([]))))
    assert len(rows) == 1


# ── Sessions CSV ─────────────────────────────────────────────


def test_sessions_csv():
    content = sessions_to_csv([_make_session("s1"), _make_session("s2", 50)])
    rows = list(csv.DictReader(io.StringIO(content)))

    assert len(rows) == 2
    assert rows[0]["session_type"] == "focus"
    assert rows[1]["duration_minutes"] == "50.0"
    assert rows[0]["task_id"] == "t1"


# ── JSON ─────────────────────────────────────────────────────


def test_snapshot_json():
    snapshot = aggregate("u1", [], [], START, END)
    data = json.loads(snapshot_to_json(snapshot))
    assert data["user_id"] == "u1"
    assert data["metrics"]["total_tasks"] == 0


def test_export_bundle_summary():
    tasks = [_make_task("t1", completed=True), _make_task("t2")]
    sessions = [_make_session("s1"), _make_session("s2", 50)]
    bundle = build_export_bundle("u1", tasks, sessions, [], START, END)

    assert bundle["user"] == "u1"
    assert bundle["summary"] == {
        "total_tasks": 2,
        "completed_tasks": 1,
        "total_sessions": 2,
        "total_time_spent": 75,
    }
    # Intelligence is left out to keep the export flat
    assert "intelligence" not in bundle["tasks"][0]


def test_export_data_json_is_parseable():
    snapshot = aggregate("u1", [], [], START, END)
    content = export_data("u1", [_make_task("t1")], [], [snapshot], START, END, fmt="json")
    data = json.loads(content)
    assert data["period"]["start"].startswith("2026-03-02")
    assert len(data["analytics"]) == 1


def test_export_data_csv_is_task_table():
    content = export_data("u1", [_make_task("t1")], [], [], START, END, fmt="csv")
    assert content.startswith("Title,Category")


def test_export_data_rejects_unknown_format():
    with pytest.raises(ValueError, match="Unsupported export format"):
        export_data("u1", [], [], [], START, END, fmt="xlsx")


# ── Files ────────────────────────────────────────────────────


def test_export_filename():
    name = export_filename("u1", "csv", now=datetime(2026, 3, 9, 14, 30, 0))
    assert name == "focusflow-export-u1-20260309-143000.csv"


def test_export_to_file(tmp_path):
    path = export_to_file("a,b\n1,2\n", tmp_path / "nested" / "out.csv")
    assert path.exists()
    assert path.read_text() == "a,b\n1,2\n"
