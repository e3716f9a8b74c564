"""Tests for the command-line interface."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from focusflow.cli.main import cli
from focusflow.storage import LocalStore


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("FOCUSFLOW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("FOCUSFLOW_LLM_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("FOCUSFLOW_BATCH_PAUSE", "0")
    return CliRunner()


def _import_file(tmp_path):
    now = datetime.now(timezone.utc)
    payload = {
        "tasks": [
            {"id": "t1", "title": "Implement OAuth integration", "category": "coding",
             "priority": "high", "created_at": (now - timedelta(days=1)).isoformat()},
            {"id": "t2", "title": "Write release notes", "category": "documentation",
             "created_at": (now - timedelta(days=2)).isoformat(),
             "completed_at": (now - timedelta(days=1)).isoformat(), "is_completed": True,
             "estimated_duration_minutes": 30, "actual_duration_minutes": 40},
        ],
        "sessions": [
            {"id": "s1", "task_id": "t2", "start_time": (now - timedelta(days=1)).isoformat(),
             "duration_minutes": 25},
        ],
    }
    path = tmp_path / "import.json"
    path.write_text(json.dumps(payload))
    return path


def test_status(runner):
    result = runner.invoke(cli, ["status"])
    assert result.exit_code == 0
    assert "FocusFlow Status" in result.output
    assert "Not set" in result.output


def test_estimate_and_save(runner, tmp_path):
    result = runner.invoke(cli, [
        "estimate", "Implement OAuth integration",
        "-d", "Add secure login with refresh tokens",
        "-c", "coding", "-p", "high", "--save",
    ])
    assert result.exit_code == 0
    assert "66 min" in result.output

    (task,) = LocalStore(tmp_path).load_tasks("local")
    assert task.intelligence.estimated_duration == 66


def test_import_then_batch_next_and_insights(runner, tmp_path):
    result = runner.invoke(cli, ["import", str(_import_file(tmp_path))])
    assert result.exit_code == 0
    assert "Imported 2 tasks and 1 sessions" in result.output

    result = runner.invoke(cli, ["batch"])
    assert result.exit_code == 0
    assert "Estimated 1 tasks" in result.output

    result = runner.invoke(cli, ["next"])
    assert result.exit_code == 0
    assert "Implement" in result.output

    result = runner.invoke(cli, ["analytics", "--period", "weekly"])
    assert result.exit_code == 0
    assert LocalStore(tmp_path).load_current_snapshot("local") is not None

    result = runner.invoke(cli, ["insights"])
    assert result.exit_code == 0
    assert "PRODUCTIVITY INSIGHTS" in result.output


def test_import_rejects_bad_file(runner, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"tasks": [{"title": "no id or date"}]}))
    result = runner.invoke(cli, ["import", str(path)])
    assert result.exit_code == 1
    assert "Could not import" in result.output


def test_export_csv(runner, tmp_path):
    runner.invoke(cli, ["import", str(_import_file(tmp_path))])
    out = tmp_path / "out.csv"

    result = runner.invoke(cli, ["export", "--format", "csv", "-o", str(out)])
    assert result.exit_code == 0
    assert out.read_text().startswith("Title,Category")


def test_import_rejects_non_object_entries(runner, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"tasks": ["just a string"]}))
    result = runner.invoke(cli, ["import", str(path)])
    assert result.exit_code == 1
    assert "Could not import" in result.output


def test_analytics_saves_first_snapshot(runner, tmp_path):
    result = runner.invoke(cli, ["analytics"])
    assert result.exit_code == 0
    assert LocalStore(tmp_path).load_current_snapshot("local") is not None
    assert len(LocalStore(tmp_path).load_snapshots("local", "weekly")) == 1
