"""Local JSON storage for FocusFlow data.

Simple, file-based, no external dependencies. One JSON file per user for
tasks and sessions; analytics snapshots live in their own tree:

    ~/.focusflow/
      tasks/<user>.json
      sessions/<user>.json
      analytics/<user>/current.json
      analytics/<user>/daily/<date>.json
      analytics/<user>/weekly/week-<date>.json
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Sequence

import structlog

from focusflow.models import SessionRecord, TaskRecord, UserAnalytics

logger = structlog.get_logger()

SnapshotKind = Literal["daily", "weekly"]


def _as_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _in_range(dt: datetime, start: datetime, end: datetime) -> bool:
    return _as_aware(start) <= _as_aware(dt) <= _as_aware(end)


class LocalStore:
    """File-based record store. Satisfies the history and record sources."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.tasks_dir = self.data_dir / "tasks"
        self.tasks_dir.mkdir(exist_ok=True)
        self.sessions_dir = self.data_dir / "sessions"
        self.sessions_dir.mkdir(exist_ok=True)
        self.analytics_dir = self.data_dir / "analytics"
        self.analytics_dir.mkdir(exist_ok=True)

    def _user_file(self, base_dir: Path, user_id: str) -> Path:
        slug = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id) or "_"
        return base_dir / f"{slug}.json"

    def _snapshot_dir(self, user_id: str) -> Path:
        return self._user_file(self.analytics_dir, user_id).with_suffix("")

    # ── Tasks ─────────────────────────────────────────────────

    def save_tasks(self, user_id: str, tasks: Sequence[TaskRecord]) -> Path:
        """Insert or update tasks by id."""
        path = self._user_file(self.tasks_dir, user_id)
        saved = self._upsert(path, [json.loads(t.model_dump_json()) for t in tasks])
        logger.info("tasks_saved", user_id=user_id, count=len(tasks), total=saved)
        return path

    def load_tasks(self, user_id: str) -> list[TaskRecord]:
        raw = self._load_json_list(self._user_file(self.tasks_dir, user_id))
        return [TaskRecord.model_validate(t) for t in raw]

    def tasks_in_range(self, user_id: str, start: datetime, end: datetime) -> list[TaskRecord]:
        """Tasks created within [start, end]."""
        return [t for t in self.load_tasks(user_id) if _in_range(t.created_at, start, end)]

    def recent_completed_tasks(
        self,
        user_id: str,
        category: str,
        limit: int = 20,
    ) -> list[TaskRecord]:
        """Most recently completed tasks in a category, newest first."""
        done = [
            t for t in self.load_tasks(user_id)
            if t.is_completed and t.category == category and t.completed_at is not None
        ]
        done.sort(key=lambda t: _as_aware(t.completed_at), reverse=True)
        return done[:limit]

    # ── Sessions ──────────────────────────────────────────────

    def save_sessions(self, user_id: str, sessions: Sequence[SessionRecord]) -> Path:
        """Insert or update sessions by id."""
        path = self._user_file(self.sessions_dir, user_id)
        saved = self._upsert(path, [json.loads(s.model_dump_json()) for s in sessions])
        logger.info("sessions_saved", user_id=user_id, count=len(sessions), total=saved)
        return path

    def load_sessions(self, user_id: str) -> list[SessionRecord]:
        raw = self._load_json_list(self._user_file(self.sessions_dir, user_id))
        return [SessionRecord.model_validate(s) for s in raw]

    def sessions_in_range(self, user_id: str, start: datetime, end: datetime) -> list[SessionRecord]:
        """Sessions started within [start, end]."""
        return [s for s in self.load_sessions(user_id) if _in_range(s.start_time, start, end)]

    # ── Analytics snapshots ───────────────────────────────────

    def save_snapshot(self, snapshot: UserAnalytics, kind: SnapshotKind = "daily") -> Path:
        """Write the snapshot as the user's current one and archive a copy."""
        base = self._snapshot_dir(snapshot.user_id)
        data = json.loads(snapshot.model_dump_json())

        self._save_json(base / "current.json", data)

        day = snapshot.period_start.date().isoformat()
        archive = base / kind / (f"week-{day}.json" if kind == "weekly" else f"{day}.json")
        self._save_json(archive, data)

        logger.info("snapshot_saved", user_id=snapshot.user_id, kind=kind, path=str(archive))
        return archive

    def load_current_snapshot(self, user_id: str) -> UserAnalytics | None:
        path = self._snapshot_dir(user_id) / "current.json"
        if not path.exists():
            return None
        try:
            return UserAnalytics.model_validate(json.loads(path.read_text()))
        except (json.JSONDecodeError, OSError, ValueError) as e:
            logger.warning("snapshot_unreadable", path=str(path), error=str(e))
            return None

    def load_snapshots(self, user_id: str, kind: SnapshotKind = "daily") -> list[UserAnalytics]:
        """Archived snapshots of one kind, oldest first."""
        folder = self._snapshot_dir(user_id) / kind
        if not folder.exists():
            return []
        snapshots = []
        for path in sorted(folder.glob("*.json")):
            try:
                snapshots.append(UserAnalytics.model_validate(json.loads(path.read_text())))
            except (json.JSONDecodeError, OSError, ValueError) as e:
                logger.warning("snapshot_unreadable", path=str(path), error=str(e))
        snapshots.sort(key=lambda s: _as_aware(s.period_start))
        return snapshots

    def previous_snapshot(
        self,
        user_id: str,
        before: datetime,
        kind: SnapshotKind = "weekly",
    ) -> UserAnalytics | None:
        """Latest archived snapshot whose window ends at or before `before`."""
        earlier = [
            s for s in self.load_snapshots(user_id, kind)
            if _as_aware(s.period_end) <= _as_aware(before)
        ]
        return earlier[-1] if earlier else None

    # ── Helpers ────────────────────────────────────────────────

    def _upsert(self, path: Path, items: list[dict[str, Any]]) -> int:
        existing = {r.get("id"): r for r in self._load_json_list(path)}
        for item in items:
            existing[item["id"]] = item
        self._save_json(path, list(existing.values()))
        return len(existing)

    def _load_json_list(self, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
            return data if isinstance(data, list) else []
        except (json.JSONDecodeError, OSError):
            return []

    def _save_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, default=str))
