"""Export: JSON and CSV for external analysis.

Your tasks, sessions and analytics in plain files you can open in a
spreadsheet or a notebook.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Sequence

import structlog

from focusflow.models import SessionRecord, TaskRecord, UserAnalytics

logger = structlog.get_logger()

ExportFormat = Literal["json", "csv"]
SUPPORTED_FORMATS = ("json", "csv")


def _fmt_minutes(value: float | None) -> str:
    return "" if value is None else f"{value:.1f}"


def tasks_to_csv(tasks: Sequence[TaskRecord]) -> str:
    """One row per task, spreadsheet-friendly headers."""
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        "Title",
        "Category",
        "Priority",
        "Status",
        "Created",
        "Completed",
        "Estimated Duration",
        "Actual Duration",
    ])

    for t in tasks:
        writer.writerow([
            t.title,
            t.category,
            t.priority.value,
            "completed" if t.is_completed else "open",
            t.created_at.isoformat(),
            t.completed_at.isoformat() if t.completed_at else "",
            _fmt_minutes(t.estimated_duration_minutes),
            _fmt_minutes(t.actual_duration_minutes),
        ])

    return output.getvalue()


def sessions_to_csv(sessions: Sequence[SessionRecord]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        "id",
        "task_id",
        "start_time",
        "duration_minutes",
        "session_type",
        "completed",
    ])

    for s in sessions:
        writer.writerow([
            s.id,
            s.task_id or "",
            s.start_time.isoformat(),
            _fmt_minutes(s.duration_minutes),
            s.session_type.value,
            s.completed,
        ])

    return output.getvalue()


def snapshot_to_json(snapshot: UserAnalytics) -> str:
    return snapshot.model_dump_json(indent=2)


def build_export_bundle(
    user_id: str,
    tasks: Sequence[TaskRecord],
    sessions: Sequence[SessionRecord],
    snapshots: Sequence[UserAnalytics],
    start: datetime,
    end: datetime,
) -> dict[str, Any]:
    """Everything for one user and window, plus a small summary."""
    return {
        "user": user_id,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        # Intelligence blobs are verbose; keep the export flat
        "tasks": [json.loads(t.model_dump_json(exclude={"intelligence"})) for t in tasks],
        "sessions": [json.loads(s.model_dump_json()) for s in sessions],
        "analytics": [json.loads(a.model_dump_json()) for a in snapshots],
        "summary": {
            "total_tasks": len(tasks),
            "completed_tasks": sum(1 for t in tasks if t.is_completed),
            "total_sessions": len(sessions),
            "total_time_spent": round(sum(s.duration_minutes for s in sessions), 2),
        },
    }


def export_data(
    user_id: str,
    tasks: Sequence[TaskRecord],
    sessions: Sequence[SessionRecord],
    snapshots: Sequence[UserAnalytics],
    start: datetime,
    end: datetime,
    fmt: str = "json",
) -> str:
    """Render an export in the requested format.

    CSV carries the task table only; JSON carries the full bundle.
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    if fmt == "csv":
        return tasks_to_csv(tasks)

    bundle = build_export_bundle(user_id, tasks, sessions, snapshots, start, end)
    return json.dumps(bundle, indent=2, default=str)


def export_filename(user_id: str, fmt: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d-%H%M%S")
    return f"focusflow-export-{user_id}-{stamp}.{fmt}"


def export_to_file(content: str, path: Path) -> Path:
    """Write export content to a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    logger.info("exported", path=str(path), size=len(content))
    return path
