"""What to work on next: ranks open tasks by priority, urgency and fit."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

import structlog

from focusflow.models import Priority, RankedTask, TaskRecord, Urgency

logger = structlog.get_logger()

PRIORITY_WEIGHTS = {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3, Priority.CRITICAL: 4}
URGENCY_WEIGHTS = {Urgency.LOW: 1, Urgency.MEDIUM: 2, Urgency.HIGH: 3, Urgency.CRITICAL: 4}

# Moderately complex work makes the best next pick
SWEET_SPOT_COMPLEXITY = 0.6
RECENCY_WINDOW_DAYS = 7


def _as_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def score_task(
    task: TaskRecord,
    preferred_categories: Iterable[str] = (),
    now: datetime | None = None,
) -> float:
    now = _as_aware(now or datetime.now(timezone.utc))
    intelligence = task.intelligence

    score = PRIORITY_WEIGHTS.get(task.priority, 2) * 0.3

    complexity = intelligence.complexity_score if intelligence else 0.5
    score += (1 - abs(complexity - SWEET_SPOT_COMPLEXITY)) * 0.2

    urgency_weight = URGENCY_WEIGHTS.get(intelligence.urgency, 2) if intelligence else 2
    score += urgency_weight * 0.25

    age_days = (now - _as_aware(task.created_at)).total_seconds() / 86400
    score += max(0.0, min(1.0, 1 - age_days / RECENCY_WINDOW_DAYS)) * 0.1

    if task.category in set(preferred_categories):
        score += 0.15

    return round(score, 4)


def rank_tasks(
    tasks: Sequence[TaskRecord],
    preferred_categories: Iterable[str] = (),
    now: datetime | None = None,
    limit: int = 5,
) -> list[RankedTask]:
    """Top open tasks, best first. Ties keep the input order."""
    preferred = set(preferred_categories)
    open_tasks = [t for t in tasks if not t.is_completed]
    ranked = [
        RankedTask(task=t, score=score_task(t, preferred, now))
        for t in open_tasks
    ]
    ranked.sort(key=lambda r: r.score, reverse=True)

    logger.info("tasks_ranked", candidates=len(open_tasks), returned=min(limit, len(ranked)))
    return ranked[:limit]
