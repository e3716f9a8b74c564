"""Tests for next-task ranking."""

from datetime import datetime, timedelta, timezone

import pytest

from focusflow.intelligence.engine import fallback_result
from focusflow.intelligence.ranking import rank_tasks, score_task
from focusflow.models import TaskContext, TaskRecord

NOW = datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)


def _task(
    task_id: str,
    priority: str = "medium",
    category: str = "general",
    age_days: float = 0,
    completed: bool = False,
    with_intelligence: bool = False,
) -> TaskRecord:
    intelligence = None
    if with_intelligence:
        intelligence = fallback_result(TaskContext(title=task_id, category=category, priority=priority))
    return TaskRecord(
        id=task_id,
        title=task_id,
        category=category,
        priority=priority,
        created_at=NOW - timedelta(days=age_days),
        is_completed=completed,
        intelligence=intelligence,
    )


def test_score_without_intelligence():
    # priority 2*0.3 + (1-0.1)*0.2 + urgency 2*0.25 + recency 1*0.1
    assert score_task(_task("a"), now=NOW) == pytest.approx(0.6 + 0.18 + 0.5 + 0.1)


def test_recency_fades_over_a_week():
    fresh = score_task(_task("a"), now=NOW)
    old = score_task(_task("b", age_days=10), now=NOW)
    assert fresh - old == pytest.approx(0.1)


def test_future_created_at_does_not_inflate_recency():
    future = score_task(_task("a", age_days=-3), now=NOW)
    assert future == score_task(_task("b"), now=NOW)


def test_preferred_category_bonus():
    plain = score_task(_task("a", category="coding"), now=NOW)
    preferred = score_task(_task("a", category="coding"), ["coding"], now=NOW)
    assert preferred - plain == pytest.approx(0.15)


def test_naive_datetimes_accepted():
    task = _task("a").model_copy(update={"created_at": datetime(2026, 3, 9, 12, 0)})
    assert score_task(task, now=datetime(2026, 3, 9, 12, 0)) == score_task(_task("a"), now=NOW)


def test_rank_orders_open_tasks_by_score():
    tasks = [
        _task("low", priority="low", age_days=5),
        _task("critical", priority="critical", with_intelligence=True),
        _task("done", priority="critical", completed=True),
        _task("medium", priority="medium"),
    ]
    ranked = rank_tasks(tasks, now=NOW)

    assert [r.task.id for r in ranked] == ["critical", "medium", "low"]
    assert ranked[0].score > ranked[1].score > ranked[2].score


def test_rank_respects_limit():
    tasks = [_task(f"t{i}") for i in range(10)]
    assert len(rank_tasks(tasks, now=NOW, limit=3)) == 3


def test_rank_empty():
    assert rank_tasks([], now=NOW) == []
