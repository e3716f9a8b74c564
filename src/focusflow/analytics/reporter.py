"""Insight reporting: turns analytics snapshots into words.

Trends compare the current snapshot with the previous archived one; with no
previous snapshot everything reads as stable.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Sequence

import structlog

from focusflow.models import (
    CompletionInsight,
    IntelligenceSummary,
    MetricTrend,
    PatternType,
    ProductivityInsights,
    TaskRecord,
    TrendDirection,
    UserAnalytics,
)

logger = structlog.get_logger()

TREND_DEAD_BAND = 0.05


# ── Insights ─────────────────────────────────────────────────


def generate_insights(snapshot: UserAnalytics) -> list[str]:
    insights: list[str] = []

    if snapshot.metrics.productivity_score > 0.8:
        insights.append("You're maintaining excellent task completion rates!")

    for pattern in snapshot.patterns:
        if pattern.type == PatternType.TIME:
            insights.append(f"You're most productive during the {pattern.data['hour']}:00 hour")
        elif pattern.type == PatternType.CATEGORY:
            insights.append(
                f"You finish {pattern.strength:.0%} of your {pattern.data['category']} tasks"
            )
        elif pattern.type == PatternType.ESTIMATION:
            insights.append(pattern.description)

    if snapshot.metrics.streak_days >= 3:
        insights.append(f"{snapshot.metrics.streak_days}-day focus streak. Keep it going!")

    return insights


def _trend(metric: str, current: float, previous: float | None) -> MetricTrend:
    if previous is None:
        return MetricTrend(metric=metric, value=current)
    delta = round(current - previous, 4)
    if delta > TREND_DEAD_BAND:
        direction = TrendDirection.UP
    elif delta < -TREND_DEAD_BAND:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.STABLE
    return MetricTrend(metric=metric, trend=direction, value=current, delta=delta)


def compute_trends(
    current: UserAnalytics,
    previous: UserAnalytics | None = None,
) -> list[MetricTrend]:
    """Movement of key scores since the previous snapshot."""

    def scores(s: UserAnalytics) -> dict[str, float]:
        return {
            "productivity": s.metrics.productivity_score,
            "estimation": s.metrics.estimation_accuracy,
            "focus": s.efficiency.focus,
            "consistency": s.efficiency.consistency,
        }

    now = scores(current)
    before = scores(previous) if previous is not None else {}
    return [_trend(metric, value, before.get(metric)) for metric, value in now.items()]


def generate_suggestions(snapshot: UserAnalytics) -> list[str]:
    suggestions: list[str] = []

    if snapshot.efficiency.estimation < 0.7:
        suggestions.append("Try the planning poker technique for better time estimation")

    if snapshot.efficiency.focus < 0.6:
        suggestions.append("Consider using the Pomodoro technique with longer focus blocks")

    if snapshot.metrics.active_days > 0 and snapshot.metrics.streak_days < 3:
        suggestions.append("Focus on building a daily habit streak")

    return suggestions


def identify_achievements(snapshot: UserAnalytics) -> list[str]:
    achievements: list[str] = []

    if snapshot.metrics.completed_tasks >= 10:
        achievements.append("Task Master: Completed 10+ tasks!")

    if snapshot.efficiency.estimation > 0.9:
        achievements.append("Time Oracle: Achieved 90%+ estimation accuracy!")

    if snapshot.metrics.focus_time >= 25 * 60:
        achievements.append("Deep Focus: Logged 25+ hours of focus time!")

    if snapshot.metrics.streak_days >= 7:
        achievements.append(f"On a Roll: {snapshot.metrics.streak_days}-day focus streak!")

    return achievements


def build_insights(
    current: UserAnalytics,
    previous: UserAnalytics | None = None,
) -> ProductivityInsights:
    report = ProductivityInsights(
        user_id=current.user_id,
        generated_at=datetime.now(timezone.utc),
        insights=generate_insights(current),
        trends=compute_trends(current, previous),
        suggestions=generate_suggestions(current),
        achievements=identify_achievements(current),
    )
    logger.info(
        "insights_generated",
        user_id=current.user_id,
        insights=len(report.insights),
        achievements=len(report.achievements),
        has_baseline=previous is not None,
    )
    return report


def format_insights_report(report: ProductivityInsights, snapshot: UserAnalytics) -> str:
    """Format insights as readable text."""
    m = snapshot.metrics
    lines = [
        f"{'='*60}",
        "  PRODUCTIVITY INSIGHTS",
        f"  {snapshot.period_start.strftime('%b %d')} to {snapshot.period_end.strftime('%b %d, %Y')}",
        f"{'='*60}",
        "",
        f"  Tasks: {m.completed_tasks}/{m.total_tasks} completed ({m.productivity_score:.0%})",
        f"  Time tracked: {m.total_time_spent:.0f} min ({m.total_time_spent/60:.1f} hrs)",
        f"  Estimation accuracy: {m.estimation_accuracy:.0%}",
        f"  Consistency: {snapshot.efficiency.consistency:.0%}",
        "",
    ]

    arrows = {TrendDirection.UP: "↑", TrendDirection.DOWN: "↓", TrendDirection.STABLE: "→"}
    lines.append("  TRENDS")
    lines.append(f"  {'-'*54}")
    for t in report.trends:
        lines.append(f"  {arrows[t.trend]} {t.metric:12s} {t.value:.0%} ({t.delta:+.0%})")
    lines.append("")

    for title, items in (
        ("INSIGHTS", report.insights),
        ("SUGGESTIONS", report.suggestions),
        ("ACHIEVEMENTS", report.achievements),
    ):
        if not items:
            continue
        lines.append(f"  {title}")
        lines.append(f"  {'-'*54}")
        lines.extend(f"  • {item}" for item in items)
        lines.append("")

    if snapshot.recommendations:
        lines.append("  RECOMMENDATIONS")
        lines.append(f"  {'-'*54}")
        for r in snapshot.recommendations:
            lines.append(f"  [{r.impact.value} impact / {r.effort.value} effort] {r.title}")
            lines.append(f"     {r.description}")
        lines.append("")

    if not (report.insights or report.achievements or snapshot.recommendations):
        lines.append("  Not enough data yet. Track a few sessions and check back.")

    return "\n".join(lines)


# ── Per-task feedback ────────────────────────────────────────


def completion_insights(task: TaskRecord) -> list[CompletionInsight]:
    """Feedback for a single just-completed task."""
    insights: list[CompletionInsight] = []

    est, actual = task.estimated_duration_minutes, task.actual_duration_minutes
    if est and actual:
        accuracy = 1 - abs(actual - est) / est
        if accuracy > 0.9:
            insights.append(CompletionInsight(
                type="estimation_accuracy",
                message="Great time estimation! You completed this task very close to your estimate.",
                score=round(accuracy, 4),
                task_id=task.id,
            ))
        elif accuracy < 0.5:
            insights.append(CompletionInsight(
                type="estimation_improvement",
                message="Consider breaking down complex tasks for better time estimates.",
                score=round(accuracy, 4),
                task_id=task.id,
            ))

    if task.pomodoro_sessions > 0:
        insights.append(CompletionInsight(
            type="focus_session",
            message=f"Completed {task.pomodoro_sessions} focus sessions for this task.",
            sessions=task.pomodoro_sessions,
            task_id=task.id,
        ))

    return insights


def summarize_intelligence(tasks: Sequence[TaskRecord]) -> IntelligenceSummary:
    """How engine estimates compared to actual durations on completed tasks."""
    processed = [t for t in tasks if t.intelligence is not None]
    scored = [
        t for t in processed
        if t.is_completed and t.actual_duration_minutes
    ]

    accuracies = [
        max(0.0, 1 - abs(t.actual_duration_minutes - t.intelligence.estimated_duration)
            / t.intelligence.estimated_duration)
        for t in scored
    ]
    average = sum(accuracies) / len(accuracies) if accuracies else 0.0

    categories = Counter(t.category for t in processed)
    top = [cat for cat, _ in sorted(categories.items(), key=lambda kv: (-kv[1], kv[0]))[:3]]

    suggestions: list[str] = []
    if any(len(t.description) < 20 for t in processed) or not processed:
        suggestions.append("Provide more detailed task descriptions for better estimates")
    if categories.get("general", 0) > len(processed) / 2 or not processed:
        suggestions.append("Use specific categories to improve accuracy")
    if len(scored) < len(processed) or not processed:
        suggestions.append("Log actual durations on completed tasks to help improve predictions")

    return IntelligenceSummary(
        total_tasks_processed=len(processed),
        average_accuracy=round(average, 4),
        top_categories=top,
        improvement_suggestions=suggestions,
    )
