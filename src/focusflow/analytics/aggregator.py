"""Analytics aggregation: turns task and session records into a snapshot.

Each step is a pure function of the two record lists, so a snapshot is just
"run it again over a different window". Sums go through math.fsum and ties
are broken on keys, which keeps the output independent of input order.

Empty input is normal: it yields zero metrics and no patterns or
recommendations, never an error.
"""

from __future__ import annotations

import asyncio
import math
import statistics
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Literal, Protocol, Sequence

import structlog

from focusflow.models import (
    EfficiencyScores,
    Impact,
    PatternType,
    ProductivityMetrics,
    ProductivityPattern,
    ProductivityRecommendation,
    SessionRecord,
    TaskRecord,
    TimeDistribution,
    UserAnalytics,
)

logger = structlog.get_logger()

FocusSplit = Literal["heuristic", "recorded"]

# Heuristic split of tracked time when break sessions aren't counted
FOCUS_SHARE = 0.8
BREAK_SHARE = 0.2
REFERENCE_TASK_MINUTES = 60.0

CATEGORY_PATTERN_MIN_RATE = 0.7
ESTIMATION_BIAS_THRESHOLD = 0.2
MIN_PATTERN_SAMPLES = 3

# Focus-session length buckets: (upper bound in minutes, label)
SESSION_LENGTH_BUCKETS: tuple[tuple[float, str], ...] = (
    (15, "short (15 min or less)"),
    (30, "pomodoro-length (16-30 min)"),
    (60, "extended (31-60 min)"),
    (math.inf, "deep-work (over an hour)"),
)


class RecordSource(Protocol):
    """The slice of the record store analytics needs."""

    def tasks_in_range(self, user_id: str, start: datetime, end: datetime) -> list[TaskRecord]: ...

    def sessions_in_range(self, user_id: str, start: datetime, end: datetime) -> list[SessionRecord]: ...


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _estimated_pairs(tasks: Sequence[TaskRecord]) -> list[tuple[float, float]]:
    """(estimated, actual) minutes for completed tasks that carry both."""
    return [
        (t.estimated_duration_minutes, t.actual_duration_minutes)
        for t in tasks
        if t.is_completed and t.estimated_duration_minutes and t.actual_duration_minutes
    ]


def _session_days(sessions: Sequence[SessionRecord]) -> Counter:
    return Counter(s.start_time.date() for s in sessions)


def longest_streak(days: Sequence[date]) -> int:
    """Longest run of consecutive calendar days."""
    ordered = sorted(set(days))
    if not ordered:
        return 0
    best = run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        run = run + 1 if curr - prev == timedelta(days=1) else 1
        best = max(best, run)
    return best


# ── Metrics ──────────────────────────────────────────────────


def compute_metrics(
    tasks: Sequence[TaskRecord],
    sessions: Sequence[SessionRecord],
    start: datetime,
    end: datetime,
    focus_split: FocusSplit = "heuristic",
) -> ProductivityMetrics:
    completed = [t for t in tasks if t.is_completed]
    total_time = math.fsum(s.duration_minutes for s in sessions)
    days = max(1, math.ceil((end - start).total_seconds() / 86400))

    if focus_split == "recorded":
        focus_time = math.fsum(s.duration_minutes for s in sessions if not s.is_break)
        break_time = math.fsum(s.duration_minutes for s in sessions if s.is_break)
    else:
        focus_time = total_time * FOCUS_SHARE
        break_time = total_time * BREAK_SHARE

    pairs = _estimated_pairs(tasks)
    accuracy = _ratio(
        math.fsum(1 - abs(actual - est) / est for est, actual in pairs),
        len(pairs),
    )

    session_days = _session_days(sessions)

    return ProductivityMetrics(
        total_tasks=len(tasks),
        completed_tasks=len(completed),
        total_time_spent=round(total_time, 2),
        average_time_per_task=round(_ratio(total_time, len(completed)), 2),
        tasks_per_day=round(len(tasks) / days, 4),
        focus_time=round(focus_time, 2),
        break_time=round(break_time, 2),
        productivity_score=round(_ratio(len(completed), len(tasks)), 4),
        estimation_accuracy=round(accuracy, 4),
        active_days=len(session_days),
        streak_days=longest_streak(list(session_days)),
    )


# ── Patterns ─────────────────────────────────────────────────


def _time_pattern(sessions: Sequence[SessionRecord]) -> ProductivityPattern | None:
    if not sessions:
        return None
    by_hour = Counter(s.start_time.hour for s in sessions)
    # Most sessions wins; earliest hour breaks ties
    hour, count = min(by_hour.items(), key=lambda kv: (-kv[1], kv[0]))
    return ProductivityPattern(
        type=PatternType.TIME,
        description=f"Most productive during {hour}:00 hour",
        strength=round(count / len(sessions), 4),
        confidence=0.8,
        data={"hour": hour, "sessions": count},
    )


def _category_pattern(tasks: Sequence[TaskRecord]) -> ProductivityPattern | None:
    totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for t in tasks:
        totals[t.category][0] += 1
        if t.is_completed:
            totals[t.category][1] += 1
    if not totals:
        return None

    rates = {cat: done / total for cat, (total, done) in totals.items()}
    category, rate = min(rates.items(), key=lambda kv: (-kv[1], kv[0]))
    if rate <= CATEGORY_PATTERN_MIN_RATE:
        return None

    return ProductivityPattern(
        type=PatternType.CATEGORY,
        description=f"Highest completion rate in {category} tasks",
        strength=round(rate, 4),
        confidence=0.7,
        data={"category": category, "rate": round(rate, 4)},
    )


def _estimation_pattern(tasks: Sequence[TaskRecord]) -> ProductivityPattern | None:
    pairs = _estimated_pairs(tasks)
    if len(pairs) < MIN_PATTERN_SAMPLES:
        return None

    mean_ratio = math.fsum(actual / est for est, actual in pairs) / len(pairs)
    bias = mean_ratio - 1
    if abs(bias) <= ESTIMATION_BIAS_THRESHOLD:
        return None

    direction = "underestimate" if bias > 0 else "overestimate"
    return ProductivityPattern(
        type=PatternType.ESTIMATION,
        description=f"You tend to {direction} tasks (actual time is {mean_ratio:.0%} of the estimate)",
        strength=round(min(1.0, abs(bias)), 4),
        confidence=round(min(0.9, len(pairs) / 10), 4),
        data={"mean_ratio": round(mean_ratio, 4), "tasks": len(pairs), "direction": direction},
    )


def _duration_pattern(sessions: Sequence[SessionRecord]) -> ProductivityPattern | None:
    focus = [s for s in sessions if not s.is_break and s.duration_minutes > 0]
    if len(focus) < MIN_PATTERN_SAMPLES:
        return None

    def bucket(minutes: float) -> int:
        return next(i for i, (upper, _) in enumerate(SESSION_LENGTH_BUCKETS) if minutes <= upper)

    counts = Counter(bucket(s.duration_minutes) for s in focus)
    index, count = min(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    share = count / len(focus)
    if share < 0.5:
        return None

    label = SESSION_LENGTH_BUCKETS[index][1]
    return ProductivityPattern(
        type=PatternType.DURATION,
        description=f"Focus sessions are mostly {label}",
        strength=round(share, 4),
        confidence=0.6,
        data={"bucket": label, "sessions": count, "total_sessions": len(focus)},
    )


def detect_patterns(
    tasks: Sequence[TaskRecord],
    sessions: Sequence[SessionRecord],
) -> list[ProductivityPattern]:
    """Opportunistic: each pattern appears only when the data supports it."""
    candidates = (
        _time_pattern(sessions),
        _category_pattern(tasks),
        _duration_pattern(sessions),
        _estimation_pattern(tasks),
    )
    return [p for p in candidates if p is not None]


# ── Recommendations ──────────────────────────────────────────


def generate_recommendations(
    metrics: ProductivityMetrics,
    has_estimates: bool,
) -> list[ProductivityRecommendation]:
    """Independent rules; any combination may fire."""
    recommendations: list[ProductivityRecommendation] = []

    if has_estimates and metrics.estimation_accuracy < 0.7:
        recommendations.append(ProductivityRecommendation(
            type="estimation",
            title="Improve Time Estimation",
            description="Your time estimates could be more accurate. Try breaking tasks into smaller chunks.",
            impact=Impact.HIGH,
            effort=Impact.MEDIUM,
        ))

    if metrics.total_tasks > 0 and metrics.productivity_score < 0.6:
        recommendations.append(ProductivityRecommendation(
            type="focusTime",
            title="Increase Task Completion Rate",
            description="Focus on completing started tasks before beginning new ones.",
            impact=Impact.HIGH,
            effort=Impact.LOW,
        ))

    if metrics.total_time_spent > 0 and metrics.break_time / metrics.total_time_spent < 0.15:
        recommendations.append(ProductivityRecommendation(
            type="breaks",
            title="Take Regular Breaks",
            description="Regular breaks can improve focus and prevent burnout.",
            impact=Impact.MEDIUM,
            effort=Impact.LOW,
        ))

    return recommendations


# ── Time Distribution ────────────────────────────────────────


def compute_time_distribution(
    tasks: Sequence[TaskRecord],
    sessions: Sequence[SessionRecord],
) -> TimeDistribution:
    by_category: dict[str, list[float]] = defaultdict(list)
    for t in tasks:
        by_category[t.category].append(
            t.actual_duration_minutes or t.estimated_duration_minutes or 0.0
        )

    by_hour: dict[int, list[float]] = defaultdict(list)
    by_day: dict[int, list[float]] = defaultdict(list)
    for s in sessions:
        by_hour[s.start_time.hour].append(s.duration_minutes)
        by_day[s.start_time.weekday()].append(s.duration_minutes)

    def _totals(buckets: dict) -> dict:
        return {k: round(math.fsum(v), 2) for k, v in sorted(buckets.items())}

    return TimeDistribution(
        by_category=_totals(by_category),
        by_hour=_totals(by_hour),
        by_day=_totals(by_day),
    )


# ── Efficiency ───────────────────────────────────────────────


def consistency_score(sessions: Sequence[SessionRecord]) -> float:
    """1 - coefficient of variation of sessions per active day, floored at 0.

    Needs at least two distinct session days; with one day the mean is
    meaningless as a baseline, so the score is 0.
    """
    counts = sorted(_session_days(sessions).values())
    if len(counts) < 2:
        return 0.0
    mean = statistics.mean(counts)
    std_dev = statistics.pstdev(counts)
    return round(max(0.0, 1 - std_dev / mean), 4)


def compute_efficiency(
    metrics: ProductivityMetrics,
    sessions: Sequence[SessionRecord],
) -> EfficiencyScores:
    return EfficiencyScores(
        overall=metrics.productivity_score,
        estimation=metrics.estimation_accuracy,
        focus=round(min(1.0, _ratio(metrics.focus_time, metrics.focus_time + metrics.break_time)), 4),
        consistency=consistency_score(sessions),
        time_management=round(min(1.0, metrics.average_time_per_task / REFERENCE_TASK_MINUTES), 4),
    )


# ── Snapshot ─────────────────────────────────────────────────


def aggregate(
    user_id: str,
    tasks: Sequence[TaskRecord],
    sessions: Sequence[SessionRecord],
    start: datetime,
    end: datetime,
    focus_split: FocusSplit = "heuristic",
) -> UserAnalytics:
    """Build a full analytics snapshot for one user and window."""
    metrics = compute_metrics(tasks, sessions, start, end, focus_split=focus_split)
    patterns = detect_patterns(tasks, sessions)
    recommendations = generate_recommendations(metrics, has_estimates=bool(_estimated_pairs(tasks)))

    snapshot = UserAnalytics(
        user_id=user_id,
        period_start=start,
        period_end=end,
        metrics=metrics,
        patterns=patterns,
        recommendations=recommendations,
        time_distribution=compute_time_distribution(tasks, sessions),
        efficiency=compute_efficiency(metrics, sessions),
        last_updated=datetime.now(timezone.utc),
    )

    logger.info(
        "analytics_aggregated",
        user_id=user_id,
        tasks=len(tasks),
        sessions=len(sessions),
        patterns=len(patterns),
        recommendations=len(recommendations),
    )
    return snapshot


async def analyze_user(
    store: RecordSource,
    user_id: str,
    start: datetime,
    end: datetime,
    focus_split: FocusSplit = "heuristic",
) -> UserAnalytics:
    """Fetch tasks and sessions concurrently, then aggregate."""
    tasks, sessions = await asyncio.gather(
        asyncio.to_thread(store.tasks_in_range, user_id, start, end),
        asyncio.to_thread(store.sessions_in_range, user_id, start, end),
    )
    return aggregate(user_id, tasks, sessions, start, end, focus_split=focus_split)
