"""Task classification: complexity, cognitive load and urgency.

Complexity and cognitive load are scored independently. A long but routine
documentation task is textually complex without being mentally heavy, so one
is never derived from the other.
"""

from __future__ import annotations

from focusflow.intelligence.features import TaskFeatures
from focusflow.models import Priority, TaskClassification, TaskContext, Urgency

PRIORITY_RANK: dict[Priority, int] = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}

HIGH_PRIORITIES = (Priority.HIGH, Priority.CRITICAL)

# (family, complexity increment, cognitive-load increment, factor label)
FAMILY_WEIGHTS: tuple[tuple[str, float, float, str], ...] = (
    ("technical", 0.3, 0.2, "Technical complexity"),
    ("problem_solving", 0.25, 0.3, "Problem-solving required"),
    ("creative", 0.2, 0.2, "Creative work"),
    ("documentation", 0.15, 0.0, "Documentation/Communication"),
    ("process", 0.2, 0.0, "Multi-step process"),
)

BASE_COGNITIVE_LOAD = 0.3
DETAILED_WORD_COUNT = 50

# Urgency weights. The weighted sum is read in priority-rank units, so the
# thresholds below line up with the ranks 1, 2 and 3.
PRIORITY_WEIGHT = 0.4
COMPLEXITY_WEIGHT = 0.3
URGENT_KEYWORD_WEIGHT = 0.2
URGENT_KEYWORD_CAP = 0.3

URGENCY_THRESHOLDS: tuple[tuple[float, Urgency], ...] = (
    (2.5, Urgency.CRITICAL),
    (2.0, Urgency.HIGH),
    (1.0, Urgency.MEDIUM),
)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def length_base(features: TaskFeatures) -> float:
    """Starting complexity from title and description length."""
    return min(features.title_len / 100, 0.3) + min(features.desc_len / 500, 0.4)


def score_complexity(context: TaskContext, features: TaskFeatures) -> tuple[float, list[str]]:
    score = length_base(features)
    factors: list[str] = []

    for family, increment, _, label in FAMILY_WEIGHTS:
        if features.hits(family) > 0:
            score += increment
            factors.append(label)

    if context.priority in HIGH_PRIORITIES:
        score += 0.1
        factors.append("High priority pressure")

    if features.word_count > DETAILED_WORD_COUNT:
        score += 0.1
        factors.append("Detailed requirements")

    return _clamp01(score), factors


def score_cognitive_load(context: TaskContext, features: TaskFeatures) -> float:
    load = BASE_COGNITIVE_LOAD
    for family, _, increment, _ in FAMILY_WEIGHTS:
        if features.hits(family) > 0:
            load += increment
    if context.priority in HIGH_PRIORITIES:
        load += 0.1
    return _clamp01(load)


def urgency_score(priority: Priority, complexity: float, urgent_hits: int) -> float:
    """Weighted urgency signal in priority-rank units (0 to 4.5)."""
    weighted = (
        PRIORITY_WEIGHT * PRIORITY_RANK[priority]
        + COMPLEXITY_WEIGHT * complexity
        + min(URGENT_KEYWORD_WEIGHT * urgent_hits, URGENT_KEYWORD_CAP)
    )
    return weighted / PRIORITY_WEIGHT


def urgency_for_score(score: float) -> Urgency:
    for threshold, tier in URGENCY_THRESHOLDS:
        if score >= threshold:
            return tier
    return Urgency.LOW


def classify(context: TaskContext, features: TaskFeatures) -> TaskClassification:
    """Derive complexity, cognitive load and urgency for one task."""
    complexity, factors = score_complexity(context, features)
    score = urgency_score(context.priority, complexity, features.hits("urgent"))
    return TaskClassification(
        complexity_score=round(complexity, 4),
        cognitive_load=round(score_cognitive_load(context, features), 4),
        urgency=urgency_for_score(score),
        urgency_score=round(score, 4),
        factors=factors,
    )
