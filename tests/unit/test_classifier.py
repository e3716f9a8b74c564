"""Tests for task classification."""

import pytest

from focusflow.intelligence.classifier import (
    classify,
    score_cognitive_load,
    score_complexity,
    urgency_for_score,
    urgency_score,
)
from focusflow.intelligence.features import extract_features
from focusflow.models import Priority, TaskContext, Urgency


def _classify(**kwargs):
    ctx = TaskContext(**kwargs)
    return classify(ctx, extract_features(ctx))


def test_oauth_task_is_complex_and_urgent():
    result = _classify(
        title="Implement OAuth integration",
        description="Add secure login with refresh tokens",
        category="coding",
        priority="high",
    )
    assert result.complexity_score == pytest.approx(0.942)
    assert result.complexity_score >= 0.3
    assert "Technical complexity" in result.factors
    assert "High priority pressure" in result.factors
    assert result.urgency in (Urgency.HIGH, Urgency.CRITICAL)


def test_empty_task_is_simple():
    result = _classify()
    assert result.complexity_score == 0.0
    assert result.cognitive_load == 0.3
    assert result.factors == []
    # medium priority alone: 0.4 * 1 / 0.4 = 1.0
    assert result.urgency == Urgency.MEDIUM


def test_complexity_and_load_are_independent():
    # Documentation adds complexity but no cognitive load
    ctx = TaskContext(title="Write report")
    features = extract_features(ctx)
    complexity, factors = score_complexity(ctx, features)
    assert complexity == pytest.approx(0.12 + 0.15)
    assert factors == ["Documentation/Communication"]
    assert score_cognitive_load(ctx, features) == pytest.approx(0.3)


def test_problem_solving_raises_load_more_than_complexity():
    ctx = TaskContext(title="Debug")
    features = extract_features(ctx)
    complexity, _ = score_complexity(ctx, features)
    load = score_cognitive_load(ctx, features)
    assert complexity == pytest.approx(0.05 + 0.25)
    assert load == pytest.approx(0.6)


def test_scores_clamped_to_unit_interval():
    text = "implement api debug design document deploy " * 20
    result = _classify(title=text[:200], description=text, priority="critical")
    assert result.complexity_score == 1.0
    assert result.cognitive_load == 1.0


def test_urgency_score_in_priority_units():
    assert urgency_score(Priority.LOW, 0.0, 0) == 0.0
    assert urgency_score(Priority.CRITICAL, 0.0, 0) == pytest.approx(3.0)
    # keyword bonus capped at 0.3
    assert urgency_score(Priority.LOW, 0.0, 5) == pytest.approx(0.75)


def test_urgency_thresholds():
    assert urgency_for_score(2.5) == Urgency.CRITICAL
    assert urgency_for_score(2.49) == Urgency.HIGH
    assert urgency_for_score(2.0) == Urgency.HIGH
    assert urgency_for_score(1.0) == Urgency.MEDIUM
    assert urgency_for_score(0.99) == Urgency.LOW


def test_technical_keywords_never_lower_complexity():
    stems = ["algorithm", "api", "architecture", "database", "framework", "implement", "secure"]
    description = ""
    previous = _classify(title="Task", description=description).complexity_score
    for stem in stems:
        description = f"{description} {stem}".strip()
        current = _classify(title="Task", description=description).complexity_score
        assert current >= previous
        previous = current


def test_critical_boundary_reached_through_classify():
    text = "implement api debug design document deploy " * 20
    result = _classify(title=text[:200], description=f"{text} urgent deadline", priority="medium")
    assert result.complexity_score == 1.0
    # (0.4 * 1 + 0.3 * 1.0 + 0.3) / 0.4
    assert result.urgency_score == 2.5
    assert result.urgency == Urgency.CRITICAL

    one_hit = _classify(title=text[:200], description=f"{text} urgent", priority="medium")
    assert one_hit.urgency == Urgency.HIGH


def test_urgent_keywords_raise_urgency():
    calm = _classify(title="Tidy", priority="low")
    rushed = _classify(title="Tidy asap, urgent deadline", priority="low")
    assert calm.urgency == Urgency.LOW
    assert rushed.urgency_score > calm.urgency_score
    # Keywords alone cannot lift a low-priority task out of its tier
    assert rushed.urgency == Urgency.LOW
