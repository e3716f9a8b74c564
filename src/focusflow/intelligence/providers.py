"""Duration estimators: independent votes for the ensemble.

Every provider answers through the same async `vote()` call and never raises.
A timeout or collaborator failure turns into the provider's degraded vote, so
the ensemble only ever sees EstimateVote objects and never has to branch on
exception types.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Protocol, Sequence

import structlog

from focusflow.intelligence.features import TaskFeatures
from focusflow.intelligence.llm import complete, describe_task
from focusflow.models import EstimateVote, TaskContext, TaskRecord, VoteStatus

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 5.0
POMODORO_MINUTES = 25

# Static per-category defaults: (minutes, confidence)
CATEGORY_ESTIMATES: dict[str, tuple[int, float]] = {
    "planning": (30, 0.6),
    "coding": (60, 0.7),
    "testing": (45, 0.6),
    "documentation": (35, 0.5),
    "meeting": (30, 0.8),
    "research": (90, 0.5),
    "design": (75, 0.6),
    "review": (20, 0.7),
    "general": (25, 0.4),
}


class HistorySource(Protocol):
    """The slice of the record store the historical estimator needs."""

    def recent_completed_tasks(
        self, user_id: str, category: str, limit: int
    ) -> list[TaskRecord]: ...


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class EstimatorProvider:
    """Base class: subclasses implement `_estimate`, callers use `vote`."""

    name = "provider"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    async def vote(self, context: TaskContext, features: TaskFeatures) -> EstimateVote:
        """Return this provider's vote. Never raises."""
        try:
            return await asyncio.wait_for(self._estimate(context, features), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("provider_timeout", provider=self.name, timeout=self.timeout)
            return self._degraded(f"timed out after {self.timeout}s")
        except Exception as e:
            logger.warning("provider_degraded", provider=self.name, error=str(e))
            return self._degraded(str(e))

    async def _estimate(self, context: TaskContext, features: TaskFeatures) -> EstimateVote:
        raise NotImplementedError

    def _fallback(self) -> tuple[float, float]:
        return 0.0, 0.0

    def _degraded(self, detail: str) -> EstimateVote:
        minutes, confidence = self._fallback()
        return EstimateVote(
            provider=self.name,
            minutes=minutes,
            confidence=confidence,
            status=VoteStatus.DEGRADED,
            detail=detail,
        )

    def _abstain(self, detail: str) -> EstimateVote:
        return EstimateVote(
            provider=self.name,
            minutes=0.0,
            confidence=0.0,
            status=VoteStatus.ABSTAINED,
            detail=detail,
        )


# ── Historical ───────────────────────────────────────────────


class HistoricalProvider(EstimatorProvider):
    """Mean actual duration of the user's recent completed tasks in the category."""

    name = "historical"

    def __init__(
        self,
        store: HistorySource,
        limit: int = 20,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(timeout)
        self.store = store
        self.limit = limit

    async def _estimate(self, context: TaskContext, features: TaskFeatures) -> EstimateVote:
        if not features.has_text:
            return self._abstain("no text")
        if not context.user_id:
            return self._abstain("no user")

        tasks = await asyncio.to_thread(
            self.store.recent_completed_tasks, context.user_id, context.category, self.limit
        )
        durations = [
            t.actual_duration_minutes
            for t in tasks
            if t.actual_duration_minutes and t.actual_duration_minutes > 0
        ]
        if not durations:
            return self._abstain("no completed tasks with recorded duration")

        mean = sum(durations) / len(durations)
        return EstimateVote(
            provider=self.name,
            minutes=round(mean, 1),
            confidence=min(len(durations) / 10, 0.8),
            detail=f"{len(durations)} tasks",
        )


# ── Category default ─────────────────────────────────────────


class CategoryDefaultProvider(EstimatorProvider):
    """Static lookup. Unknown categories use the "general" entry."""

    name = "category_default"

    async def _estimate(self, context: TaskContext, features: TaskFeatures) -> EstimateVote:
        minutes, confidence = category_estimate(context.category)
        return EstimateVote(provider=self.name, minutes=minutes, confidence=confidence)


def category_estimate(category: str) -> tuple[int, float]:
    return CATEGORY_ESTIMATES.get(category.lower(), CATEGORY_ESTIMATES["general"])


# ── Complexity-derived ───────────────────────────────────────


def text_complexity(features: TaskFeatures) -> float:
    """Length- and keyword-density complexity in [0, 1]."""
    score = 0.0
    score += min(features.title_len / 100, 0.3)
    score += min(features.desc_len / 500, 0.4)
    score += min(features.hits("technical") / 5, 0.3)
    return score


class ComplexityProvider(EstimatorProvider):
    """Scale a Pomodoro by text complexity: 1x to 4x, clamped to 15-180 minutes."""

    name = "complexity"

    def _fallback(self) -> tuple[float, float]:
        return float(POMODORO_MINUTES), 0.3

    async def _estimate(self, context: TaskContext, features: TaskFeatures) -> EstimateVote:
        if not features.has_text:
            return self._abstain("no text")

        score = text_complexity(features)
        minutes = round(POMODORO_MINUTES * (1 + score * 3))
        return EstimateVote(
            provider=self.name,
            minutes=_clamp(minutes, 15, 180),
            confidence=0.6,
            detail=f"complexity={score:.2f}",
        )


# ── External model ───────────────────────────────────────────

ESTIMATE_SYSTEM_PROMPT = """You are an expert productivity consultant. Estimate how long a task
will take in minutes based on the title, description, category, and priority.

Consider:
- Task complexity and scope
- Category-specific time patterns
- Priority level impact
- Typical cognitive load

Respond with only a number (minutes) and confidence (0-1) in the format: minutes,confidence"""

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def parse_estimate(content: str) -> tuple[float, float]:
    """Parse "minutes,confidence" out of free-form model output.

    Raises ValueError when no minutes value can be found.
    """
    numbers = _NUMBER_RE.findall(content or "")
    if not numbers:
        raise ValueError(f"no estimate in model output: {content[:60]!r}")
    minutes = float(numbers[0])
    confidence = float(numbers[1]) if len(numbers) > 1 else 0.5
    return minutes, confidence


class ExternalModelProvider(EstimatorProvider):
    """Black-box LLM estimate. Output clamped to 5-240 minutes, 0.1-0.9 confidence."""

    name = "external_model"

    def __init__(
        self,
        llm_client: Any,
        model: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(timeout)
        self.llm_client = llm_client
        self.model = model

    def _fallback(self) -> tuple[float, float]:
        return float(POMODORO_MINUTES), 0.4

    async def _estimate(self, context: TaskContext, features: TaskFeatures) -> EstimateVote:
        if not features.has_text:
            return self._abstain("no text")

        content = await complete(
            self.llm_client,
            self.model,
            ESTIMATE_SYSTEM_PROMPT,
            describe_task(context.title, context.description, context.category, context.priority.value),
            max_tokens=50,
        )
        minutes, confidence = parse_estimate(content)
        return EstimateVote(
            provider=self.name,
            minutes=_clamp(round(minutes), 5, 240),
            confidence=_clamp(confidence, 0.1, 0.9),
        )


def default_providers(
    store: HistorySource | None = None,
    llm_client: Any = None,
    model: str = "gpt-4o-mini",
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    history_limit: int = 20,
) -> Sequence[EstimatorProvider]:
    """Standard provider line-up. Optional collaborators are skipped when absent."""
    providers: list[EstimatorProvider] = []
    if store is not None:
        providers.append(HistoricalProvider(store, limit=history_limit, timeout=timeout))
    providers.append(CategoryDefaultProvider(timeout=timeout))
    providers.append(ComplexityProvider(timeout=timeout))
    if llm_client is not None:
        providers.append(ExternalModelProvider(llm_client, model, timeout=timeout))
    return providers
