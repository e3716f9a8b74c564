"""Task intelligence facade: one call from raw task to enriched result.

Orchestrates feature extraction, classification, the estimator ensemble and
recommendations. This is the only layer that catches unexpected errors: if
anything in the pipeline blows up, the caller gets a per-category fallback
result (confidence 0.3, method "fallback") instead of an exception.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

import structlog

from focusflow.config import FocusFlowConfig
from focusflow.intelligence.classifier import classify
from focusflow.intelligence.ensemble import combine_votes
from focusflow.intelligence.features import TaskFeatures, extract_features, extract_keywords
from focusflow.intelligence.providers import (
    EstimatorProvider,
    HistorySource,
    default_providers,
)
from focusflow.intelligence.recommender import Recommender
from focusflow.models import (
    EstimateVote,
    Priority,
    ProcessingMetadata,
    TaskContext,
    TaskIntelligenceResult,
    TaskRecommendations,
    TimeSlot,
    Urgency,
    VoteStatus,
)

logger = structlog.get_logger()

ENGINE_VERSION = "1.0.0"
MAX_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.3
NO_TEXT_CONFIDENCE_CAP = 0.5

# Per-category fallback when the pipeline itself fails.
# (minutes, complexity, cognitive load, time slots, tips)
FALLBACK_DEFAULTS: dict[str, tuple[int, float, float, list[TimeSlot], list[str]]] = {
    "planning": (30, 0.4, 0.6, [TimeSlot.MORNING], ["Create clear objectives", "Break into phases"]),
    "coding": (60, 0.7, 0.8, [TimeSlot.MORNING, TimeSlot.AFTERNOON], ["Use focus blocks", "Test incrementally"]),
    "testing": (45, 0.5, 0.6, [TimeSlot.AFTERNOON], ["Prepare test cases", "Document findings"]),
    "documentation": (35, 0.3, 0.4, [TimeSlot.AFTERNOON, TimeSlot.EVENING], ["Outline first", "Use templates"]),
    "meeting": (30, 0.2, 0.3, [TimeSlot.MORNING, TimeSlot.AFTERNOON], ["Prepare agenda", "Take notes"]),
    "research": (90, 0.6, 0.7, [TimeSlot.MORNING], ["Define scope", "Use multiple sources"]),
    "design": (75, 0.8, 0.8, [TimeSlot.MORNING, TimeSlot.AFTERNOON], ["Start with wireframes", "Iterate frequently"]),
    "review": (20, 0.3, 0.4, [TimeSlot.AFTERNOON, TimeSlot.EVENING], ["Use checklists", "Focus on key areas"]),
    "general": (25, 0.5, 0.5, [TimeSlot.MORNING], ["Break into smaller chunks", "Use the Pomodoro technique"]),
}


def fallback_result(context: TaskContext) -> TaskIntelligenceResult:
    """Fixed result for a category, used when processing fails."""
    minutes, complexity, load, slots, tips = FALLBACK_DEFAULTS.get(
        context.category, FALLBACK_DEFAULTS["general"]
    )
    return TaskIntelligenceResult(
        estimated_duration=minutes,
        complexity_score=complexity,
        cognitive_load=load,
        urgency=Urgency(context.priority.value),
        tags=[context.category, context.priority.value],
        suggested_time_slots=list(slots),
        optimization_tips=list(tips),
        confidence=FALLBACK_CONFIDENCE,
        estimate_confidence=FALLBACK_CONFIDENCE,
        processing_metadata=ProcessingMetadata(
            processed_at=datetime.now(timezone.utc),
            version=ENGINE_VERSION,
            methods=["fallback"],
        ),
    )


def build_tags(context: TaskContext) -> list[str]:
    tags = [context.category, context.priority.value, *extract_keywords(context.text)]
    return list(dict.fromkeys(tags))


def input_confidence(
    context: TaskContext,
    features: TaskFeatures,
    tags: Sequence[str],
    recommendations: TaskRecommendations,
    history_available: bool,
) -> float:
    """How much the input gives us to go on. Independent of estimator agreement."""
    confidence = 0.5

    # Title quality
    if features.title_len > 10:
        confidence += 0.1
    if features.title_len > 25:
        confidence += 0.1

    # Description quality
    if features.desc_len > 20:
        confidence += 0.15
    if features.desc_len > 100:
        confidence += 0.15

    if history_available:
        confidence += 0.1

    if tags:
        confidence += 0.1
    if recommendations.tips:
        confidence += 0.1
    if recommendations.time_slots:
        confidence += 0.05

    if context.category != "general":
        confidence += 0.05
    if context.priority != Priority.MEDIUM:
        confidence += 0.05

    confidence = min(confidence, MAX_CONFIDENCE)
    if not features.has_text:
        confidence = min(confidence, NO_TEXT_CONFIDENCE_CAP)
    return round(confidence, 4)


class TaskIntelligenceEngine:
    """Estimate, classify and advise on tasks."""

    def __init__(
        self,
        providers: Iterable[EstimatorProvider] | None = None,
        recommender: Recommender | None = None,
        batch_size: int = 5,
        batch_pause: float = 1.0,
    ) -> None:
        self.providers = list(providers) if providers is not None else list(default_providers())
        self.recommender = recommender or Recommender()
        self.batch_size = max(1, batch_size)
        self.batch_pause = batch_pause

    @classmethod
    def from_config(
        cls,
        config: FocusFlowConfig,
        store: HistorySource | None = None,
        llm_client: Any = None,
    ) -> TaskIntelligenceEngine:
        """Wire providers and recommender from configuration."""
        timeout = config.provider_timeout_seconds
        return cls(
            providers=default_providers(
                store=store,
                llm_client=llm_client,
                model=config.llm_model,
                timeout=timeout,
                history_limit=config.history_limit,
            ),
            recommender=Recommender(llm_client, config.llm_model, timeout=timeout),
            batch_size=config.batch_size,
            batch_pause=config.batch_pause_seconds,
        )

    async def _collect_votes(self, context: TaskContext, features: TaskFeatures) -> list[EstimateVote]:
        return list(await asyncio.gather(*(p.vote(context, features) for p in self.providers)))

    async def estimate(self, context: TaskContext) -> TaskIntelligenceResult:
        """Process one task. Never raises."""
        started = time.perf_counter()
        try:
            features = extract_features(context)
            classification = classify(context, features)

            votes, recommendations = await asyncio.gather(
                self._collect_votes(context, features),
                self.recommender.recommend(context, classification),
            )
            ensemble = combine_votes(votes)

            history_available = any(
                v.provider == "historical" and v.status == VoteStatus.OK and v.confidence > 0
                for v in votes
            )
            tags = build_tags(context)

            methods = ["classification"]
            if ensemble.fallback:
                methods.append("estimator:pomodoro_default")
            else:
                methods.extend(f"estimator:{name}" for name in ensemble.providers)
            methods.append(f"recommendations:{recommendations.source}")

            result = TaskIntelligenceResult(
                estimated_duration=ensemble.minutes,
                complexity_score=classification.complexity_score,
                cognitive_load=classification.cognitive_load,
                urgency=classification.urgency,
                tags=tags,
                suggested_time_slots=recommendations.time_slots,
                optimization_tips=recommendations.tips,
                prerequisites=recommendations.prerequisites,
                related_tasks=recommendations.related_tasks,
                confidence=input_confidence(context, features, tags, recommendations, history_available),
                estimate_confidence=round(ensemble.confidence, 4),
                processing_metadata=ProcessingMetadata(
                    processed_at=datetime.now(timezone.utc),
                    version=ENGINE_VERSION,
                    methods=methods,
                    processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
                ),
            )

            degraded = [v.provider for v in votes if v.status == VoteStatus.DEGRADED]
            logger.info(
                "task_estimated",
                title=context.title[:60],
                minutes=result.estimated_duration,
                urgency=result.urgency.value,
                confidence=result.confidence,
                degraded_providers=degraded,
            )
            return result

        except Exception as e:
            logger.error("task_intelligence_failed", title=context.title[:60], error=str(e))
            return fallback_result(context)

    async def estimate_many(
        self,
        contexts: Iterable[TaskContext],
        cancel: asyncio.Event | None = None,
    ) -> dict[int, TaskIntelligenceResult]:
        """Process tasks in small concurrent batches with a pause in between.

        Setting `cancel` stops new batches from starting; the batch in flight
        finishes. Returns results keyed by input position for processed items.
        """
        items = list(contexts)
        results: dict[int, TaskIntelligenceResult] = {}

        for start in range(0, len(items), self.batch_size):
            if cancel is not None and cancel.is_set():
                logger.info("batch_cancelled", processed=len(results), remaining=len(items) - start)
                break

            batch = items[start:start + self.batch_size]
            outcomes = await asyncio.gather(*(self.estimate(c) for c in batch))
            for offset, result in enumerate(outcomes):
                results[start + offset] = result

            # Small delay between batches to respect rate limits
            if start + self.batch_size < len(items) and self.batch_pause > 0:
                await asyncio.sleep(self.batch_pause)

        logger.info("batch_completed", requested=len(items), processed=len(results))
        return results
