"""Scheduling and working-style recommendations for a task.

Static per-category tables are always available. An external generator can
produce richer, task-specific advice, but anything malformed or empty falls
back to the tables: a caller never sees an empty recommendation set.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from focusflow.intelligence.llm import complete, describe_task, strip_code_fences
from focusflow.models import TaskClassification, TaskContext, TaskRecommendations, TimeSlot

logger = structlog.get_logger()

M, A, E = TimeSlot.MORNING, TimeSlot.AFTERNOON, TimeSlot.EVENING

TIME_SLOTS: dict[str, list[TimeSlot]] = {
    "planning": [M],
    "coding": [M, A],
    "testing": [A],
    "documentation": [A, E],
    "meeting": [M, A],
    "research": [M],
    "design": [M, A],
    "review": [A, E],
    "general": [M],
}

TIPS: dict[str, list[str]] = {
    "planning": ["Create clear objectives", "Break into phases", "Set measurable outcomes"],
    "coding": ["Use focus blocks", "Test incrementally", "Write clean, readable code"],
    "testing": ["Prepare test cases", "Document findings", "Test edge cases"],
    "documentation": ["Outline first", "Use templates", "Keep it concise"],
    "meeting": ["Prepare agenda", "Take notes", "Follow up on action items"],
    "research": ["Define scope", "Use multiple sources", "Take organized notes"],
    "design": ["Start with wireframes", "Iterate frequently", "Get early feedback"],
    "review": ["Use checklists", "Focus on key areas", "Provide constructive feedback"],
    "general": ["Break into smaller chunks", "Use the Pomodoro technique"],
}

PREREQUISITES: dict[str, list[str]] = {
    "planning": ["Gather goals and constraints"],
    "coding": ["Clarify acceptance criteria", "Set up a working dev environment"],
    "testing": ["Have a build to test against"],
    "documentation": ["Collect source material"],
    "meeting": ["Share the agenda with attendees"],
    "research": ["Write down the question to answer"],
    "design": ["Collect requirements and references"],
    "review": ["Get access to the material under review"],
    "general": [],
}

HIGH_COMPLEXITY = 0.7
HIGH_COGNITIVE_LOAD = 0.7


def static_recommendations(
    category: str,
    classification: TaskClassification | None = None,
) -> TaskRecommendations:
    """Table lookup, nudged by how hard the task looks."""
    key = category if category in TIME_SLOTS else "general"
    slots = list(TIME_SLOTS[key])
    tips = list(TIPS[key])

    if classification is not None:
        if classification.complexity_score >= HIGH_COMPLEXITY:
            if M not in slots:
                slots.insert(0, M)
            tips.append("Reserve a long, uninterrupted focus block")
        if classification.cognitive_load >= HIGH_COGNITIVE_LOAD:
            tips.append("Schedule it before shallow work, while energy is high")

    return TaskRecommendations(
        time_slots=slots,
        tips=tips,
        prerequisites=list(PREREQUISITES[key]),
        source="static",
    )


# ── External generator ───────────────────────────────────────

RECOMMEND_SYSTEM_PROMPT = """You are a productivity expert. Analyze the task and provide recommendations in JSON format:
{
  "timeSlots": ["morning", "afternoon", "evening"],
  "tips": ["tip1", "tip2", "tip3"],
  "prerequisites": ["prereq1", "prereq2"],
  "relatedTasks": ["related1", "related2"]
}

Consider:
- Optimal times for this type of work
- Productivity tips specific to the task
- What needs to be done first
- Similar or related tasks that could be grouped"""


class GeneratedRecommendations(BaseModel):
    """Shape the external generator is asked to return."""

    timeSlots: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    relatedTasks: list[str] = Field(default_factory=list)


def parse_generated(content: str) -> TaskRecommendations | None:
    """Parse generator output. Returns None if unusable."""
    try:
        raw = GeneratedRecommendations.model_validate(json.loads(strip_code_fences(content)))
    except (json.JSONDecodeError, ValidationError, TypeError):
        return None

    valid = {s.value for s in TimeSlot}
    lowered = dict.fromkeys(s.strip().lower() for s in raw.timeSlots)
    slots = [TimeSlot(s) for s in lowered if s in valid]
    tips = [t.strip() for t in raw.tips if t.strip()]
    if not slots or not tips:
        return None

    return TaskRecommendations(
        time_slots=slots,
        tips=tips,
        prerequisites=[p.strip() for p in raw.prerequisites if p.strip()],
        related_tasks=[r.strip() for r in raw.relatedTasks if r.strip()],
        source="generated",
    )


class Recommender:
    """Static tables, optionally upgraded by an external generator."""

    def __init__(
        self,
        llm_client: Any = None,
        model: str = "gpt-4o-mini",
        timeout: float = 5.0,
    ) -> None:
        self.llm_client = llm_client
        self.model = model
        self.timeout = timeout

    async def recommend(
        self,
        context: TaskContext,
        classification: TaskClassification | None = None,
    ) -> TaskRecommendations:
        fallback = static_recommendations(context.category, classification)
        if self.llm_client is None or not context.text:
            return fallback

        try:
            content = await asyncio.wait_for(
                complete(
                    self.llm_client,
                    self.model,
                    RECOMMEND_SYSTEM_PROMPT,
                    describe_task(context.title, context.description, context.category, context.priority.value),
                    max_tokens=400,
                    temperature=0.4,
                ),
                self.timeout,
            )
        except Exception as e:
            logger.warning("recommendations_unavailable", error=str(e) or type(e).__name__)
            return fallback

        generated = parse_generated(content)
        if generated is None:
            logger.warning("recommendations_malformed", preview=content[:80])
            return fallback

        if not generated.prerequisites:
            generated.prerequisites = fallback.prerequisites
        return generated
