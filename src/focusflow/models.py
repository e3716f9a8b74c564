"""Core domain models for FocusFlow."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

KNOWN_CATEGORIES = (
    "planning",
    "coding",
    "testing",
    "documentation",
    "meeting",
    "research",
    "design",
    "review",
    "general",
)


class Priority(str, Enum):
    """Priority the user gave the task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Urgency(str, Enum):
    """Derived urgency tier. Same labels as Priority, different meaning."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TimeSlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class SessionType(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


# ── Task Intelligence ────────────────────────────────────────


class TaskContext(BaseModel):
    """Immutable input to the intelligence engine. Built per call."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    category: str = "general"
    priority: Priority = Priority.MEDIUM
    user_id: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, v: Any) -> str:
        label = str(v or "").strip().lower()
        return label or "general"

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}".strip()


class VoteStatus(str, Enum):
    """Outcome of a single estimator call."""

    OK = "ok"
    DEGRADED = "degraded"  # Collaborator failed; vote is the provider's fallback
    ABSTAINED = "abstained"  # Not enough input to say anything


class EstimateVote(BaseModel):
    """One estimator's opinion. Transient, lives only during aggregation.

    minutes is unconstrained: a buggy provider may emit zero or
    negative minutes, and the ensemble filters those out instead of raising.
    """

    provider: str
    minutes: float
    confidence: float = Field(ge=0.0, le=1.0)
    status: VoteStatus = VoteStatus.OK
    detail: str = ""


class EnsembleEstimate(BaseModel):
    """Combined duration estimate."""

    minutes: int = Field(ge=1)
    confidence: float = Field(ge=0.0, le=0.95)
    providers: list[str] = Field(default_factory=list)
    fallback: bool = False


class TaskClassification(BaseModel):
    complexity_score: float = Field(ge=0.0, le=1.0)
    cognitive_load: float = Field(ge=0.0, le=1.0)
    urgency: Urgency
    urgency_score: float = 0.0
    factors: list[str] = Field(default_factory=list)


class TaskRecommendations(BaseModel):
    time_slots: list[TimeSlot] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    related_tasks: list[str] = Field(default_factory=list)
    source: str = "static"  # "static" or "generated"


class ProcessingMetadata(BaseModel):
    processed_at: datetime
    version: str
    methods: list[str] = Field(default_factory=list)
    processing_time_ms: float = 0.0


class TaskIntelligenceResult(BaseModel):
    """Everything the engine knows about a task.

    Two confidences:
    - confidence: how rich the input was (title, description, history, ...)
    - estimate_confidence: how well the duration estimators agreed
    """

    estimated_duration: int = Field(ge=1)  # minutes
    complexity_score: float = Field(ge=0.0, le=1.0)
    cognitive_load: float = Field(ge=0.0, le=1.0)
    urgency: Urgency
    tags: list[str] = Field(default_factory=list)
    suggested_time_slots: list[TimeSlot] = Field(default_factory=list)
    optimization_tips: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    related_tasks: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=0.95)
    estimate_confidence: float = Field(default=0.0, ge=0.0, le=0.95)
    processing_metadata: ProcessingMetadata

    @property
    def is_fallback(self) -> bool:
        return "fallback" in self.processing_metadata.methods


# ── Records (read from the record store) ─────────────────────


class TaskRecord(BaseModel):
    """A task as persisted by the app. Durations are in minutes."""

    id: str
    user_id: str = ""
    title: str = ""
    description: str = ""
    category: str = "general"
    priority: Priority = Priority.MEDIUM
    created_at: datetime
    completed_at: datetime | None = None
    is_completed: bool = False
    estimated_duration_minutes: float | None = None
    actual_duration_minutes: float | None = None
    pomodoro_sessions: int = 0
    intelligence: TaskIntelligenceResult | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, v: Any) -> str:
        label = str(v or "").strip().lower()
        return label or "general"


class SessionRecord(BaseModel):
    """A single timer session (focus block or break)."""

    id: str
    user_id: str = ""
    task_id: str | None = None
    start_time: datetime
    duration_minutes: float = 0.0
    session_type: SessionType = SessionType.FOCUS
    completed: bool = True

    @property
    def is_break(self) -> bool:
        return self.session_type != SessionType.FOCUS


# ── Analytics ────────────────────────────────────────────────


class ProductivityMetrics(BaseModel):
    """Totals and rates for one window. All durations in minutes."""

    total_tasks: int = 0
    completed_tasks: int = 0
    total_time_spent: float = 0.0
    average_time_per_task: float = 0.0
    tasks_per_day: float = 0.0
    focus_time: float = 0.0
    break_time: float = 0.0
    productivity_score: float = 0.0  # 0.0 to 1.0
    estimation_accuracy: float = 0.0  # 0.0 to 1.0 (can dip below 0 on wild misses)
    active_days: int = 0
    streak_days: int = 0


class PatternType(str, Enum):
    TIME = "time"
    CATEGORY = "category"
    DURATION = "duration"
    ESTIMATION = "estimation"


class ProductivityPattern(BaseModel):
    type: PatternType
    description: str
    strength: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    data: dict[str, Any] = Field(default_factory=dict)


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProductivityRecommendation(BaseModel):
    type: str  # "estimation", "focusTime", "breaks", ...
    title: str
    description: str
    impact: Impact
    effort: Impact


class TimeDistribution(BaseModel):
    """Minutes bucketed for charting. by_day uses Python weekdays (Monday = 0)."""

    by_category: dict[str, float] = Field(default_factory=dict)
    by_hour: dict[int, float] = Field(default_factory=dict)
    by_day: dict[int, float] = Field(default_factory=dict)


class EfficiencyScores(BaseModel):
    overall: float = 0.0
    estimation: float = 0.0
    focus: float = 0.0
    consistency: float = 0.0
    time_management: float = 0.0


class UserAnalytics(BaseModel):
    """A fully recomputed analytics snapshot for one user and date range."""

    user_id: str
    period_start: datetime
    period_end: datetime
    metrics: ProductivityMetrics = Field(default_factory=ProductivityMetrics)
    patterns: list[ProductivityPattern] = Field(default_factory=list)
    recommendations: list[ProductivityRecommendation] = Field(default_factory=list)
    time_distribution: TimeDistribution = Field(default_factory=TimeDistribution)
    efficiency: EfficiencyScores = Field(default_factory=EfficiencyScores)
    last_updated: datetime


# ── Insights ─────────────────────────────────────────────────


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class MetricTrend(BaseModel):
    metric: str
    trend: TrendDirection = TrendDirection.STABLE
    value: float = 0.0
    delta: float = 0.0


class ProductivityInsights(BaseModel):
    """Human-readable layer on top of a snapshot."""

    user_id: str
    generated_at: datetime
    insights: list[str] = Field(default_factory=list)
    trends: list[MetricTrend] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)


class CompletionInsight(BaseModel):
    """Feedback emitted when a single task is completed."""

    type: str  # "estimation_accuracy", "estimation_improvement", "focus_session"
    message: str
    task_id: str
    score: float | None = None
    sessions: int | None = None


class IntelligenceSummary(BaseModel):
    """How well past estimates held up against reality."""

    total_tasks_processed: int = 0
    average_accuracy: float = 0.0
    top_categories: list[str] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)


class RankedTask(BaseModel):
    task: TaskRecord
    score: float
