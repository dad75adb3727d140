"""
Pydantic models for the learning path engine.

Graph: topic nodes and per-topic metadata.
Learner state: tutor context, progress records, performance histories.
Results: learning paths, difficulty adjustments, visualizations, metrics.
"""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =========================================================================
# Literals
# =========================================================================

SkillLevel = Literal["beginner", "intermediate", "advanced"]
SKILL_LEVELS = ("beginner", "intermediate", "advanced")

NodeStatus = Literal["completed", "current", "upcoming", "struggled", "locked"]
EdgeType = Literal["prerequisite", "recommended"]
LearningPace = Literal["slow", "moderate", "fast"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =========================================================================
# Knowledge graph
# =========================================================================


class TopicNode(BaseModel):
    """A single topic in the prerequisite graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    topic: str
    prerequisites: List[str] = Field(default_factory=list)
    difficulty: float = Field(ge=1, le=10)
    estimated_time_minutes: int = Field(ge=0)
    dependencies: List[str] = Field(default_factory=list)
    next_topics: List[str] = Field(default_factory=list)
    concepts: List[str] = Field(default_factory=list)


class TopicMetadata(BaseModel):
    """Auxiliary per-topic data used for prioritization and remediation."""

    model_config = ConfigDict(frozen=True)

    required_for: List[str] = Field(default_factory=list)
    building_blocks: List[str] = Field(default_factory=list)
    common_struggles: List[str] = Field(default_factory=list)
    remedial_content: List[str] = Field(default_factory=list)
    practice_exercises: List[str] = Field(default_factory=list)


# =========================================================================
# Learner state
# =========================================================================


class TutorContext(BaseModel):
    """Caller-supplied snapshot of where a learner stands."""

    current_topic: str
    completed_topics: List[str] = Field(default_factory=list)
    struggled_topics: List[str] = Field(default_factory=list)
    recent_concepts: List[str] = Field(default_factory=list)


class ProgressRecord(BaseModel):
    """Mutable per-learner progress, one per learner id."""

    learner_id: str
    current_topic: str = ""
    completed_topics: List[str] = Field(default_factory=list)
    struggled_topics: List[str] = Field(default_factory=list)
    topic_scores: Dict[str, float] = Field(default_factory=dict)
    average_completion_time: float = 0.0
    last_activity: datetime = Field(default_factory=_utcnow)
    skill_level: SkillLevel = "intermediate"
    recommended_path: List[str] = Field(default_factory=list)


class PerformanceHistory(BaseModel):
    """Rolling score history and current difficulty of one topic."""

    topic_id: str
    scores: List[float] = Field(default_factory=list)
    difficulty: Optional[float] = None


# =========================================================================
# Boundary inputs
# =========================================================================


class PerformanceSample(BaseModel):
    """A single observed performance score."""

    score: float = Field(ge=0.0, le=1.0, allow_inf_nan=False)


class AttemptSample(BaseModel):
    """One attempt as reported to the difficulty adjuster."""

    performance_score: float = Field(ge=0.0, le=1.0, allow_inf_nan=False)
    time_spent_minutes: float = Field(ge=0.0, allow_inf_nan=False)
    attempt_count: int = Field(ge=0)


# =========================================================================
# Results
# =========================================================================


class LearningPath(BaseModel):
    """Recommended route for a learner, recomputed on demand."""

    nodes: List[TopicNode] = Field(default_factory=list)
    current_node: str = ""
    completed_nodes: List[str] = Field(default_factory=list)
    struggled_nodes: List[str] = Field(default_factory=list)
    recommended_path: List[str] = Field(default_factory=list)


class DifficultyAdjustment(BaseModel):
    """Outcome of one adaptive difficulty step."""

    previous_difficulty: float
    new_difficulty: float
    reason: str
    adaptive_feedback: List[str] = Field(default_factory=list)


class VisualNode(BaseModel):
    id: str
    label: str
    status: NodeStatus
    difficulty: float
    progress: float
    prerequisites: List[str] = Field(default_factory=list)
    estimated_time: int


class VisualEdge(BaseModel):
    source: str
    target: str
    type: EdgeType


class PathMetrics(BaseModel):
    total_time: int = 0
    completed_time: int = 0
    remaining_time: int = 0
    progress_percentage: float = 0.0


class PathVisualization(BaseModel):
    """Render-ready projection of a learner's path."""

    nodes: List[VisualNode] = Field(default_factory=list)
    edges: List[VisualEdge] = Field(default_factory=list)
    current_path: List[str] = Field(default_factory=list)
    alternative_paths: List[List[str]] = Field(default_factory=list)
    metrics: PathMetrics = Field(default_factory=PathMetrics)


class LearningMetrics(BaseModel):
    """Aggregate view of one learner's progress."""

    completion_rate: float = 0.0
    average_score: float = 0.0
    struggled_topics_count: int = 0
    time_spent_minutes: float = 0.0
    concept_mastery: Dict[str, float] = Field(default_factory=dict)
    learning_pace: LearningPace = "moderate"
    strengths: List[str] = Field(default_factory=list)
    struggle_areas: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    alerts: List[str] = Field(default_factory=list)
