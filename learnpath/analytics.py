"""
Learner analytics: completion, mastery, pace, recommendations and alerts
derived from a ``ProgressRecord``.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from learnpath.knowledge_graph import KnowledgeGraph
from learnpath.models import LearningMetrics, LearningPace, ProgressRecord

logger = logging.getLogger(__name__)

MASTERY_THRESHOLD = 0.8
STRUGGLE_THRESHOLD = 0.6
CONSISTENCY_THRESHOLD = 0.7

# Baseline minutes per topic for pace classification.
BASELINE_MINUTES = 60.0

INACTIVITY_ALERT_DAYS = 7
STRUGGLE_ALERT_COUNT = 2


def learning_pace(average_minutes: float) -> LearningPace:
    if average_minutes < BASELINE_MINUTES * 0.8:
        return "fast"
    if average_minutes > BASELINE_MINUTES * 1.2:
        return "slow"
    return "moderate"


def activity_consistency(days_inactive: float) -> float:
    """1.0 for activity today, decaying towards 0 after a month away."""
    if days_inactive <= 0:
        return 1.0
    if days_inactive <= 2:
        return 0.8
    if days_inactive <= 7:
        return 0.5
    return max(0.0, 1 - days_inactive / 30)


def _recommendations(
    record: ProgressRecord,
    graph: KnowledgeGraph,
    days_inactive: float,
) -> List[str]:
    recs: List[str] = []
    for topic in record.struggled_topics:
        for content in graph.get_remedial_content(topic):
            recs.append(f"Review {topic} starting with {content}")

    for topic, score in record.topic_scores.items():
        if score < MASTERY_THRESHOLD and topic not in record.struggled_topics:
            for content in graph.get_remedial_content(topic):
                recs.append(f"Practice {topic} with {content}")

    if activity_consistency(days_inactive) < CONSISTENCY_THRESHOLD:
        recs.append("Try to maintain a more consistent learning schedule")
    return recs


def _alerts(record: ProgressRecord, days_inactive: float) -> List[str]:
    alerts: List[str] = []
    if days_inactive > INACTIVITY_ALERT_DAYS:
        alerts.append(f"No activity for {int(days_inactive)} days")
    if len(record.struggled_topics) > STRUGGLE_ALERT_COUNT:
        alerts.append(
            "Multiple topics need attention: " + ", ".join(record.struggled_topics)
        )
    return alerts


def summarize(
    record: ProgressRecord,
    graph: KnowledgeGraph,
    now: Optional[datetime] = None,
) -> LearningMetrics:
    """Fold a learner's record into a ``LearningMetrics`` summary.

    Args:
        record: The learner's progress.
        graph: Topic graph, used for completion rate and remedial content.
        now: Reference time for inactivity (defaults to current UTC time).
    """
    now = now or datetime.now(timezone.utc)
    last = record.last_activity
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    days_inactive = max(0.0, (now - last).total_seconds() / 86400)

    scores = record.topic_scores
    average_score = sum(scores.values()) / max(1, len(scores))

    strengths = [
        t for t, s in scores.items()
        if s >= MASTERY_THRESHOLD or t in record.completed_topics
    ]
    struggle_areas = [
        t for t, s in scores.items()
        if s <= STRUGGLE_THRESHOLD or t in record.struggled_topics
    ]
    for topic in record.struggled_topics:
        if topic not in struggle_areas:
            struggle_areas.append(topic)

    completion_rate = len(record.completed_topics) / len(graph) if len(graph) else 0.0
    time_spent = record.average_completion_time * len(record.completed_topics)

    metrics = LearningMetrics(
        completion_rate=completion_rate,
        average_score=average_score,
        struggled_topics_count=len(record.struggled_topics),
        time_spent_minutes=time_spent,
        concept_mastery=dict(scores),
        learning_pace=learning_pace(record.average_completion_time),
        strengths=strengths,
        struggle_areas=struggle_areas,
        recommendations=_recommendations(record, graph, days_inactive),
        alerts=_alerts(record, days_inactive),
    )
    logger.debug(
        "Analytics for %r: completion=%.2f, avg_score=%.2f, pace=%s",
        record.learner_id, metrics.completion_rate, metrics.average_score,
        metrics.learning_pace,
    )
    return metrics
