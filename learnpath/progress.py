"""
Per-learner progress tracking.

Threshold policy for ``update_progress``:

- score >= mastery threshold (0.8): completed, no longer struggled; the
  current topic advances to its first next topic when it was the one
  just mastered.
- score <  struggle threshold (0.6): struggled, no longer completed.
- otherwise: completed/struggled sets unchanged.

Every mutation refreshes the learner's cached recommended path using the
learner's last-known skill level.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from learnpath.config import EngineConfig
from learnpath.models import ProgressRecord, SkillLevel, TutorContext
from learnpath.path_optimizer import PathOptimizer
from learnpath.store import ProgressRepository

logger = logging.getLogger(__name__)


def _add(items: List[str], item: str) -> None:
    if item not in items:
        items.append(item)


def _remove(items: List[str], item: str) -> None:
    if item in items:
        items.remove(item)


class ProgressTracker:
    """Reads and mutates ``ProgressRecord``s through a repository."""

    def __init__(
        self,
        repository: ProgressRepository,
        optimizer: PathOptimizer,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.repository = repository
        self.optimizer = optimizer
        self.config = config or EngineConfig()

    def get(self, learner_id: str) -> Optional[ProgressRecord]:
        return self.repository.get(learner_id)

    def get_or_create(self, learner_id: str, current_topic: str = "") -> ProgressRecord:
        record = self.repository.get(learner_id)
        if record is None:
            record = ProgressRecord(
                learner_id=learner_id,
                current_topic=current_topic,
                skill_level=self.config.default_skill_level,
            )
            logger.info("Created progress record for learner %r.", learner_id)
        return record

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply_context(
        self,
        learner_id: str,
        context: TutorContext,
        skill_level: SkillLevel,
    ) -> ProgressRecord:
        """Merge a caller's context into the stored record and refresh the path.

        Stored observations win over the context: a topic the learner has
        since regressed on stays struggled, one since mastered stays
        completed.
        """
        record = self.get_or_create(learner_id, context.current_topic)

        stored_completed = list(record.completed_topics)
        stored_struggled = list(record.struggled_topics)

        completed: List[str] = []
        for topic in context.completed_topics + stored_completed:
            if topic not in stored_struggled:
                _add(completed, topic)
        struggled: List[str] = []
        for topic in context.struggled_topics + stored_struggled:
            if topic not in completed:
                _add(struggled, topic)

        record.current_topic = context.current_topic
        record.completed_topics = completed
        record.struggled_topics = struggled
        record.skill_level = skill_level
        return self._refresh_and_save(record)

    def update_progress(
        self,
        learner_id: str,
        topic_id: str,
        performance_score: float,
    ) -> ProgressRecord:
        """Apply the threshold policy for one observed score."""
        cfg = self.config
        record = self.get_or_create(learner_id, topic_id)

        if performance_score >= cfg.mastery_threshold:
            _add(record.completed_topics, topic_id)
            _remove(record.struggled_topics, topic_id)
            if record.current_topic == topic_id:
                next_topics = self.optimizer.graph.get_next_topics(topic_id)
                if next_topics:
                    record.current_topic = next_topics[0]
                    logger.info(
                        "Learner %r advanced %r → %r.",
                        learner_id, topic_id, record.current_topic,
                    )
        elif performance_score < cfg.struggle_threshold:
            _add(record.struggled_topics, topic_id)
            _remove(record.completed_topics, topic_id)

        record.topic_scores[topic_id] = float(performance_score)
        record.last_activity = datetime.now(timezone.utc)
        return self._refresh_and_save(record)

    def record_completion_time(self, learner_id: str, minutes: float) -> ProgressRecord:
        """Fold *minutes* into the learner's average completion time (EMA)."""
        alpha = self.config.completion_time_alpha
        record = self.get_or_create(learner_id)
        previous = record.average_completion_time or minutes
        record.average_completion_time = alpha * minutes + (1 - alpha) * previous
        record.last_activity = datetime.now(timezone.utc)
        self.repository.put(record)
        return record

    # ------------------------------------------------------------------

    def _refresh_and_save(self, record: ProgressRecord) -> ProgressRecord:
        record.recommended_path = self.optimizer.compute_path(
            record.current_topic,
            record.completed_topics,
            record.struggled_topics,
            record.skill_level,
        )
        self.repository.put(record)
        return record
