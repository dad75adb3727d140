"""
Library facade for the learning path engine.

Wires the knowledge graph, path optimizer, progress tracker, difficulty
adjuster, projector and analytics together behind one object. Inputs are
validated here, before any state changes, and every learner-scoped
operation runs under that learner's lock.

Usage::

    engine = LearningPathEngine.from_config(load_config())
    path = engine.generate_learning_path(
        "learner-1", TutorContext(current_topic="functions"), "beginner",
    )
    engine.update_progress("learner-1", "variables", 0.9)
"""

import logging
from typing import List, Optional

from learnpath import analytics
from learnpath.config import EngineConfig
from learnpath.difficulty import DifficultyAdjuster
from learnpath.knowledge_graph import (
    KnowledgeGraph,
    default_knowledge_graph,
    load_knowledge_graph,
)
from learnpath.locks import LearnerLocks
from learnpath.models import (
    DifficultyAdjustment,
    LearningMetrics,
    LearningPath,
    PathVisualization,
    ProgressRecord,
    SkillLevel,
    TutorContext,
)
from learnpath.path_optimizer import PathOptimizer
from learnpath.progress import ProgressTracker
from learnpath.projector import PathProjector
from learnpath.store import (
    InMemoryStore,
    KeyValueStore,
    PerformanceRepository,
    ProgressRepository,
    SQLiteStore,
)
from learnpath.validation import (
    check_attempt,
    check_learner_id,
    check_score,
    check_skill_level,
)

logger = logging.getLogger(__name__)


class LearningPathEngine:
    """In-process entry point implementing the engine's external contract."""

    def __init__(
        self,
        graph: KnowledgeGraph,
        store: Optional[KeyValueStore] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.graph = graph
        self.config = config or EngineConfig()
        self.store = store if store is not None else InMemoryStore()

        self.optimizer = PathOptimizer(graph)
        self.progress = ProgressTracker(ProgressRepository(self.store), self.optimizer, self.config)
        self.adjuster = DifficultyAdjuster(PerformanceRepository(self.store), self.config)
        self.projector = PathProjector()
        self._locks = LearnerLocks()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "LearningPathEngine":
        """Load the configured dataset and storage backend."""
        if config.dataset_path:
            graph = load_knowledge_graph(config.dataset_path)
        else:
            graph = default_knowledge_graph()
        store: KeyValueStore = SQLiteStore(config.db_path) if config.db_path else InMemoryStore()
        logger.info(
            "Engine ready: topics=%d, store=%s", len(graph), type(store).__name__,
        )
        return cls(graph, store, config)

    def close(self) -> None:
        self.store.close()

    # =====================================================================
    # Paths and progress
    # =====================================================================

    def generate_learning_path(
        self,
        learner_id: str,
        context: TutorContext,
        skill_level: SkillLevel,
    ) -> LearningPath:
        """Compute (and cache) the recommended path for a learner."""
        check_learner_id(learner_id)
        level = check_skill_level(skill_level)
        with self._locks.hold(learner_id):
            record = self.progress.apply_context(learner_id, context, level)
            return self._path_from_record(record)

    def update_progress(self, learner_id: str, topic_id: str, performance_score: float) -> None:
        """Record a score for *topic_id* and refresh the learner's path."""
        check_learner_id(learner_id)
        score = check_score(performance_score)
        with self._locks.hold(learner_id):
            self.progress.update_progress(learner_id, topic_id, score)

    def get_progress(self, learner_id: str) -> Optional[ProgressRecord]:
        with self._locks.hold(learner_id):
            return self.progress.get(learner_id)

    # =====================================================================
    # Graph lookups
    # =====================================================================

    def get_remedial_content(self, topic_id: str) -> List[str]:
        return self.graph.get_remedial_content(topic_id)

    def get_prerequisites(self, topic_id: str) -> List[str]:
        return self.graph.get_prerequisites(topic_id)

    def get_next_topics(self, topic_id: str) -> List[str]:
        return self.graph.get_next_topics(topic_id)

    # =====================================================================
    # Difficulty
    # =====================================================================

    def adjust_difficulty(
        self,
        topic_id: str,
        performance_score: float,
        time_spent_minutes: float,
        attempt_count: int,
        learner_id: Optional[str] = None,
    ) -> DifficultyAdjustment:
        """Adapt *topic_id*'s difficulty from the latest attempt.

        Without *learner_id* the history is shared by all callers of the
        engine; with it, the history is the learner's own and the attempt
        time also feeds the learner's average completion time.
        """
        attempt = check_attempt(performance_score, time_spent_minutes, attempt_count)
        if learner_id is None:
            with self._locks.hold(""):
                return self.adjuster.adjust_difficulty(
                    topic_id,
                    attempt.performance_score,
                    attempt.time_spent_minutes,
                    attempt.attempt_count,
                )

        check_learner_id(learner_id)
        with self._locks.hold(learner_id):
            result = self.adjuster.adjust_difficulty(
                topic_id,
                attempt.performance_score,
                attempt.time_spent_minutes,
                attempt.attempt_count,
                scope=learner_id,
            )
            self.progress.record_completion_time(learner_id, attempt.time_spent_minutes)
            return result

    # =====================================================================
    # Read models
    # =====================================================================

    def visualize(self, learner_id: str) -> Optional[PathVisualization]:
        """Project the learner's cached path, or ``None`` for unknown learners."""
        with self._locks.hold(learner_id):
            record = self.progress.get(learner_id)
            if record is None:
                return None
            return self.projector.project(self._path_from_record(record), record)

    def analytics(self, learner_id: str) -> Optional[LearningMetrics]:
        with self._locks.hold(learner_id):
            record = self.progress.get(learner_id)
            if record is None:
                return None
            return analytics.summarize(record, self.graph)

    # ---------------------------------------------------------------------

    def _path_from_record(self, record: ProgressRecord) -> LearningPath:
        nodes = [self.graph.get_node(t) for t in record.recommended_path]
        return LearningPath(
            nodes=[n for n in nodes if n is not None],
            current_node=record.current_topic,
            completed_nodes=list(record.completed_topics),
            struggled_nodes=list(record.struggled_topics),
            recommended_path=list(record.recommended_path),
        )
