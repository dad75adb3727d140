"""
Render-ready projection of a learner's path: node statuses, edges,
aggregate time metrics and alternative orderings.
"""

import logging
from typing import Dict, List

from learnpath.models import (
    LearningPath,
    NodeStatus,
    PathMetrics,
    PathVisualization,
    ProgressRecord,
    TopicNode,
    VisualEdge,
    VisualNode,
)

logger = logging.getLogger(__name__)


class PathProjector:
    """Pure fold over a ``LearningPath`` and a ``ProgressRecord``."""

    def project(self, path: LearningPath, record: ProgressRecord) -> PathVisualization:
        nodes_by_id = {n.id: n for n in path.nodes}
        logger.debug(
            "Projecting %d node(s) for learner %r.", len(path.nodes), record.learner_id,
        )
        return PathVisualization(
            nodes=[self._visual_node(n, nodes_by_id, record) for n in path.nodes],
            edges=self._edges(path),
            current_path=list(path.recommended_path),
            alternative_paths=self._alternative_paths(path, nodes_by_id, record),
            metrics=self._metrics(path, record),
        )

    # ------------------------------------------------------------------

    def node_status(
        self,
        topic_id: str,
        nodes_by_id: Dict[str, TopicNode],
        record: ProgressRecord,
    ) -> NodeStatus:
        if topic_id in record.completed_topics:
            return "completed"
        if topic_id == record.current_topic:
            return "current"
        if topic_id in record.struggled_topics:
            return "struggled"
        node = nodes_by_id.get(topic_id)
        if node is None or any(p not in record.completed_topics for p in node.prerequisites):
            return "locked"
        return "upcoming"

    def _visual_node(
        self,
        node: TopicNode,
        nodes_by_id: Dict[str, TopicNode],
        record: ProgressRecord,
    ) -> VisualNode:
        if node.id in record.completed_topics:
            progress = 100.0
        else:
            progress = record.topic_scores.get(node.id, 0.0) * 100
        return VisualNode(
            id=node.id,
            label=node.topic,
            status=self.node_status(node.id, nodes_by_id, record),
            difficulty=node.difficulty,
            progress=progress,
            prerequisites=list(node.prerequisites),
            estimated_time=node.estimated_time_minutes,
        )

    def _edges(self, path: LearningPath) -> List[VisualEdge]:
        edges = [
            VisualEdge(source=prereq, target=node.id, type="prerequisite")
            for node in path.nodes
            for prereq in node.prerequisites
        ]
        steps = path.recommended_path
        edges.extend(
            VisualEdge(source=a, target=b, type="recommended")
            for a, b in zip(steps, steps[1:])
        )
        return edges

    def _metrics(self, path: LearningPath, record: ProgressRecord) -> PathMetrics:
        total = sum(n.estimated_time_minutes for n in path.nodes)
        completed = sum(
            n.estimated_time_minutes for n in path.nodes if n.id in record.completed_topics
        )
        return PathMetrics(
            total_time=total,
            completed_time=completed,
            remaining_time=total - completed,
            progress_percentage=(completed / total * 100) if total else 0.0,
        )

    def _alternative_paths(
        self,
        path: LearningPath,
        nodes_by_id: Dict[str, TopicNode],
        record: ProgressRecord,
    ) -> List[List[str]]:
        """Remaining path re-ordered by difficulty, then by estimated time."""
        steps = path.recommended_path
        if record.current_topic not in steps:
            return []
        remaining = steps[steps.index(record.current_topic):]

        def _difficulty(topic_id: str) -> float:
            node = nodes_by_id.get(topic_id)
            return node.difficulty if node else 0

        def _duration(topic_id: str) -> int:
            node = nodes_by_id.get(topic_id)
            return node.estimated_time_minutes if node else 0

        return [sorted(remaining, key=_difficulty), sorted(remaining, key=_duration)]
