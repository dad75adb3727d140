"""
Path optimization: linearize the prerequisite graph around a learner's
current topic.

Pipeline:
1. Collect the unmet prerequisite closure of the current topic
   (depth-first, deepest prerequisite first).
2. Seed a queue with ``[closure..., current]``.
3. Walk the queue breadth-first. Each emitted topic offers its forward
   ``next_topics``, filtered by skill level and stably partitioned so that
   topics helping a struggled area come first.
"""

import logging
from collections import deque
from typing import Collection, Iterable, List, Optional, Set

from learnpath.knowledge_graph import KnowledgeGraph
from learnpath.models import SkillLevel
from learnpath.validation import check_skill_level

logger = logging.getLogger(__name__)

# Highest topic difficulty offered per skill level (None = unrestricted).
SKILL_DIFFICULTY_CEILING = {
    "beginner": 2,
    "intermediate": 4,
    "advanced": None,
}


class PathOptimizer:
    """Computes recommended topic sequences over a ``KnowledgeGraph``."""

    def __init__(self, graph: KnowledgeGraph) -> None:
        self.graph = graph

    # =====================================================================
    # Public API
    # =====================================================================

    def compute_path(
        self,
        current_topic: str,
        completed: Collection[str] = (),
        struggled: Collection[str] = (),
        skill_level: SkillLevel = "intermediate",
    ) -> List[str]:
        """Return the recommended topic order for a learner.

        Args:
            current_topic: Topic the learner is working on.
            completed: Topics already mastered; never required again.
            struggled: Topics the learner struggled with; next topics that
                help with them are offered first.
            skill_level: Caps the difficulty of forward topics.

        Returns:
            Topic ids in emission order. Every prerequisite not in
            *completed* precedes the topic that needs it.

        Raises:
            InvalidInputError: If *skill_level* is not a known level.
        """
        skill_level = check_skill_level(skill_level)
        completed_set = set(completed)
        struggled_list = list(struggled)

        emitted: Set[str] = set()
        path: List[str] = []

        closure = self.prerequisite_closure(current_topic, completed_set)
        queue = deque(closure + [current_topic])

        while queue:
            topic = queue.popleft()
            if topic in emitted:
                continue

            # Topics reached through forward edges may still have unmet
            # prerequisites of their own.
            for prereq in self.prerequisite_closure(topic, completed_set | emitted):
                emitted.add(prereq)
                path.append(prereq)
            emitted.add(topic)
            path.append(topic)

            candidates = self.filter_by_skill(self.graph.get_next_topics(topic), skill_level)
            queue.extend(self.prioritize(candidates, struggled_list))

        logger.debug(
            "Path for %r (%s, %d completed, %d struggled): %s",
            current_topic, skill_level, len(completed_set), len(struggled_list), path,
        )
        return path

    # =====================================================================
    # Steps
    # =====================================================================

    def prerequisite_closure(self, topic: str, exclude: Collection[str] = ()) -> List[str]:
        """Unmet transitive prerequisites of *topic*, deepest first.

        *topic* itself is not included. Topics in *exclude* are neither
        emitted nor expanded.
        """
        closure: List[str] = []
        visited: Set[str] = {topic}

        def _visit(node_id: str) -> None:
            for prereq in self.graph.get_prerequisites(node_id):
                if prereq in visited or prereq in exclude:
                    continue
                visited.add(prereq)
                _visit(prereq)
                closure.append(prereq)

        _visit(topic)
        return closure

    def filter_by_skill(self, topics: Iterable[str], skill_level: SkillLevel) -> List[str]:
        """Keep known topics whose difficulty fits *skill_level*.

        Raises:
            InvalidInputError: If *skill_level* is not a known level.
        """
        ceiling: Optional[int] = SKILL_DIFFICULTY_CEILING[check_skill_level(skill_level)]
        kept: List[str] = []
        for topic_id in topics:
            node = self.graph.get_node(topic_id)
            if node is None:
                continue
            if ceiling is None or node.difficulty <= ceiling:
                kept.append(topic_id)
        return kept

    def prioritize(self, topics: List[str], struggled: List[str]) -> List[str]:
        """Stable partition: topics that help a struggled topic go first."""
        if not struggled:
            return list(topics)
        helps = [t for t in topics if self.helps_with_struggled(t, struggled)]
        rest = [t for t in topics if not self.helps_with_struggled(t, struggled)]
        return helps + rest

    def helps_with_struggled(self, topic: str, struggled: Iterable[str]) -> bool:
        """True if *topic*'s metadata points at any struggled topic."""
        meta = self.graph.get_metadata(topic)
        if meta is None:
            return False

        texts = [
            s.lower()
            for s in meta.building_blocks + meta.remedial_content + meta.common_struggles
        ]
        for target in struggled:
            if not target:
                continue
            if target in meta.required_for:
                return True
            needle = target.lower()
            if any(needle in text for text in texts):
                return True
        return False
