"""
Knowledge graph: topics, prerequisite edges and per-topic metadata.

The graph is built once at startup (from the packaged JSON dataset or any
file with the same schema), validated for acyclicity, and passed by
reference to every component. It is never mutated after construction.

Dataset schema::

    {
      "topics":   [{"id": "variables", "topic": "...", "prerequisites": [],
                    "difficulty": 1, "estimated_time_minutes": 30,
                    "next_topics": [...], "concepts": [...]}, ...],
      "metadata": {"variables": {"required_for": [...], ...}, ...}
    }
"""

import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import networkx as nx
from pydantic import ValidationError

from learnpath.dag_validator import (
    build_prerequisite_digraph,
    compute_metrics,
    ensure_acyclic,
)
from learnpath.errors import ConfigError
from learnpath.models import TopicMetadata, TopicNode
from learnpath.utils import default_dataset_path, timed

logger = logging.getLogger(__name__)

TopicSpec = Union[TopicNode, Mapping[str, Any]]
MetadataSpec = Union[TopicMetadata, Mapping[str, Any]]


class KnowledgeGraph:
    """Read-only prerequisite graph over topics."""

    def __init__(
        self,
        nodes: Dict[str, TopicNode],
        metadata: Dict[str, TopicMetadata],
    ) -> None:
        self._nodes = dict(nodes)
        self._metadata = dict(metadata)

        for node in self._nodes.values():
            missing = [p for p in node.prerequisites if p not in self._nodes]
            if missing:
                logger.warning(
                    "Topic %r lists undefined prerequisite(s): %s",
                    node.id, ", ".join(missing),
                )

        edges = [
            (prereq, node.id)
            for node in self._nodes.values()
            for prereq in node.prerequisites
        ]
        self._graph = build_prerequisite_digraph(self._nodes, edges)
        self._order = ensure_acyclic(self._graph)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_spec(
        cls,
        topics: Iterable[TopicSpec],
        metadata: Optional[Mapping[str, MetadataSpec]] = None,
    ) -> "KnowledgeGraph":
        """Build a graph from topic dicts/models and a ``{id: metadata}`` map."""
        nodes: Dict[str, TopicNode] = {}
        for spec in topics:
            node = spec if isinstance(spec, TopicNode) else TopicNode(**spec)
            if node.id in nodes:
                raise ConfigError(f"Duplicate topic id: {node.id!r}")
            nodes[node.id] = node

        meta: Dict[str, TopicMetadata] = {}
        for topic_id, spec in (metadata or {}).items():
            meta[topic_id] = (
                spec if isinstance(spec, TopicMetadata) else TopicMetadata(**spec)
            )
        return cls(nodes, meta)

    # ------------------------------------------------------------------
    # Lookups (unknown ids degrade to empty results)
    # ------------------------------------------------------------------

    def get_node(self, topic_id: str) -> Optional[TopicNode]:
        return self._nodes.get(topic_id)

    def get_metadata(self, topic_id: str) -> Optional[TopicMetadata]:
        return self._metadata.get(topic_id)

    def get_prerequisites(self, topic_id: str) -> List[str]:
        node = self._nodes.get(topic_id)
        return list(node.prerequisites) if node else []

    def get_next_topics(self, topic_id: str) -> List[str]:
        node = self._nodes.get(topic_id)
        return list(node.next_topics) if node else []

    def get_remedial_content(self, topic_id: str) -> List[str]:
        meta = self._metadata.get(topic_id)
        return list(meta.remedial_content) if meta else []

    def topic_ids(self) -> List[str]:
        """All topic ids in declaration order."""
        return list(self._nodes)

    def topological_order(self) -> List[str]:
        """Topic ids with every prerequisite before its dependents."""
        return [t for t in self._order if t in self._nodes]

    @property
    def digraph(self) -> nx.DiGraph:
        """A copy of the underlying ``prereq → topic`` graph."""
        return self._graph.copy()

    def metrics(self) -> Dict[str, Any]:
        return compute_metrics(self._graph)

    def __contains__(self, topic_id: object) -> bool:
        return topic_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[TopicNode]:
        return iter(self._nodes.values())


# =========================================================================
# Loading
# =========================================================================


def load_knowledge_graph(path: str) -> KnowledgeGraph:
    """Load and validate a topic dataset from a JSON file.

    Raises:
        ConfigError: If the file is unreadable or malformed.
        GraphCycleError: If the prerequisite relation has a cycle.
    """
    with timed(f"Load knowledge graph {path}"):
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Cannot read topic dataset {path}: {exc}") from exc

        if not isinstance(data, dict) or "topics" not in data:
            raise ConfigError(f"Topic dataset {path} has no 'topics' list.")

        try:
            graph = KnowledgeGraph.from_spec(data["topics"], data.get("metadata", {}))
        except ValidationError as exc:
            raise ConfigError(f"Invalid topic dataset {path}: {exc}") from exc

    logger.info(
        "Knowledge graph loaded: %d topics, %d prerequisite edges.",
        len(graph), graph.digraph.number_of_edges(),
    )
    return graph


def default_knowledge_graph() -> KnowledgeGraph:
    """Load the topic dataset shipped with the package."""
    return load_knowledge_graph(default_dataset_path())
