"""
DAG validation: cycle detection and graph metrics for the prerequisite
relation.

Uses ``networkx.DiGraph`` for cycle detection and topological-sort
validation. Edges point from a prerequisite to the topic that needs it.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import networkx as nx

from learnpath.errors import GraphCycleError

logger = logging.getLogger(__name__)

Edge = Tuple[str, str]


def build_prerequisite_digraph(
    topic_ids: Iterable[str],
    edges: Iterable[Edge],
) -> nx.DiGraph:
    """Return a ``DiGraph`` with every topic as a node and ``prereq → topic`` edges."""
    G = nx.DiGraph()
    G.add_nodes_from(topic_ids)
    G.add_edges_from(edges)
    return G


# =========================================================================
# Cycle detection
# =========================================================================


def find_prerequisite_cycle(G: nx.DiGraph) -> Optional[List[str]]:
    """Return the nodes of one cycle in *G*, or ``None`` if it is acyclic."""
    try:
        cycle = nx.find_cycle(G, orientation="original")
    except nx.NetworkXNoCycle:
        return None
    # cycle is list of (u, v, direction)
    return [u for u, _, _ in cycle]


def ensure_acyclic(G: nx.DiGraph) -> List[str]:
    """Topologically sort *G*, raising ``GraphCycleError`` on a cycle.

    Returns:
        A topological order of the topic ids (prerequisites first).
    """
    try:
        order = list(nx.topological_sort(G))
    except nx.NetworkXUnfeasible:
        cycle = find_prerequisite_cycle(G) or []
        logger.error("❌ Prerequisite graph is NOT acyclic: %s", cycle)
        raise GraphCycleError(cycle)
    logger.debug("Prerequisite graph is acyclic (%d topics).", len(order))
    return order


# =========================================================================
# Metrics
# =========================================================================


def compute_metrics(G: nx.DiGraph) -> Dict[str, Any]:
    """Compute graph summary metrics.

    Returns dict with: total_topics, total_edges, avg_out_degree,
    max_depth, isolated_nodes_count, root_topics.
    """
    total_topics = G.number_of_nodes()
    total_edges = G.number_of_edges()
    avg_out = total_edges / total_topics if total_topics > 0 else 0.0

    # Max depth (longest prerequisite chain)
    if total_edges > 0 and nx.is_directed_acyclic_graph(G):
        max_depth = nx.dag_longest_path_length(G)
    else:
        max_depth = 0

    isolated = list(nx.isolates(G))
    roots = sorted(n for n in G.nodes if G.in_degree(n) == 0 and G.out_degree(n) > 0)

    return {
        "total_topics": total_topics,
        "total_edges": total_edges,
        "avg_out_degree": round(avg_out, 4),
        "max_depth": max_depth,
        "isolated_nodes_count": len(isolated),
        "root_topics": roots,
    }
