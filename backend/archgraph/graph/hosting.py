"""
Edge reattachment.

An edge lives on the nearest common ancestor of its endpoints. Whenever a
node is relocated the host is re-derived from scratch for every edge that
touches it, rather than patched incrementally.

All functions here work in place on a tree the caller already owns; the
public primitives in ``mutations`` clone before calling them.
"""

import logging
from typing import List, Optional, Tuple

from archgraph.graph.lookup import collect_edges, find_common_ancestor_of
from archgraph.graph.model import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

Misplacement = Tuple[GraphEdge, GraphNode, GraphNode]


def expected_host(root: GraphNode, edge: GraphEdge) -> Optional[GraphNode]:
    """Nearest common ancestor of all endpoints, or None if one is missing."""
    if edge.is_multi_endpoint:
        logger.warning(
            "[EDGE-HOST] Edge %s has %d sources and %d targets; hosting on the common ancestor of all endpoints",
            edge.id, len(edge.sources), len(edge.targets),
        )
    return find_common_ancestor_of(root, edge.endpoints)


def _find_misplaced(root: GraphNode, node_id: Optional[str] = None) -> List[Misplacement]:
    misplaced = []
    for edges, host in collect_edges(root):
        for edge in edges:
            if node_id is not None and not edge.touches(node_id):
                continue
            target_host = expected_host(root, edge)
            if target_host is not None and target_host is not host:
                misplaced.append((edge, host, target_host))
    return misplaced


def _move_edges(moves: List[Misplacement]) -> int:
    # Second pass, after all moves are known: removing while scanning skips edges.
    for edge, current_host, new_host in moves:
        current_host.edges = [e for e in current_host.edges if e is not edge]
        new_host.edges.append(edge)
        logger.debug("[EDGE-REATTACH] Moved edge %s from %s to %s", edge.id, current_host.id, new_host.id)
    return len(moves)


def find_misplaced_edges(root: GraphNode) -> List[Misplacement]:
    """(edge, current host, expected host) for every edge on the wrong node."""
    return _find_misplaced(root)


def reattach_edges_for_node(root: GraphNode, node_id: str) -> int:
    """Re-host every edge touching ``node_id``. Returns how many moved."""
    moved = _move_edges(_find_misplaced(root, node_id))
    if moved:
        logger.info("[EDGE-REATTACH] Re-hosted %d edge(s) touching %s", moved, node_id)
    return moved


def reattach_edges_for_subtree(root: GraphNode, subtree: GraphNode) -> int:
    """
    Re-host edges touching ``subtree`` or any of its descendants.

    Relocating a container changes the ancestor chain of everything inside
    it, so edges from a nested node to the outside need a new host too.
    """
    return sum(reattach_edges_for_node(root, node.id) for node in subtree.iter_nodes())


def reattach_all_edges(root: GraphNode) -> int:
    moved = _move_edges(_find_misplaced(root))
    logger.info("[REATTACH-ALL] Re-hosted %d edge(s)", moved)
    return moved
