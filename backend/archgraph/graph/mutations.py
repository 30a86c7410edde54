"""
Primitive graph operations.

Every public function here is pure with respect to its ``tree`` argument:
the tree is deep-copied on entry, the copy is mutated and returned. A caller
holding the previous tree can keep using it whatever happens, including
when the operation raises.

Node ops:   add_node, delete_node, move_node
Edge ops:   add_edge, delete_edge, move_edge
Group ops:  group_nodes, remove_group
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from archgraph.graph.errors import (
    DuplicateIdError,
    InvalidArgumentsError,
    ReferenceNotFoundError,
    StructuralViolationError,
)
from archgraph.graph.hosting import reattach_edges_for_subtree
from archgraph.graph.lookup import (
    collect_edges,
    find_common_ancestor_of,
    find_edge,
    find_node_by_id,
    find_parent_of_node,
    get_path_to_node,
)
from archgraph.graph.model import GraphEdge, GraphNode

logger = logging.getLogger(__name__)


def _clone(tree: GraphNode) -> GraphNode:
    return copy.deepcopy(tree)


def _require_node(tree: GraphNode, node_id: str, role: str = "node") -> GraphNode:
    node = find_node_by_id(tree, node_id)
    if node is None:
        logger.error("[LOOKUP] %s '%s' not found", role, node_id)
        raise ReferenceNotFoundError(node_id, role)
    return node


def _ensure_unique_node_id(tree: GraphNode, node_id: str, kind: str = "node") -> None:
    path = get_path_to_node(tree, node_id)
    if path is not None:
        raise DuplicateIdError(node_id, kind, [n.id for n in path])


def _detach(parent: GraphNode, node_id: str) -> None:
    parent.children = [child for child in parent.children if child.id != node_id]


# ============================================================
# NODE OPERATIONS
# ============================================================

def add_node(
    nodename: str,
    parent_id: str,
    tree: GraphNode,
    label: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> GraphNode:
    """Create a leaf ``nodename`` under ``parent_id``."""
    if data is not None and not isinstance(data, dict):
        raise InvalidArgumentsError(f"add_node expects 'data' to be an object, got {type(data).__name__}")
    graph = _clone(tree)
    parent = _require_node(graph, parent_id, "parent")
    _ensure_unique_node_id(graph, nodename)

    extras: Dict[str, Any] = {}
    if data:
        extras["data"] = dict(data)
    node = GraphNode(
        id=nodename,
        label=label or (data or {}).get("label") or nodename,
        extras=extras,
    )
    parent.children.append(node)

    logger.info("[ADD-NODE] Added node %s to %s", nodename, parent_id)
    return graph


def _remove_incident_edges(node: GraphNode, removed_ids: set) -> int:
    count = 0
    kept = []
    for edge in node.edges:
        if any(endpoint in removed_ids for endpoint in edge.endpoints):
            count += 1
        else:
            kept.append(edge)
    node.edges = kept
    for child in node.children:
        count += _remove_incident_edges(child, removed_ids)
    return count


def delete_node(node_id: str, tree: GraphNode) -> GraphNode:
    """
    Remove a node with its subtree and every edge that references any node
    of that subtree, wherever the edge is hosted.
    """
    graph = _clone(tree)
    if graph.id == node_id:
        raise StructuralViolationError(f"Cannot delete the root node '{node_id}'")

    parent = find_parent_of_node(graph, node_id)
    if parent is None:
        logger.error("[DELETE-NODE] Node not found: %s", node_id)
        raise ReferenceNotFoundError(node_id, "node")

    node = next(child for child in parent.children if child.id == node_id)
    removed_ids = {n.id for n in node.iter_nodes()}
    _detach(parent, node_id)
    dropped = _remove_incident_edges(graph, removed_ids)

    logger.info("[DELETE-NODE] Deleted %s (%d node(s), %d incident edge(s))", node_id, len(removed_ids), dropped)
    return graph


def move_node(node_id: str, new_parent_id: str, tree: GraphNode) -> GraphNode:
    graph = _clone(tree)
    node = _require_node(graph, node_id, "node")
    new_parent = _require_node(graph, new_parent_id, "new_parent")

    old_parent = find_parent_of_node(graph, node_id)
    if old_parent is None:
        raise StructuralViolationError(f"Cannot move the root node '{node_id}'")
    if find_node_by_id(node, new_parent_id) is not None:
        raise StructuralViolationError(
            f"Cannot move '{node_id}' into '{new_parent_id}': the new parent is inside the node being moved"
        )

    _detach(old_parent, node_id)
    new_parent.children.append(node)
    reattach_edges_for_subtree(graph, node)

    logger.info("[MOVE-NODE] Moved %s from %s to %s", node_id, old_parent.id, new_parent_id)
    return graph


# ============================================================
# EDGE OPERATIONS
# ============================================================

def add_edge(
    edge_id: str,
    source_id: str,
    target_id: str,
    tree: GraphNode,
    label: Optional[str] = None,
) -> GraphNode:
    """Attach a new edge at the nearest common ancestor of its endpoints."""
    graph = _clone(tree)
    _require_node(graph, source_id, "source")
    _require_node(graph, target_id, "target")

    existing = find_edge(graph, edge_id)
    if existing is not None:
        raise DuplicateIdError(edge_id, "edge", [existing[1].id])

    host = find_common_ancestor_of(graph, [source_id, target_id])
    host.edges.append(
        GraphEdge(id=edge_id, sources=[source_id], targets=[target_id], label=label)
    )

    logger.info("[ADD-EDGE] Edge %s (%s -> %s) attached to %s", edge_id, source_id, target_id, host.id)
    return graph


def delete_edge(edge_id: str, tree: GraphNode) -> GraphNode:
    """Remove every edge with ``edge_id``. Silently a no-op when absent."""
    graph = _clone(tree)
    removed = 0
    for edges, host in collect_edges(graph):
        kept = [edge for edge in edges if edge.id != edge_id]
        removed += len(edges) - len(kept)
        host.edges = kept

    if removed:
        logger.info("[DELETE-EDGE] Deleted edge %s", edge_id)
    else:
        logger.debug("[DELETE-EDGE] Edge %s not present, nothing to delete", edge_id)
    return graph


def move_edge(edge_id: str, new_source_id: str, new_target_id: str, tree: GraphNode) -> GraphNode:
    """Point an existing edge at new endpoints and re-host it."""
    graph = _clone(tree)
    found = find_edge(graph, edge_id)
    if found is None:
        logger.debug("[MOVE-EDGE] Edge %s not present, nothing to move", edge_id)
        return graph

    _require_node(graph, new_source_id, "source")
    _require_node(graph, new_target_id, "target")

    edge, current_host = found
    edge.sources = [new_source_id]
    edge.targets = [new_target_id]
    new_host = find_common_ancestor_of(graph, [new_source_id, new_target_id])
    current_host.edges = [e for e in current_host.edges if e is not edge]
    new_host.edges.append(edge)

    logger.info(
        "[MOVE-EDGE] Edge %s now %s -> %s, hosted on %s (was %s)",
        edge_id, new_source_id, new_target_id, new_host.id, current_host.id,
    )
    return graph


# ============================================================
# GROUP OPERATIONS
# ============================================================

def group_nodes_with_report(
    node_ids: List[str],
    parent_id: str,
    group_id: str,
    tree: GraphNode,
    style: Optional[Any] = None,
    group_icon_name: Optional[str] = None,
) -> Tuple[GraphNode, List[str], List[str]]:
    """
    Same as group_nodes, but also returns (moved ids, skipped ids).

    Members are taken from wherever they currently live, not only from
    ``parent_id``. Members that cannot be resolved, the root, and the
    parent or its ancestors (grouping them would create a cycle) are
    skipped.
    """
    graph = _clone(tree)
    parent = _require_node(graph, parent_id, "parent")
    _ensure_unique_node_id(graph, group_id, "group")

    extras: Dict[str, Any] = {}
    if style is not None:
        extras["style"] = style
    if group_icon_name:
        extras["groupIconName"] = group_icon_name
    group = GraphNode(id=group_id, extras=extras)

    moved: List[GraphNode] = []
    skipped: List[str] = []
    for node_id in node_ids:
        if find_node_by_id(group, node_id) is not None:
            # Already carried into the group inside an earlier member.
            continue
        node = find_node_by_id(graph, node_id)
        if node is None:
            logger.warning("[GROUP-NODES] Node %s not found, skipping", node_id)
            skipped.append(node_id)
            continue
        actual_parent = find_parent_of_node(graph, node_id)
        if actual_parent is None or find_node_by_id(node, parent_id) is not None:
            logger.warning("[GROUP-NODES] Node %s cannot be grouped under %s, skipping", node_id, parent_id)
            skipped.append(node_id)
            continue

        _detach(actual_parent, node_id)
        group.children.append(node)
        moved.append(node)

    if not moved:
        logger.warning("[GROUP-NODES] No nodes were moved to group %s, leaving graph unchanged", group_id)
        return _clone(tree), [], skipped

    parent.children.append(group)
    for node in moved:
        reattach_edges_for_subtree(graph, node)

    logger.info("[GROUP-NODES] Group %s created under %s with %d member(s)", group_id, parent_id, len(moved))
    return graph, [n.id for n in moved], skipped


def group_nodes(
    node_ids: List[str],
    parent_id: str,
    group_id: str,
    tree: GraphNode,
    style: Optional[Any] = None,
    group_icon_name: Optional[str] = None,
) -> GraphNode:
    """Create ``group_id`` under ``parent_id`` and move ``node_ids`` into it."""
    graph, _, _ = group_nodes_with_report(node_ids, parent_id, group_id, tree, style, group_icon_name)
    return graph


def remove_group(group_id: str, tree: GraphNode) -> GraphNode:
    """Dissolve a group, promoting its children to the group's parent."""
    graph = _clone(tree)
    group = _require_node(graph, group_id, "group")
    parent = find_parent_of_node(graph, group_id)
    if parent is None:
        raise StructuralViolationError(f"The group node does not have a parent (it is the root): {group_id}")
    if not group.children:
        raise StructuralViolationError(f"'{group_id}' has no children and is not a group; use delete_node instead")

    promoted = list(group.children)
    index = parent.children.index(group)
    parent.children[index:index + 1] = promoted
    # Edges the group hosted are re-derived like any other touching a promoted node.
    parent.edges.extend(group.edges)
    group.edges = []
    # The group id stops resolving, so edges drawn to the group box itself go too.
    dropped = _remove_incident_edges(graph, {group_id})
    for child in promoted:
        reattach_edges_for_subtree(graph, child)

    logger.info(
        "[REMOVE-GROUP] Removed %s, promoted %d child(ren) to %s, dropped %d edge(s) on the group",
        group_id, len(promoted), parent.id, dropped,
    )
    return graph
