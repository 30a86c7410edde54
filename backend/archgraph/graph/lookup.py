"""
Lookup and traversal helpers over the graph tree.

All of these are pure reads, O(tree size), and never raise on a missing id:
they return None (or an empty result) instead. Graphs built by the agent are
small, so no id index is maintained.
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from archgraph.graph.model import GraphEdge, GraphNode

EdgeCollection = Tuple[List[GraphEdge], GraphNode]


def iter_nodes(root: GraphNode) -> Iterator[GraphNode]:
    return root.iter_nodes()


def find_node_by_id(root: GraphNode, node_id: str) -> Optional[GraphNode]:
    if root.id == node_id:
        return root
    for child in root.children:
        found = find_node_by_id(child, node_id)
        if found is not None:
            return found
    return None


def find_parent_of_node(
    root: GraphNode,
    node_id: str,
    parent: Optional[GraphNode] = None,
) -> Optional[GraphNode]:
    """Immediate ancestor of ``node_id``; None for the root or a missing id."""
    if root.id == node_id:
        return parent
    for child in root.children:
        result = find_parent_of_node(child, node_id, root)
        if result is not None:
            return result
    return None


def get_path_to_node(
    root: GraphNode,
    node_id: str,
    path: Optional[List[GraphNode]] = None,
) -> Optional[List[GraphNode]]:
    """Root-to-target path, both ends inclusive."""
    path = (path or []) + [root]
    if root.id == node_id:
        return path
    for child in root.children:
        result = get_path_to_node(child, node_id, path)
        if result is not None:
            return result
    return None


def find_common_ancestor(root: GraphNode, id_a: str, id_b: str) -> Optional[GraphNode]:
    return find_common_ancestor_of(root, [id_a, id_b])


def find_common_ancestor_of(root: GraphNode, node_ids: Iterable[str]) -> Optional[GraphNode]:
    """
    Deepest node lying on the root path of every id in ``node_ids``.

    Returns None if any id is absent. For a single id this is the node
    itself, matching the two-id case where one endpoint contains the other.
    """
    paths = []
    for node_id in node_ids:
        path = get_path_to_node(root, node_id)
        if path is None:
            return None
        paths.append(path)
    if not paths:
        return None

    common = None
    for level in zip(*paths):
        first = level[0]
        if all(node.id == first.id for node in level):
            common = first
        else:
            break
    return common


def collect_edges(root: GraphNode, collection: Optional[List[EdgeCollection]] = None) -> List[EdgeCollection]:
    """Every node's edge list paired with the node hosting it."""
    if collection is None:
        collection = []
    if root.edges:
        collection.append((root.edges, root))
    for child in root.children:
        collect_edges(child, collection)
    return collection


def find_edge(root: GraphNode, edge_id: str) -> Optional[Tuple[GraphEdge, GraphNode]]:
    for edges, host in collect_edges(root):
        for edge in edges:
            if edge.id == edge_id:
                return edge, host
    return None


def collect_node_ids(root: GraphNode) -> List[str]:
    return [node.id for node in root.iter_nodes()]


def is_ancestor(root: GraphNode, ancestor_id: str, node_id: str) -> bool:
    """True when ``ancestor_id`` lies on the path to ``node_id`` (inclusive)."""
    path = get_path_to_node(root, node_id)
    return path is not None and any(node.id == ancestor_id for node in path)
