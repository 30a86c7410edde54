"""
In-memory architecture graph: a tree of nodes, each hosting the edges whose
endpoints meet at it.

Wire format is ELK JSON (``labels: [{"text": ...}]``). Anything the engine
does not interpret (icons, styles, layout geometry) rides along in
``extras`` and is written back untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from archgraph.graph.errors import GraphFormatError

ROOT_ID = "root"

_NODE_KEYS = {"id", "labels", "label", "children", "edges"}
_EDGE_KEYS = {"id", "sources", "targets", "labels", "label"}


def _label_from(data: Dict[str, Any]) -> Optional[str]:
    labels = data.get("labels")
    if isinstance(labels, list) and labels:
        first = labels[0]
        if isinstance(first, dict) and isinstance(first.get("text"), str):
            return first["text"]
    if isinstance(data.get("label"), str):
        return data["label"]
    return None


@dataclass
class GraphEdge:
    id: str
    sources: List[str]
    targets: List[str]
    label: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def endpoints(self) -> List[str]:
        return [*self.sources, *self.targets]

    @property
    def is_multi_endpoint(self) -> bool:
        return len(self.sources) > 1 or len(self.targets) > 1

    def touches(self, node_id: str) -> bool:
        return node_id in self.sources or node_id in self.targets

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "sources": list(self.sources),
            "targets": list(self.targets),
        }
        if self.label:
            data["labels"] = [{"text": self.label}]
        data.update(self.extras)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphEdge":
        return cls(
            id=data["id"],
            sources=list(data.get("sources", [])),
            targets=list(data.get("targets", [])),
            label=_label_from(data),
            extras={k: v for k, v in data.items() if k not in _EDGE_KEYS},
        )


@dataclass
class GraphNode:
    id: str
    label: str = ""
    children: List["GraphNode"] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.label:
            self.label = self.id

    @property
    def is_group(self) -> bool:
        return bool(self.children)

    def iter_nodes(self) -> Iterator["GraphNode"]:
        """Pre-order walk over this node and every descendant."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "labels": [{"text": self.label}],
            "children": [child.to_dict() for child in self.children],
            "edges": [edge.to_dict() for edge in self.edges],
        }
        data.update(self.extras)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphNode":
        return cls(
            id=data["id"],
            label=_label_from(data) or data["id"],
            children=[cls.from_dict(c) for c in data.get("children") or []],
            edges=[GraphEdge.from_dict(e) for e in data.get("edges") or []],
            extras={k: v for k, v in data.items() if k not in _NODE_KEYS},
        )


def new_root() -> GraphNode:
    return GraphNode(id=ROOT_ID)


# ============================================================
# PAYLOAD VALIDATION (UNTRUSTED JSON BOUNDARY)
# ============================================================

def _check_edge(edge: Any, path: str) -> None:
    if not isinstance(edge, dict):
        raise GraphFormatError(f"{path} must be an object")
    if not isinstance(edge.get("id"), str):
        raise GraphFormatError(f"{path}.id must be a string")
    for key in ("sources", "targets"):
        ids = edge.get(key)
        if not isinstance(ids, list) or not ids:
            raise GraphFormatError(f"{path}.{key} must be a non-empty array")
        if not all(isinstance(i, str) for i in ids):
            raise GraphFormatError(f"{path}.{key} must contain only strings")


def _check_node(node: Any, path: str) -> None:
    if not isinstance(node, dict):
        raise GraphFormatError(f"{path} must be an object")
    if not isinstance(node.get("id"), str) or not node["id"]:
        raise GraphFormatError(f"{path}.id must be a non-empty string")

    children = node.get("children", [])
    if children is not None and not isinstance(children, list):
        raise GraphFormatError(f"{path}.children must be an array")
    edges = node.get("edges", [])
    if edges is not None and not isinstance(edges, list):
        raise GraphFormatError(f"{path}.edges must be an array")

    for i, edge in enumerate(edges or []):
        _check_edge(edge, f"{path}.edges[{i}]")
    for i, child in enumerate(children or []):
        _check_node(child, f"{path}.children[{i}]")


def parse_graph(payload: Any) -> GraphNode:
    """
    Validate a raw graph payload and build the tree.

    Only the structure the engine relies on is checked; unknown keys are
    kept as extras. Raises GraphFormatError with the offending path.
    """
    _check_node(payload, "graph")
    return GraphNode.from_dict(payload)
