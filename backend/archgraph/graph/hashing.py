import hashlib
import json
from typing import Any, Dict

from archgraph.graph.model import GraphNode


def _canonical(node: GraphNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "children": sorted((_canonical(c) for c in node.children), key=lambda c: c["id"]),
        "edges": sorted(
            (
                {"id": e.id, "sources": sorted(e.sources), "targets": sorted(e.targets)}
                for e in node.edges
            ),
            key=lambda e: e["id"],
        ),
    }


def structural_hash(tree: GraphNode) -> str:
    """
    Digest of the tree's structure: ids, parentage and edge endpoints.

    Labels, styling and layout geometry do not contribute, and sibling order
    is normalized, so two trees that lay out the same hash the same.
    """
    payload = json.dumps(_canonical(tree), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
