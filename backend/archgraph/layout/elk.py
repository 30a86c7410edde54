"""
Conversion between the domain tree and the layout engine.

The domain tree never carries geometry on purpose: ``to_elk_graph`` builds a
layout-ready copy with default options, the engine fills in positions, and
``merge_layout`` copies those positions back into ``extras``.
"""

import copy
import logging
from typing import Any, Dict, Optional

import requests

from archgraph.config import ELK_LAYOUT_URL, LAYOUT_TIMEOUT
from archgraph.graph.hashing import structural_hash
from archgraph.graph.model import GraphNode
from archgraph.layout.options import NON_ROOT_DEFAULT_OPTIONS, LayoutOptions

logger = logging.getLogger(__name__)

NODE_GEOMETRY_KEYS = ("x", "y", "width", "height")
EDGE_GEOMETRY_KEYS = ("sections", "junctionPoints", "container")


class LayoutError(Exception):
    pass


class LayoutTimeoutError(LayoutError):
    pass


def strip_geometry(tree: GraphNode) -> GraphNode:
    """Copy of ``tree`` without any position or size left over from a previous layout."""
    stripped = copy.deepcopy(tree)
    for node in stripped.iter_nodes():
        for key in NODE_GEOMETRY_KEYS:
            node.extras.pop(key, None)
        for edge in node.edges:
            for key in EDGE_GEOMETRY_KEYS:
                edge.extras.pop(key, None)
    return stripped


def _apply_defaults(data: Dict[str, Any], is_root: bool, options: LayoutOptions) -> None:
    own = data.get("layoutOptions") or {}
    if is_root:
        data["layoutOptions"] = {**options.root_layout_options(), **own}
    else:
        data.setdefault("width", NON_ROOT_DEFAULT_OPTIONS["width"])
        data.setdefault("height", NON_ROOT_DEFAULT_OPTIONS["height"])
        data["layoutOptions"] = {**NON_ROOT_DEFAULT_OPTIONS["layoutOptions"], **own}
    for child in data.get("children", []):
        _apply_defaults(child, False, options)


def to_elk_graph(tree: GraphNode, options: Optional[LayoutOptions] = None) -> Dict[str, Any]:
    """ELK JSON for ``tree`` with root and non-root default options applied."""
    data = tree.to_dict()
    _apply_defaults(data, True, options or LayoutOptions())
    return data


def _index(data: Dict[str, Any], nodes: Dict[str, dict], edges: Dict[str, dict]) -> None:
    nodes[data["id"]] = data
    for edge in data.get("edges") or []:
        edges[edge["id"]] = edge
    for child in data.get("children") or []:
        _index(child, nodes, edges)


def merge_layout(tree: GraphNode, laid_out: Dict[str, Any]) -> GraphNode:
    """
    Copy geometry from the engine's answer onto a copy of ``tree``.

    The answer must describe the same structure as ``tree``; otherwise it was
    computed for some other graph and LayoutError is raised.
    """
    try:
        answer = GraphNode.from_dict(laid_out)
    except (KeyError, TypeError, AttributeError) as exc:
        raise LayoutError(f"Layout result is not a valid ELK graph: {exc!r}") from exc
    if structural_hash(answer) != structural_hash(tree):
        raise LayoutError("Layout result does not match the structure of the graph")

    nodes: Dict[str, dict] = {}
    edges: Dict[str, dict] = {}
    _index(laid_out, nodes, edges)

    merged = copy.deepcopy(tree)
    for node in merged.iter_nodes():
        source = nodes[node.id]
        for key in NODE_GEOMETRY_KEYS:
            if key in source:
                node.extras[key] = source[key]
        for edge in node.edges:
            edge_source = edges.get(edge.id, {})
            for key in EDGE_GEOMETRY_KEYS:
                if key in edge_source:
                    edge.extras[key] = edge_source[key]
    return merged


class ElkLayoutClient:
    """Blocking client for an elkjs instance behind an HTTP endpoint."""

    def __init__(self, url: str = ELK_LAYOUT_URL, timeout: float = LAYOUT_TIMEOUT):
        self.url = url
        self.timeout = timeout

    def layout(self, elk_graph: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("[LAYOUT] POST %s", self.url)
        try:
            response = requests.post(self.url, json=elk_graph, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise LayoutTimeoutError(f"Layout engine did not answer within {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise LayoutError(f"Layout engine request failed: {exc}") from exc

        try:
            laid_out = response.json()
        except ValueError as exc:
            raise LayoutError("Layout engine answered with a body that is not JSON") from exc
        if not isinstance(laid_out, dict):
            raise LayoutError(f"Layout engine answered with {type(laid_out).__name__}, expected an object")
        return laid_out
