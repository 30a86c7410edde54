"""ELK conversion, structural hashing and layout coordination"""

import asyncio
import json
import time

import pytest
import requests

from archgraph.graph.hashing import structural_hash
from archgraph.graph.lookup import find_edge, find_node_by_id
from archgraph.graph.mutations import add_node, move_node
from archgraph.layout.coordinator import LayoutCoordinator
from archgraph.layout.elk import (
    ElkLayoutClient,
    LayoutError,
    LayoutTimeoutError,
    merge_layout,
    strip_geometry,
    to_elk_graph,
)
from archgraph.layout.options import NON_ROOT_DEFAULT_OPTIONS, LayoutOptions


class FakeElk:
    """Stands in for the elkjs service: places every node at a fixed spot."""

    def __init__(self, delay: float = 0.0, on_call=None):
        self.delay = delay
        self.on_call = on_call
        self.calls = []

    def layout(self, elk_graph):
        self.calls.append(elk_graph)
        if self.on_call:
            self.on_call()
        if self.delay:
            time.sleep(self.delay)

        def place(data, depth=0):
            data["x"], data["y"] = depth * 10, depth * 20
            data.setdefault("width", 100)
            data.setdefault("height", 100)
            for e in data.get("edges", []):
                e["sections"] = [{"startPoint": {"x": 0, "y": 0}, "endPoint": {"x": 1, "y": 1}}]
            for child in data.get("children", []):
                place(child, depth + 1)
            return data

        return place(elk_graph)


# ============================================================
# Structural hash
# ============================================================

def test_hash_ignores_labels_geometry_and_sibling_order(sample_tree):
    relabelled = add_node("x", "aws", sample_tree)
    find_node_by_id(relabelled, "x").label = "Something else"
    find_node_by_id(relabelled, "aws").extras["x"] = 42
    reordered = add_node("x", "aws", sample_tree)
    reordered.children.reverse()

    assert structural_hash(relabelled) == structural_hash(reordered)


def test_hash_changes_with_structure(sample_tree):
    assert structural_hash(move_node("webapp", "aws", sample_tree)) != structural_hash(sample_tree)
    assert structural_hash(add_node("x", "aws", sample_tree)) != structural_hash(sample_tree)


# ============================================================
# ELK conversion
# ============================================================

def test_to_elk_graph_applies_defaults(sample_tree):
    elk = to_elk_graph(sample_tree, LayoutOptions(direction="down", spacing=40))

    assert elk["layoutOptions"]["elk.direction"] == "DOWN"
    assert elk["layoutOptions"]["spacing.nodeNode"] == 40
    assert elk["layoutOptions"]["hierarchyHandling"] == "INCLUDE_CHILDREN"
    assert "width" not in elk

    aws = next(c for c in elk["children"] if c["id"] == "aws")
    assert aws["width"] == NON_ROOT_DEFAULT_OPTIONS["width"]
    assert aws["layoutOptions"]["nodeLabels.placement"] == "INSIDE V_TOP H_LEFT"
    assert aws["labels"] == [{"text": "AWS"}]


def test_to_elk_graph_keeps_node_overrides(sample_tree):
    find_node_by_id(sample_tree, "aws").extras["layoutOptions"] = {"spacing.nodeNode": 5}

    elk = to_elk_graph(sample_tree)

    aws = next(c for c in elk["children"] if c["id"] == "aws")
    assert aws["layoutOptions"]["spacing.nodeNode"] == 5
    assert aws["layoutOptions"]["elk.edgeLabels.inline"] is True


def test_layout_options_validation():
    with pytest.raises(ValueError):
        LayoutOptions(direction="sideways")
    with pytest.raises(ValueError):
        LayoutOptions(spacing=0)


def test_merge_and_strip_geometry(sample_tree):
    laid_out = FakeElk().layout(to_elk_graph(sample_tree))

    merged = merge_layout(sample_tree, laid_out)

    query = find_node_by_id(merged, "query")
    assert (query.extras["x"], query.extras["y"]) == (30, 60)
    assert "sections" in find_edge(merged, "e6")[0].extras
    assert "x" not in find_node_by_id(sample_tree, "query").extras

    stripped = strip_geometry(merged)
    assert "x" not in find_node_by_id(stripped, "query").extras
    assert "sections" not in find_edge(stripped, "e6")[0].extras
    assert stripped.to_dict() == sample_tree.to_dict()


def test_merge_rejects_layout_of_another_structure(sample_tree):
    laid_out = FakeElk().layout(to_elk_graph(add_node("x", "aws", sample_tree)))
    with pytest.raises(LayoutError):
        merge_layout(sample_tree, laid_out)


def test_merge_rejects_answer_with_nodes_missing_ids(sample_tree):
    laid_out = FakeElk().layout(to_elk_graph(sample_tree))
    del laid_out["children"][1]["children"][0]["id"]

    with pytest.raises(LayoutError, match="not a valid ELK graph"):
        merge_layout(sample_tree, laid_out)


class FakeResponse:
    def __init__(self, text):
        self.text = text

    def raise_for_status(self):
        pass

    def json(self):
        return json.loads(self.text)


@pytest.mark.parametrize("body", ["<html>upstream error</html>", "[1, 2]"])
def test_layout_client_rejects_bodies_that_are_not_graphs(monkeypatch, body):
    monkeypatch.setattr(requests, "post", lambda *args, **kwargs: FakeResponse(body))

    with pytest.raises(LayoutError):
        ElkLayoutClient(url="http://elk.test/layout").layout({"id": "root"})


# ============================================================
# Coordinator
# ============================================================

def test_coordinator_returns_merged_tree(sample_tree):
    coordinator = LayoutCoordinator(client=FakeElk(), timeout=5)

    merged = asyncio.run(coordinator.layout("s1", 1, sample_tree))

    assert find_node_by_id(merged, "aws").extras["x"] == 10
    assert coordinator.is_current(coordinator.register("s1", 1, sample_tree))


def test_coordinator_discards_stale_results(sample_tree):
    newer = add_node("x", "aws", sample_tree)
    coordinator = LayoutCoordinator(timeout=5)
    # A newer version is registered while the first layout is in flight
    coordinator.client = FakeElk(on_call=lambda: coordinator.register("s1", 2, newer))

    assert asyncio.run(coordinator.layout("s1", 1, sample_tree)) is None


def test_coordinator_ignores_older_registrations(sample_tree):
    coordinator = LayoutCoordinator(client=FakeElk(), timeout=5)
    current = coordinator.register("s1", 3, sample_tree)
    old = coordinator.register("s1", 2, sample_tree)

    assert coordinator.is_current(current)
    assert not coordinator.is_current(old)


def test_coordinator_needs_layout_only_for_structural_changes(sample_tree):
    coordinator = LayoutCoordinator(client=FakeElk(), timeout=5)
    coordinator.register("s1", 1, sample_tree)

    extended = add_node("x", "aws", sample_tree)
    assert coordinator.needs_layout("s1", extended)
    find_node_by_id(sample_tree, "aws").label = "Amazon"
    assert not coordinator.needs_layout("s1", sample_tree)


def test_coordinator_timeout(sample_tree):
    coordinator = LayoutCoordinator(client=FakeElk(delay=0.3), timeout=0.05)

    with pytest.raises(LayoutTimeoutError):
        asyncio.run(coordinator.layout("s1", 1, sample_tree))
