"""Lookup and traversal helpers over the architecture tree"""

from archgraph.graph.lookup import (
    collect_edges,
    collect_node_ids,
    find_common_ancestor,
    find_common_ancestor_of,
    find_edge,
    find_node_by_id,
    find_parent_of_node,
    get_path_to_node,
    is_ancestor,
)


def test_find_node_by_id(sample_tree):
    assert find_node_by_id(sample_tree, "lambda").label == "Lambda"
    assert find_node_by_id(sample_tree, "root") is sample_tree
    assert find_node_by_id(sample_tree, "nonexistent") is None


def test_find_parent_of_node(sample_tree):
    assert find_parent_of_node(sample_tree, "query").id == "lambda"
    assert find_parent_of_node(sample_tree, "aws").id == "root"
    assert find_parent_of_node(sample_tree, "root") is None
    assert find_parent_of_node(sample_tree, "nonexistent") is None


def test_get_path_to_node(sample_tree):
    path = get_path_to_node(sample_tree, "chat")
    assert [n.id for n in path] == ["root", "aws", "lambda", "chat"]
    assert [n.id for n in get_path_to_node(sample_tree, "root")] == ["root"]
    assert get_path_to_node(sample_tree, "nonexistent") is None


def test_common_ancestor_of_siblings_and_cousins(sample_tree):
    assert find_common_ancestor(sample_tree, "query", "fetch").id == "lambda"
    assert find_common_ancestor(sample_tree, "query", "vector").id == "aws"
    assert find_common_ancestor(sample_tree, "webapp", "api").id == "root"


def test_common_ancestor_when_one_contains_the_other(sample_tree):
    assert find_common_ancestor(sample_tree, "lambda", "query").id == "lambda"
    assert find_common_ancestor(sample_tree, "aws", "aws").id == "aws"


def test_common_ancestor_missing_id(sample_tree):
    assert find_common_ancestor(sample_tree, "query", "nonexistent") is None
    assert find_common_ancestor_of(sample_tree, []) is None


def test_common_ancestor_of_many(sample_tree):
    assert find_common_ancestor_of(sample_tree, ["query", "pdf", "chat"]).id == "lambda"
    assert find_common_ancestor_of(sample_tree, ["query", "pdf", "storage"]).id == "aws"
    assert find_common_ancestor_of(sample_tree, ["query", "embed"]).id == "root"


def test_collect_edges_pairs_each_list_with_its_host(sample_tree):
    hosts = {host.id: [e.id for e in edges] for edges, host in collect_edges(sample_tree)}
    assert hosts == {
        "root": ["e0", "e7", "e8", "e9"],
        "aws": ["e1", "e2", "e3", "e4", "e5"],
        "lambda": ["e6"],
    }


def test_find_edge(sample_tree):
    found_edge, host = find_edge(sample_tree, "e6")
    assert (found_edge.sources, found_edge.targets, host.id) == (["chat"], ["fetch"], "lambda")
    assert find_edge(sample_tree, "nope") is None


def test_collect_node_ids_is_preorder(small_tree):
    assert collect_node_ids(small_tree) == ["root", "a", "a1", "a2", "b", "b1"]


def test_is_ancestor(small_tree):
    assert is_ancestor(small_tree, "a", "a1")
    assert is_ancestor(small_tree, "a1", "a1")
    assert not is_ancestor(small_tree, "b", "a1")
    assert not is_ancestor(small_tree, "a", "missing")
