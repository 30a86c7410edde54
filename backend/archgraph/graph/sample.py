# archgraph/graph/sample.py

from archgraph.graph.model import GraphNode


def _node(node_id, text, children=None, edges=None):
    data = {"id": node_id, "labels": [{"text": text}]}
    if children:
        data["children"] = children
    if edges:
        data["edges"] = edges
    return data


def _edge(edge_id, source, target, text):
    return {"id": edge_id, "sources": [source], "targets": [target], "labels": [{"text": text}]}


def get_default_architecture_json() -> dict:
    """Starter diagram shown before the agent has made any change."""
    return _node("root", "root", children=[
        _node("ui", "UI", children=[_node("webapp", "Web App")]),
        _node("aws", "AWS", children=[
            _node("api", "API"),
            _node("lambda", "Lambda", children=[
                _node("query", "Query"),
                _node("pdf", "PDF"),
                _node("fetch", "Fetch"),
                _node("chat", "Chat"),
            ], edges=[
                _edge("e6", "chat", "fetch", "Invokes"),
            ]),
            _node("vector", "Vector"),
            _node("storage", "Storage"),
        ], edges=[
            _edge("e1", "api", "lambda", "Invokes"),
            _edge("e2", "query", "vector", "Retrieves"),
            _edge("e3", "pdf", "vector", "Indexes"),
            _edge("e4", "pdf", "storage", "Stores"),
            _edge("e5", "fetch", "storage", "Retrieves"),
        ]),
        _node("openai", "OpenAI", children=[
            _node("embed", "Embed"),
            _node("chat_api", "Chat API"),
        ]),
    ], edges=[
        _edge("e0", "webapp", "api", "HTTP"),
        _edge("e7", "chat", "chat_api", "RPC"),
        _edge("e8", "embed", "query", "vec-search"),
        _edge("e9", "embed", "pdf", "semantic rank"),
    ])


def default_architecture() -> GraphNode:
    return GraphNode.from_dict(get_default_architecture_json())
