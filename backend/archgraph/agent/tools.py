# archgraph/agent/tools.py

from typing import Any, Dict, List

_NODE_DATA = {
    "type": "object",
    "description": "Optional display data for the node",
    "properties": {
        "label": {"type": "string"},
        "icon": {"type": "string"},
    },
}

_OPERATION_NAMES = [
    "add_node",
    "delete_node",
    "move_node",
    "add_edge",
    "delete_edge",
    "move_edge",
    "group_nodes",
    "remove_group",
]


def _function(name: str, description: str, properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "parameters": {
            "type": "object",
            "properties": properties,
            "required": required,
        },
    }


TOOL_CATALOG: List[Dict[str, Any]] = [
    _function(
        "display_elk_graph",
        "Return the current architecture graph. Call this first to see what already exists.",
        {},
        [],
    ),
    _function(
        "add_node",
        "Create a new node under an existing parent (use 'root' for the top level).",
        {
            "nodename": {"type": "string", "description": "Id of the new node, unique in the graph"},
            "parentId": {"type": "string"},
            "label": {"type": "string"},
            "data": _NODE_DATA,
        },
        ["nodename", "parentId"],
    ),
    _function(
        "delete_node",
        "Delete a node, everything inside it, and every edge connected to any of them.",
        {"nodeId": {"type": "string"}},
        ["nodeId"],
    ),
    _function(
        "move_node",
        "Move a node (with its children) under a different parent.",
        {"nodeId": {"type": "string"}, "newParentId": {"type": "string"}},
        ["nodeId", "newParentId"],
    ),
    _function(
        "add_edge",
        "Connect two existing nodes.",
        {
            "edgeId": {"type": "string", "description": "Id of the new edge, unique in the graph"},
            "sourceId": {"type": "string"},
            "targetId": {"type": "string"},
            "label": {"type": "string"},
        },
        ["edgeId", "sourceId", "targetId"],
    ),
    _function(
        "delete_edge",
        "Delete an edge by id.",
        {"edgeId": {"type": "string"}},
        ["edgeId"],
    ),
    _function(
        "move_edge",
        "Point an existing edge at a new source and target.",
        {
            "edgeId": {"type": "string"},
            "newSourceId": {"type": "string"},
            "newTargetId": {"type": "string"},
        },
        ["edgeId", "newSourceId", "newTargetId"],
    ),
    _function(
        "group_nodes",
        "Create a new group under parentId and move the listed nodes into it.",
        {
            "nodeIds": {"type": "array", "items": {"type": "string"}},
            "parentId": {"type": "string"},
            "groupId": {"type": "string"},
            "groupIconName": {"type": "string"},
            "style": {"type": "object"},
        },
        ["nodeIds", "parentId", "groupId"],
    ),
    _function(
        "remove_group",
        "Dissolve a group, moving its children up to the group's parent.",
        {"groupId": {"type": "string"}},
        ["groupId"],
    ),
    _function(
        "batch_update",
        "Apply several operations in order. Each one succeeds or fails on its own; "
        "the result lists which failed and why.",
        {
            "operations": {
                "type": "array",
                "description": "Operations to perform, each with a 'name' and that operation's arguments",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "enum": _OPERATION_NAMES},
                        "nodename": {"type": "string"},
                        "parentId": {"type": "string"},
                        "nodeId": {"type": "string"},
                        "newParentId": {"type": "string"},
                        "edgeId": {"type": "string"},
                        "sourceId": {"type": "string"},
                        "targetId": {"type": "string"},
                        "newSourceId": {"type": "string"},
                        "newTargetId": {"type": "string"},
                        "nodeIds": {"type": "array", "items": {"type": "string"}},
                        "groupId": {"type": "string"},
                        "groupIconName": {"type": "string"},
                        "label": {"type": "string"},
                        "data": _NODE_DATA,
                    },
                    "required": ["name"],
                },
            }
        },
        ["operations"],
    ),
]


def tool_names() -> List[str]:
    return [tool["name"] for tool in TOOL_CATALOG]


def chat_tools() -> List[Dict[str, Any]]:
    """TOOL_CATALOG in the chat-completions ``tools`` format."""
    return [{"type": "function", "function": tool} for tool in TOOL_CATALOG]
