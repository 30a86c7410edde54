"""
Graph engine: model, lookups, mutation primitives and batch execution.
"""

from archgraph.graph.model import GraphEdge, GraphNode, ROOT_ID, new_root, parse_graph
from archgraph.graph.errors import (
    DuplicateIdError,
    GraphFormatError,
    GraphOperationError,
    InvalidArgumentsError,
    ReferenceNotFoundError,
    StaleVersionError,
    StructuralViolationError,
    UnknownOperationError,
)
from archgraph.graph.mutations import (
    add_edge,
    add_node,
    delete_edge,
    delete_node,
    group_nodes,
    move_edge,
    move_node,
    remove_group,
)
from archgraph.graph.batch import BatchResult, OperationResult, batch_update, validated_batch_update
from archgraph.graph.validator import GraphValidator, validate_graph
from archgraph.graph.fixer import GraphAutoFixer, validate_and_fix_graph

__all__ = [
    "GraphEdge",
    "GraphNode",
    "ROOT_ID",
    "new_root",
    "parse_graph",
    "DuplicateIdError",
    "GraphFormatError",
    "GraphOperationError",
    "InvalidArgumentsError",
    "ReferenceNotFoundError",
    "StaleVersionError",
    "StructuralViolationError",
    "UnknownOperationError",
    "add_edge",
    "add_node",
    "delete_edge",
    "delete_node",
    "group_nodes",
    "move_edge",
    "move_node",
    "remove_group",
    "BatchResult",
    "OperationResult",
    "batch_update",
    "validated_batch_update",
    "GraphValidator",
    "validate_graph",
    "GraphAutoFixer",
    "validate_and_fix_graph",
]
