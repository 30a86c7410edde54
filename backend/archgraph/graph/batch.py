"""
Batch execution of graph operations.

Two entry points:

- ``batch_update``: best-effort. Applies operations in order, logs and
  skips anything unknown or failing. Returns only the tree.
- ``validated_batch_update``: pre-validates the ids each operation refers
  to, runs it, and records a per-operation result. Failures never stop the
  batch and there is no rollback: the returned tree holds every operation
  that succeeded, and the summary tells the agent what to retry.

Operation payloads come straight from the agent and may be either
``{"name": "add_node", "args": {...}}`` or flat
``{"name": "add_node", "nodename": ..., "parentId": ...}``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from archgraph.graph import mutations
from archgraph.graph.errors import (
    GraphOperationError,
    InvalidArgumentsError,
    ReferenceNotFoundError,
    UnknownOperationError,
)
from archgraph.graph.lookup import find_edge, find_node_by_id
from archgraph.graph.model import GraphNode

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


@dataclass
class Operation:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "Operation":
        if isinstance(payload, Operation):
            return payload
        if not isinstance(payload, dict):
            raise InvalidArgumentsError(f"Operation must be an object, got {type(payload).__name__}")
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidArgumentsError("Operation is missing its 'name'")
        args = payload.get("args")
        if isinstance(args, dict):
            merged = {k: v for k, v in payload.items() if k not in ("name", "args")}
            merged.update(args)
            return cls(name=name, args=merged)
        return cls(name=name, args={k: v for k, v in payload.items() if k != "name"})

    def require(self, *keys: str) -> None:
        """Required id arguments must be present and be non-empty strings."""
        missing = [k for k in keys if self.args.get(k) in (None, "")]
        if missing:
            raise InvalidArgumentsError(
                f"{self.name} is missing required argument(s): {', '.join(missing)}"
            )
        not_strings = [k for k in keys if not isinstance(self.args[k], str)]
        if not_strings:
            raise InvalidArgumentsError(
                f"{self.name} expects string id(s) for: {', '.join(not_strings)}"
            )

    def optional(self, key: str, kind: type, description: str) -> Any:
        value = self.args.get(key)
        if value is not None and not isinstance(value, kind):
            raise InvalidArgumentsError(
                f"{self.name} expects '{key}' to be {description}, got {type(value).__name__}"
            )
        return value


@dataclass
class OperationResult:
    operation_index: int
    name: str
    status: str
    error: Optional[str] = None
    code: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS

    def to_dict(self) -> dict:
        return {
            "operation_index": self.operation_index,
            "name": self.name,
            "status": self.status,
            "error": self.error,
            "code": self.code,
            "warnings": self.warnings,
        }


@dataclass
class BatchResult:
    graph: GraphNode
    results: List[OperationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[OperationResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> List[OperationResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def get_summary(self) -> str:
        """Mixed-outcome summary for the driving agent."""
        summary = f"{len(self.succeeded)} succeeded, {len(self.failed)} failed"
        if self.failed:
            reasons = "; ".join(
                f"#{r.operation_index + 1} {r.name}: {r.error}" for r in self.failed
            )
            summary += f": {reasons}"
        return summary

    def to_dict(self) -> dict:
        return {
            "summary": self.get_summary(),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [r.to_dict() for r in self.results],
        }


# ============================================================
# DISPATCH
# ============================================================

def _add_node(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("nodename", "parentId")
    return mutations.add_node(
        op.args["nodename"], op.args["parentId"], tree,
        label=op.optional("label", str, "a string"),
        data=op.optional("data", dict, "an object"),
    )


def _delete_node(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("nodeId")
    return mutations.delete_node(op.args["nodeId"], tree)


def _move_node(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("nodeId", "newParentId")
    return mutations.move_node(op.args["nodeId"], op.args["newParentId"], tree)


def _add_edge(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("edgeId", "sourceId", "targetId")
    return mutations.add_edge(
        op.args["edgeId"], op.args["sourceId"], op.args["targetId"], tree,
        label=op.optional("label", str, "a string"),
    )


def _delete_edge(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("edgeId")
    return mutations.delete_edge(op.args["edgeId"], tree)


def _move_edge(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("edgeId", "newSourceId", "newTargetId")
    return mutations.move_edge(op.args["edgeId"], op.args["newSourceId"], op.args["newTargetId"], tree)


def _group_args(op: Operation) -> Tuple[list, str, str]:
    op.require("parentId", "groupId")
    node_ids = op.args.get("nodeIds")
    if not isinstance(node_ids, list):
        raise InvalidArgumentsError("group_nodes expects 'nodeIds' to be an array of node ids")
    if not all(isinstance(node_id, str) and node_id for node_id in node_ids):
        raise InvalidArgumentsError("group_nodes expects every entry of 'nodeIds' to be a non-empty string")
    return node_ids, op.args["parentId"], op.args["groupId"]


def _group_nodes(tree: GraphNode, op: Operation) -> GraphNode:
    node_ids, parent_id, group_id = _group_args(op)
    return mutations.group_nodes(
        node_ids, parent_id, group_id, tree,
        style=op.args.get("style"), group_icon_name=op.optional("groupIconName", str, "a string"),
    )


def _remove_group(tree: GraphNode, op: Operation) -> GraphNode:
    op.require("groupId")
    return mutations.remove_group(op.args["groupId"], tree)


OPERATIONS: Dict[str, Callable[[GraphNode, Operation], GraphNode]] = {
    "add_node": _add_node,
    "delete_node": _delete_node,
    "move_node": _move_node,
    "add_edge": _add_edge,
    "delete_edge": _delete_edge,
    "move_edge": _move_edge,
    "group_nodes": _group_nodes,
    "remove_group": _remove_group,
}


def apply_operation(tree: GraphNode, operation: Any) -> GraphNode:
    op = Operation.from_payload(operation)
    handler = OPERATIONS.get(op.name)
    if handler is None:
        raise UnknownOperationError(op.name)
    return handler(tree, op)


# ============================================================
# BEST-EFFORT BATCH
# ============================================================

def batch_update(operations: List[Any], tree: GraphNode) -> GraphNode:
    logger.info("[BATCH-UPDATE] Starting best-effort batch with %d operation(s)", len(operations))
    graph = tree
    for index, payload in enumerate(operations):
        try:
            graph = apply_operation(graph, payload)
        except UnknownOperationError as exc:
            logger.warning("[BATCH-UPDATE] %s, skipping", exc.message)
        except GraphOperationError as exc:
            logger.warning("[BATCH-UPDATE] Operation %d skipped: %s", index + 1, exc.message)
    return graph


# ============================================================
# VALIDATING BATCH
# ============================================================

def _check_nodes(tree: GraphNode, refs: List[Tuple[Optional[str], str]]) -> None:
    for ref_id, role in refs:
        # Ids of the wrong type are reported by the handler's argument checks.
        if isinstance(ref_id, str) and ref_id and find_node_by_id(tree, ref_id) is None:
            raise ReferenceNotFoundError(ref_id, role)


def prevalidate(tree: GraphNode, op: Operation) -> None:
    """
    Check that every id the operation refers to resolves against ``tree``.

    Catches the agent's usual mistakes (nodes not created yet, or already
    deleted) before the primitive runs, including the delete/move edge cases
    the primitives themselves treat as silent no-ops.
    """
    a = op.args
    if op.name == "add_node":
        _check_nodes(tree, [(a.get("parentId"), "parent")])
    elif op.name in ("delete_node", "move_node"):
        _check_nodes(tree, [(a.get("nodeId"), "node"), (a.get("newParentId"), "new_parent")])
    elif op.name == "add_edge":
        _check_nodes(tree, [(a.get("sourceId"), "source"), (a.get("targetId"), "target")])
    elif op.name in ("delete_edge", "move_edge"):
        edge_id = a.get("edgeId")
        if isinstance(edge_id, str) and edge_id and find_edge(tree, edge_id) is None:
            raise ReferenceNotFoundError(edge_id, "edge")
        _check_nodes(tree, [(a.get("newSourceId"), "source"), (a.get("newTargetId"), "target")])
    elif op.name == "group_nodes":
        _check_nodes(tree, [(a.get("parentId"), "parent")])
    elif op.name == "remove_group":
        _check_nodes(tree, [(a.get("groupId"), "group")])


def _run_validated(tree: GraphNode, op: Operation) -> Tuple[GraphNode, List[str]]:
    if op.name not in OPERATIONS:
        raise UnknownOperationError(op.name)
    prevalidate(tree, op)

    if op.name != "group_nodes":
        return apply_operation(tree, op), []

    node_ids, parent_id, group_id = _group_args(op)
    graph, moved, skipped = mutations.group_nodes_with_report(
        node_ids, parent_id, group_id, tree,
        style=op.args.get("style"), group_icon_name=op.optional("groupIconName", str, "a string"),
    )
    warnings = []
    if skipped:
        warnings.append(f"Skipped unresolvable or invalid member(s): {', '.join(map(str, skipped))}")
    if not moved:
        warnings.append(f"Group '{group_id}' was not created because none of its members could be moved")
    return graph, warnings


def validated_batch_update(operations: List[Any], tree: GraphNode) -> BatchResult:
    logger.info("[BATCH-UPDATE] Starting validated batch with %d operation(s)", len(operations))
    graph = tree
    results: List[OperationResult] = []

    for index, payload in enumerate(operations):
        name = payload.get("name", "<missing>") if isinstance(payload, dict) else "<invalid>"
        try:
            op = Operation.from_payload(payload)
            graph, warnings = _run_validated(graph, op)
        except GraphOperationError as exc:
            logger.warning("[BATCH-UPDATE] Operation %d/%d (%s) failed: %s", index + 1, len(operations), name, exc.message)
            results.append(OperationResult(index, name, STATUS_ERROR, error=exc.message, code=exc.code))
            continue
        results.append(OperationResult(index, op.name, STATUS_SUCCESS, warnings=warnings))

    result = BatchResult(graph=graph, results=results)
    logger.info("[BATCH-UPDATE] %s", result.get_summary())
    return result
