"""
Function-call execution for the architecture agent.

Turns one tool call from the model into a graph operation and builds the
payload sent back as the tool result. That payload always carries the whole
resulting graph so the next round can reason over the current state, and an
instruction telling the model whether to carry on or fix and retry.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from archgraph.graph.batch import BatchResult, Operation, apply_operation, validated_batch_update
from archgraph.graph.errors import GraphOperationError, InvalidArgumentsError
from archgraph.graph.lookup import collect_edges
from archgraph.graph.model import GraphNode
from archgraph.utils.json_extract import load_json_object

logger = logging.getLogger(__name__)

CONTINUE_INSTRUCTION = (
    "Continue building the architecture by calling the next required function. "
    "Do not provide any explanation or acknowledgment."
)
RETRY_INSTRUCTION = "Fix the error and retry the operation. Do not provide explanations."
PARTIAL_INSTRUCTION = (
    "Some operations failed. Retry only the failed operations with corrected ids; "
    "the successful ones are already applied."
)
DISPLAY_INSTRUCTION = (
    "Now build the architecture by creating groups and nodes using batch_update."
)


@dataclass
class FunctionCall:
    name: str
    arguments: Any = None
    call_id: Optional[str] = None


@dataclass
class FunctionCallOutcome:
    graph: GraphNode
    output: Dict[str, Any] = field(default_factory=dict)
    batch: Optional[BatchResult] = None
    call: Optional[FunctionCall] = None

    @property
    def success(self) -> bool:
        return bool(self.output.get("success"))

    def to_tool_message(self, call_id: Optional[str]) -> Dict[str, Any]:
        return {
            "role": "tool",
            "tool_call_id": call_id,
            "content": json.dumps(self.output),
        }


def summarize_graph(tree: GraphNode) -> Dict[str, Any]:
    """Flat view of the tree the model can scan without walking the nesting."""
    nodes: List[Dict[str, Any]] = []

    def walk(node: GraphNode) -> None:
        for child in node.children:
            nodes.append({
                "id": child.id,
                "label": child.label,
                "parentId": node.id,
                "isGroup": child.is_group,
            })
            walk(child)

    walk(tree)
    edges = [
        {
            "id": edge.id,
            "sources": list(edge.sources),
            "targets": list(edge.targets),
            "label": edge.label,
            "hostId": host.id,
        }
        for edge_list, host in collect_edges(tree)
        for edge in edge_list
    ]
    return {
        "nodeCount": len(nodes),
        "groupCount": sum(1 for n in nodes if n["isGroup"]),
        "edgeCount": len(edges),
        "nodes": nodes,
        "edges": edges,
        "structure": tree.to_dict(),
    }


def _failure(call: FunctionCall, tree: GraphNode, exc: GraphOperationError) -> FunctionCallOutcome:
    logger.warning("[FUNCTION-CALL] %s failed: %s", call.name, exc.message)
    return FunctionCallOutcome(
        graph=tree,
        output={
            "success": False,
            "operation": call.name,
            "error": exc.message,
            "code": exc.code,
            "graph": summarize_graph(tree),
            "instruction": RETRY_INSTRUCTION,
        },
    )


def _run_batch(call: FunctionCall, args: Dict[str, Any], tree: GraphNode) -> FunctionCallOutcome:
    operations = args.get("operations")
    if not isinstance(operations, list):
        raise InvalidArgumentsError("batch_update expects 'operations' to be an array")

    result = validated_batch_update(operations, tree)
    return FunctionCallOutcome(
        graph=result.graph,
        batch=result,
        output={
            "success": result.all_succeeded,
            "operation": call.name,
            "message": result.get_summary(),
            "results": [r.to_dict() for r in result.results],
            "graph": summarize_graph(result.graph),
            "instruction": CONTINUE_INSTRUCTION if result.all_succeeded else PARTIAL_INSTRUCTION,
        },
    )


def execute_function_call(call: FunctionCall, tree: GraphNode) -> FunctionCallOutcome:
    """
    Execute one model function call against ``tree``.

    Graph errors are reported back to the model, never raised: on failure the
    outcome carries the unchanged tree. Anything else propagates.
    """
    logger.info("[FUNCTION-CALL] Executing %s", call.name)
    outcome = _execute(call, load_json_object(call.arguments), tree)
    outcome.call = call
    return outcome


def _execute(call: FunctionCall, args: Dict[str, Any], tree: GraphNode) -> FunctionCallOutcome:
    if call.name == "display_elk_graph":
        summary = summarize_graph(tree)
        return FunctionCallOutcome(
            graph=tree,
            output={
                "success": True,
                "operation": call.name,
                "message": f"Current graph state displayed. {len(tree.children)} top-level node(s) found.",
                "graph": summary,
                "instruction": DISPLAY_INSTRUCTION,
            },
        )

    try:
        if call.name == "batch_update":
            return _run_batch(call, args, tree)
        new_tree = apply_operation(tree, Operation(name=call.name, args=args))
    except GraphOperationError as exc:
        return _failure(call, tree, exc)

    return FunctionCallOutcome(
        graph=new_tree,
        output={
            "success": True,
            "operation": call.name,
            "message": f"Successfully executed {call.name}. The graph has been updated.",
            "graph": summarize_graph(new_tree),
            "instruction": CONTINUE_INSTRUCTION,
        },
    )
