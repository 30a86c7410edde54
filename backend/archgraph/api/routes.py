import logging
from typing import Optional

import requests
from fastapi import APIRouter, Depends, HTTPException

from archgraph.agent.client import ArchitectureAgent
from archgraph.agent.executor import FunctionCall, execute_function_call
from archgraph.agent.tools import TOOL_CATALOG
from archgraph.db.store import GraphSessionStore, SessionNotFoundError, StoredGraph
from archgraph.graph.batch import validated_batch_update
from archgraph.graph.errors import StaleVersionError
from archgraph.graph.fixer import validate_and_fix_graph
from archgraph.graph.hashing import structural_hash
from archgraph.graph.model import new_root, parse_graph
from archgraph.graph.sample import default_architecture
from archgraph.graph.validator import validate_graph
from archgraph.layout.coordinator import LayoutCoordinator
from archgraph.layout.elk import strip_geometry, to_elk_graph
from archgraph.layout.options import LayoutOptions
from archgraph.schemas import (
    BatchRequest,
    BatchResponse,
    ChatRequest,
    ChatResponse,
    CreateGraphRequest,
    GraphResponse,
    LayoutRequest,
    OperationRequest,
    OperationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_coordinator: Optional[LayoutCoordinator] = None


# ============================================================
# DEPENDENCIES (overridden in tests)
# ============================================================

def get_store() -> GraphSessionStore:
    return GraphSessionStore()


def get_agent() -> ArchitectureAgent:
    return ArchitectureAgent()


def get_coordinator() -> LayoutCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = LayoutCoordinator()
    return _coordinator


def _load(store: GraphSessionStore, graph_id: str) -> StoredGraph:
    try:
        return store.get(graph_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def _check_version(stored: StoredGraph, expected_version: Optional[int]) -> int:
    if expected_version is not None and expected_version != stored.version:
        raise StaleVersionError(stored.id, expected_version, stored.version)
    return stored.version


def _graph_summary(stored: StoredGraph) -> dict:
    result = validate_graph(stored.graph)
    return {
        **result.stats,
        "validation": result.get_summary(),
        "structural_hash": structural_hash(stored.graph),
    }


# ============================================================
# GRAPH SESSIONS
# ============================================================

@router.post("/graphs", response_model=GraphResponse)
def create_graph(request: CreateGraphRequest, store: GraphSessionStore = Depends(get_store)):
    if request.graph is not None:
        tree = parse_graph(request.graph)
    elif request.use_default:
        tree = default_architecture()
    else:
        tree = new_root()

    stored = store.create(tree)
    return GraphResponse(id=stored.id, version=stored.version, graph=stored.graph.to_dict())


@router.get("/graphs/{graph_id}", response_model=GraphResponse)
def get_graph(graph_id: str, store: GraphSessionStore = Depends(get_store)):
    stored = _load(store, graph_id)
    return GraphResponse(
        id=stored.id,
        version=stored.version,
        graph=stored.graph.to_dict(),
        summary=_graph_summary(stored),
    )


@router.post("/graphs/{graph_id}/operations", response_model=OperationResponse)
def apply_graph_operation(
    graph_id: str,
    request: OperationRequest,
    store: GraphSessionStore = Depends(get_store),
):
    """Execute one function call the way the agent would, and persist the result."""
    stored = _load(store, graph_id)
    version = _check_version(stored, request.expected_version)

    outcome = execute_function_call(FunctionCall(name=request.name, arguments=request.arguments), stored.graph)
    if outcome.graph is not stored.graph:
        version = store.save(graph_id, outcome.graph, expected_version=version).version

    store.log_operation(
        graph_id,
        request.name,
        request.arguments,
        status="success" if outcome.success else "error",
        error=outcome.output.get("error") or (None if outcome.success else outcome.output.get("message")),
        version=version,
    )
    return OperationResponse(id=graph_id, version=version, success=outcome.success, output=outcome.output)


@router.post("/graphs/{graph_id}/batch", response_model=BatchResponse)
def apply_batch(graph_id: str, request: BatchRequest, store: GraphSessionStore = Depends(get_store)):
    stored = _load(store, graph_id)
    version = _check_version(stored, request.expected_version)

    result = validated_batch_update(request.operations, stored.graph)
    if result.succeeded:
        version = store.save(graph_id, result.graph, expected_version=version).version

    store.log_operation(
        graph_id,
        "batch_update",
        {"operations": request.operations},
        status="success" if result.all_succeeded else "error",
        error=None if result.all_succeeded else result.get_summary(),
        version=version,
    )
    return BatchResponse(
        id=graph_id,
        version=version,
        summary=result.get_summary(),
        results=[r.to_dict() for r in result.results],
        graph=result.graph.to_dict(),
    )


@router.get("/graphs/{graph_id}/operations")
def list_graph_operations(graph_id: str, store: GraphSessionStore = Depends(get_store)):
    _load(store, graph_id)
    return {"id": graph_id, "operations": store.list_operations(graph_id)}


# ============================================================
# VALIDATION / AUTO-FIX
# ============================================================

@router.get("/graphs/{graph_id}/validate")
def validate_stored_graph(graph_id: str, store: GraphSessionStore = Depends(get_store)):
    stored = _load(store, graph_id)
    result = validate_graph(stored.graph)
    return {"id": graph_id, "version": stored.version, "summary": result.get_summary(), **result.to_dict()}


@router.post("/graphs/{graph_id}/fix")
def fix_stored_graph(graph_id: str, store: GraphSessionStore = Depends(get_store)):
    stored = _load(store, graph_id)
    fixed, final_validation, fix_result = validate_and_fix_graph(stored.graph)

    version = stored.version
    if fixed is not stored.graph and fix_result.changes_made:
        version = store.save(graph_id, fixed, expected_version=stored.version).version
        logger.info("[FIX] Session %s: %s", graph_id, "; ".join(fix_result.changes_made))

    return {
        "id": graph_id,
        "version": version,
        "fix": fix_result.to_dict(),
        "validation": final_validation.to_dict(),
        "graph": fixed.to_dict(),
    }


# ============================================================
# LAYOUT
# ============================================================

def _layout_options(direction: str, spacing: int, hierarchy_handling: str) -> LayoutOptions:
    try:
        return LayoutOptions(direction=direction, spacing=spacing, hierarchy_handling=hierarchy_handling)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.get("/graphs/{graph_id}/elk")
def get_elk_graph(
    graph_id: str,
    direction: str = "RIGHT",
    spacing: int = 30,
    hierarchy_handling: str = "INCLUDE_CHILDREN",
    store: GraphSessionStore = Depends(get_store),
):
    """Layout-ready ELK JSON for clients that run elkjs themselves."""
    stored = _load(store, graph_id)
    options = _layout_options(direction, spacing, hierarchy_handling)
    return {
        "id": graph_id,
        "version": stored.version,
        "structural_hash": structural_hash(stored.graph),
        "graph": to_elk_graph(strip_geometry(stored.graph), options),
    }


@router.post("/graphs/{graph_id}/layout", response_model=GraphResponse)
async def layout_graph(
    graph_id: str,
    request: LayoutRequest,
    store: GraphSessionStore = Depends(get_store),
    coordinator: LayoutCoordinator = Depends(get_coordinator),
):
    stored = _load(store, graph_id)
    options = _layout_options(request.direction, request.spacing, request.hierarchy_handling)

    laid_out = await coordinator.layout(graph_id, stored.version, stored.graph, options)
    if laid_out is None:
        raise HTTPException(status_code=409, detail="Layout was superseded by a newer request")

    saved = store.save(graph_id, laid_out, expected_version=stored.version)
    return GraphResponse(id=graph_id, version=saved.version, graph=saved.graph.to_dict())


# ============================================================
# AGENT
# ============================================================

@router.post("/graphs/{graph_id}/chat", response_model=ChatResponse)
def chat(
    graph_id: str,
    request: ChatRequest,
    store: GraphSessionStore = Depends(get_store),
    agent: ArchitectureAgent = Depends(get_agent),
):
    stored = _load(store, graph_id)
    messages = [*request.history, {"role": "user", "content": request.message}]

    try:
        turn = agent.run_turn(messages, stored.graph)
    except requests.RequestException as exc:
        logger.error("[AGENT] LLM request failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"LLM request failed: {exc}")

    version = stored.version
    if turn.graph is not stored.graph:
        version = store.save(graph_id, turn.graph, expected_version=stored.version).version

    for outcome in turn.outcomes:
        store.log_operation(
            graph_id,
            outcome.output.get("operation", ""),
            outcome.call.arguments if outcome.call else None,
            status="success" if outcome.success else "error",
            error=outcome.output.get("error"),
            version=version,
        )

    return ChatResponse(
        id=graph_id,
        version=version,
        reply=turn.reply,
        rounds=turn.rounds,
        operations=[
            {
                "name": o.output.get("operation"),
                "success": o.success,
                "message": o.output.get("message") or o.output.get("error"),
            }
            for o in turn.outcomes
        ],
        graph=turn.graph.to_dict(),
    )


@router.get("/tools")
def list_tools():
    return {"tools": TOOL_CATALOG}
