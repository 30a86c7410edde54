"""
Graph Validator - checks the structural invariants of an architecture tree.

Catches issues like:
- Duplicate node or edge ids
- Edges whose endpoints no longer exist (dangling)
- Edges hosted on the wrong container (not the nearest common ancestor)
- Multi-source / multi-target edges
- Self loops, empty labels, unconnected leaves

Trees produced solely by the mutation engine always pass the error-level
checks; this is for graphs loaded from storage, the UI, or anywhere else.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from archgraph.graph.errors import StructuralViolationError
from archgraph.graph.hosting import expected_host
from archgraph.graph.lookup import collect_edges
from archgraph.graph.model import GraphNode


class ValidationSeverity(Enum):
    ERROR = "error"      # An invariant is broken; layout may fail
    WARNING = "warning"  # Renders, but the engine cannot fully reason about it
    INFO = "info"        # Suggestions for the agent


@dataclass
class ValidationIssue:
    """A single validation issue found in the graph"""
    severity: ValidationSeverity
    code: str
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "edge_id": self.edge_id,
            "suggestion": self.suggestion,
        }


@dataclass
class GraphValidationResult:
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)
    edge_distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.INFO)

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "issues": [i.to_dict() for i in self.issues],
            "stats": self.stats,
            "edge_distribution": self.edge_distribution,
        }

    def get_summary(self) -> str:
        status = "Valid" if self.is_valid else "Invalid"
        return (
            f"{status} | Errors: {self.error_count}, "
            f"Warnings: {self.warning_count}, Info: {self.info_count}"
        )


class GraphValidator:
    """
    Usage:
        validator = GraphValidator()
        result = validator.validate(tree)
        if not result.is_valid:
            for issue in result.issues:
                print(f"[{issue.severity.value}] {issue.message}")
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode

    def validate(self, tree: GraphNode) -> GraphValidationResult:
        nodes = list(tree.iter_nodes())
        node_ids = {n.id for n in nodes}

        issues: List[ValidationIssue] = []
        issues.extend(self._check_duplicate_node_ids(nodes))
        issues.extend(self._check_duplicate_edge_ids(tree))
        issues.extend(self._check_dangling_edges(tree, node_ids))
        issues.extend(self._check_edge_placement(tree, node_ids))
        issues.extend(self._check_multi_endpoint_edges(tree))
        issues.extend(self._check_self_loops(tree))
        issues.extend(self._check_empty_labels(nodes))
        issues.extend(self._check_unconnected_leaves(tree, nodes))

        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        has_warnings = any(i.severity == ValidationSeverity.WARNING for i in issues)
        is_valid = not has_errors
        if self.strict_mode:
            is_valid = not has_errors and not has_warnings

        return GraphValidationResult(
            is_valid=is_valid,
            issues=issues,
            stats=self._calculate_stats(tree, nodes),
            edge_distribution={host.id: len(edges) for edges, host in collect_edges(tree)},
        )

    def _check_duplicate_node_ids(self, nodes: List[GraphNode]) -> List[ValidationIssue]:
        counts: Dict[str, int] = defaultdict(int)
        for node in nodes:
            counts[node.id] += 1
        return [
            ValidationIssue(
                severity=ValidationSeverity.ERROR,
                code="DUPLICATE_NODE_ID",
                message=f"Duplicate node ID '{node_id}' appears {count} times",
                node_id=node_id,
                suggestion="Ensure each node has a unique ID",
            )
            for node_id, count in counts.items() if count > 1
        ]

    def _check_duplicate_edge_ids(self, tree: GraphNode) -> List[ValidationIssue]:
        counts: Dict[str, int] = defaultdict(int)
        for edges, _ in collect_edges(tree):
            for edge in edges:
                counts[edge.id] += 1
        return [
            ValidationIssue(
                severity=ValidationSeverity.ERROR,
                code="DUPLICATE_EDGE_ID",
                message=f"Duplicate edge ID '{edge_id}' appears {count} times",
                edge_id=edge_id,
                suggestion="Delete the extra edge or give it a new ID",
            )
            for edge_id, count in counts.items() if count > 1
        ]

    def _check_dangling_edges(self, tree: GraphNode, node_ids: set) -> List[ValidationIssue]:
        issues = []
        for edges, host in collect_edges(tree):
            for edge in edges:
                missing = [e for e in edge.endpoints if e not in node_ids]
                if missing:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="DANGLING_EDGE",
                        message=f"Edge '{edge.id}' on '{host.id}' references missing node(s): {', '.join(missing)}",
                        edge_id=edge.id,
                        suggestion="Delete the edge or create the missing node(s)",
                    ))
        return issues

    def _check_edge_placement(self, tree: GraphNode, node_ids: set) -> List[ValidationIssue]:
        issues = []
        for edges, host in collect_edges(tree):
            for edge in edges:
                if any(e not in node_ids for e in edge.endpoints):
                    continue  # reported as dangling
                correct = expected_host(tree, edge)
                if correct is not None and correct is not host:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="MISPLACED_EDGE",
                        message=(
                            f"Edge '{edge.id}' ({', '.join(edge.sources)} -> {', '.join(edge.targets)}) "
                            f"is at '{host.id}' but should be at '{correct.id}'"
                        ),
                        node_id=host.id,
                        edge_id=edge.id,
                        suggestion="Re-host the edge on the nearest common ancestor of its endpoints",
                    ))
        return issues

    def _check_multi_endpoint_edges(self, tree: GraphNode) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                severity=ValidationSeverity.WARNING,
                code="MULTI_ENDPOINT_EDGE",
                message=f"Edge '{edge.id}' has {len(edge.sources)} sources and {len(edge.targets)} targets",
                edge_id=edge.id,
                suggestion="Split it into one edge per source/target pair",
            )
            for edges, _ in collect_edges(tree)
            for edge in edges
            if edge.is_multi_endpoint
        ]

    def _check_self_loops(self, tree: GraphNode) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                severity=ValidationSeverity.INFO,
                code="SELF_LOOP",
                message=f"Edge '{edge.id}' creates a self-loop on node '{edge.sources[0]}'",
                node_id=edge.sources[0],
                edge_id=edge.id,
                suggestion="Remove self-referencing edge unless intentional",
            )
            for edges, _ in collect_edges(tree)
            for edge in edges
            if edge.sources and set(edge.sources) & set(edge.targets)
        ]

    def _check_empty_labels(self, nodes: List[GraphNode]) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                severity=ValidationSeverity.INFO,
                code="EMPTY_LABEL",
                message=f"Node '{node.id}' has empty label",
                node_id=node.id,
                suggestion="Add a descriptive label to the node",
            )
            for node in nodes
            if not node.label or not node.label.strip()
        ]

    def _check_unconnected_leaves(self, tree: GraphNode, nodes: List[GraphNode]) -> List[ValidationIssue]:
        connected = set()
        for edges, _ in collect_edges(tree):
            for edge in edges:
                connected.update(edge.endpoints)
        return [
            ValidationIssue(
                severity=ValidationSeverity.INFO,
                code="UNCONNECTED_NODE",
                message=f"Node '{node.label}' ({node.id}) has no connections",
                node_id=node.id,
                suggestion="Connect it to the components it talks to, or delete it",
            )
            for node in nodes
            if node is not tree and not node.children and node.id not in connected
        ]

    def _calculate_stats(self, tree: GraphNode, nodes: List[GraphNode]) -> Dict[str, int]:
        def depth(node: GraphNode) -> int:
            return 1 + max((depth(c) for c in node.children), default=0)

        return {
            "nodes": len(nodes) - 1,  # root excluded
            "groups": sum(1 for n in nodes if n is not tree and n.children),
            "edges": sum(len(edges) for edges, _ in collect_edges(tree)),
            "depth": depth(tree) - 1,
        }


def validate_graph(tree: GraphNode, strict: bool = False) -> GraphValidationResult:
    """Convenience function to validate a graph."""
    return GraphValidator(strict_mode=strict).validate(tree)


def get_validation_summary(tree: GraphNode) -> str:
    return validate_graph(tree).get_summary()


def raise_on_errors(tree: GraphNode) -> None:
    """Validate the graph and raise if any invariant is broken."""
    result = validate_graph(tree)
    if not result.is_valid:
        messages = [
            f"[{i.code}] {i.message}"
            for i in result.issues
            if i.severity == ValidationSeverity.ERROR
        ]
        raise StructuralViolationError(
            f"Graph validation failed with {result.error_count} errors:\n" + "\n".join(messages)
        )
