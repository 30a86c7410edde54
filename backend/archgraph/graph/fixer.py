"""
Graph Auto-Fixer - rule-based repair of graphs that fail validation.

Graphs edited outside the mutation engine (hand-written payloads, older
sessions) can carry duplicate ids, dangling or misplaced edges. Every fix
here is deterministic; the result says what changed so the agent can be
told.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from archgraph.graph.hosting import reattach_all_edges
from archgraph.graph.lookup import collect_edges
from archgraph.graph.model import GraphEdge, GraphNode
from archgraph.graph.validator import (
    GraphValidationResult,
    GraphValidator,
    ValidationSeverity,
)

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    """Result of a fix operation"""
    success: bool
    fix_type: str  # "auto" | "none"
    issues_fixed: List[str] = field(default_factory=list)
    issues_remaining: List[str] = field(default_factory=list)
    changes_made: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "fix_type": self.fix_type,
            "issues_fixed": self.issues_fixed,
            "issues_remaining": self.issues_remaining,
            "changes_made": self.changes_made,
        }


class GraphAutoFixer:
    """
    Usage:
        fixer = GraphAutoFixer()
        fixed_tree, result = fixer.fix(tree)
    """

    AUTO_FIXABLE = {
        "DUPLICATE_NODE_ID",
        "DUPLICATE_EDGE_ID",
        "DANGLING_EDGE",
        "MISPLACED_EDGE",
        "MULTI_ENDPOINT_EDGE",
        "SELF_LOOP",
        "EMPTY_LABEL",
    }

    def __init__(self, max_iterations: int = 3):
        self.max_iterations = max_iterations
        self.validator = GraphValidator()

    def fix(
        self,
        tree: GraphNode,
        validation_result: Optional[GraphValidationResult] = None,
    ) -> Tuple[GraphNode, FixResult]:
        """
        Repair ``tree`` until it validates or nothing fixable is left.

        Returns:
            Tuple of (fixed_tree, fix_result). The input tree is not touched.
        """
        fixed = copy.deepcopy(tree)
        all_changes: List[str] = []
        all_fixed: List[str] = []

        for iteration in range(self.max_iterations):
            if validation_result is None or iteration > 0:
                validation_result = self.validator.validate(fixed)

            codes = {i.code for i in validation_result.issues} & self.AUTO_FIXABLE
            if not codes:
                break
            logger.info(
                "[FIXER] Iteration %d/%d, fixing: %s",
                iteration + 1, self.max_iterations, ", ".join(sorted(codes)),
            )

            changes = self._apply_auto_fixes(fixed, codes)
            if not changes:
                break
            all_changes.extend(changes)
            all_fixed.extend(codes)

        final = self.validator.validate(fixed)
        result = FixResult(
            success=final.is_valid,
            fix_type="auto",
            issues_fixed=sorted(set(all_fixed)),
            issues_remaining=[i.code for i in final.issues if i.severity == ValidationSeverity.ERROR],
            changes_made=all_changes,
        )
        logger.info("[FIXER] Fix complete: %d change(s), success=%s", len(all_changes), result.success)
        return fixed, result

    # ============================================================
    # AUTO-FIX METHODS
    # ============================================================

    def _apply_auto_fixes(self, tree: GraphNode, codes: Set[str]) -> List[str]:
        # Ids must be unique before dangling edges are judged, and edges
        # single-endpoint before they are re-hosted.
        changes: List[str] = []
        if "DUPLICATE_NODE_ID" in codes:
            changes.extend(self._fix_duplicate_node_ids(tree))
        if "DANGLING_EDGE" in codes:
            changes.extend(self._fix_dangling_edges(tree))
        if "DUPLICATE_EDGE_ID" in codes:
            changes.extend(self._fix_duplicate_edge_ids(tree))
        if "MULTI_ENDPOINT_EDGE" in codes:
            changes.extend(self._fix_multi_endpoint_edges(tree))
        if "SELF_LOOP" in codes:
            changes.extend(self._fix_self_loops(tree))
        if "EMPTY_LABEL" in codes:
            changes.extend(self._fix_empty_labels(tree))
        moved = reattach_all_edges(tree)
        if moved:
            changes.append(f"Re-hosted {moved} misplaced edge(s)")
        return changes

    def _fix_duplicate_node_ids(self, tree: GraphNode) -> List[str]:
        """Rename every occurrence after the first; edges keep pointing at the first."""
        taken = {n.id for n in tree.iter_nodes()}
        seen: Set[str] = set()
        changes = []
        for node in tree.iter_nodes():
            if node.id not in seen:
                seen.add(node.id)
                continue
            counter = 1
            new_id = f"{node.id}_{counter}"
            while new_id in taken:
                counter += 1
                new_id = f"{node.id}_{counter}"
            changes.append(f"Renamed duplicate node: {node.id} -> {new_id}")
            node.id = new_id
            taken.add(new_id)
            seen.add(new_id)
        return changes

    def _fix_dangling_edges(self, tree: GraphNode) -> List[str]:
        node_ids = {n.id for n in tree.iter_nodes()}
        changes = []
        for edges, host in collect_edges(tree):
            kept = []
            for edge in edges:
                if all(e in node_ids for e in edge.endpoints):
                    kept.append(edge)
                else:
                    changes.append(f"Removed dangling edge: {edge.id}")
            host.edges = kept
        return changes

    def _fix_duplicate_edge_ids(self, tree: GraphNode) -> List[str]:
        """Keep the first edge with each id, drop the rest."""
        seen: Set[str] = set()
        changes = []
        for edges, host in collect_edges(tree):
            kept = []
            for edge in edges:
                if edge.id in seen:
                    changes.append(f"Removed duplicate edge: {edge.id} on {host.id}")
                    continue
                seen.add(edge.id)
                kept.append(edge)
            host.edges = kept
        return changes

    def _fix_multi_endpoint_edges(self, tree: GraphNode) -> List[str]:
        """Split into one edge per (source, target) pair, ids suffixed _1, _2, ..."""
        taken = {e.id for edges, _ in collect_edges(tree) for e in edges}
        changes = []
        for edges, host in collect_edges(tree):
            rebuilt: List[GraphEdge] = []
            for edge in edges:
                if not edge.is_multi_endpoint:
                    rebuilt.append(edge)
                    continue
                counter = 0
                for source in edge.sources:
                    for target in edge.targets:
                        counter += 1
                        new_id = f"{edge.id}_{counter}"
                        while new_id in taken:
                            counter += 1
                            new_id = f"{edge.id}_{counter}"
                        taken.add(new_id)
                        rebuilt.append(GraphEdge(
                            id=new_id,
                            sources=[source],
                            targets=[target],
                            label=edge.label,
                            extras=copy.deepcopy(edge.extras),
                        ))
                changes.append(f"Split multi-endpoint edge {edge.id} into {counter} edge(s)")
            host.edges = rebuilt
        return changes

    def _fix_self_loops(self, tree: GraphNode) -> List[str]:
        changes = []
        for edges, host in collect_edges(tree):
            kept = []
            for edge in edges:
                if set(edge.sources) & set(edge.targets):
                    changes.append(f"Removed self-loop: {edge.id}")
                else:
                    kept.append(edge)
            host.edges = kept
        return changes

    def _fix_empty_labels(self, tree: GraphNode) -> List[str]:
        changes = []
        for node in tree.iter_nodes():
            if not node.label or not node.label.strip():
                node.label = node.id.replace("_", " ").replace("-", " ").title()
                changes.append(f"Set default label for: {node.id}")
        return changes


# ============================================================
# Convenience Functions
# ============================================================

def auto_fix_graph(tree: GraphNode, max_iterations: int = 3) -> Tuple[GraphNode, FixResult]:
    return GraphAutoFixer(max_iterations=max_iterations).fix(tree)


def validate_and_fix_graph(tree: GraphNode) -> Tuple[GraphNode, GraphValidationResult, FixResult]:
    """
    Validate the graph, fix if needed, return all results.

    Returns:
        Tuple of (fixed_tree, final_validation, fix_result)
    """
    validator = GraphValidator()
    initial = validator.validate(tree)

    if initial.is_valid and not any(i.code in GraphAutoFixer.AUTO_FIXABLE for i in initial.issues):
        return tree, initial, FixResult(
            success=True,
            fix_type="none",
            changes_made=["No fixes needed"],
        )

    fixed, fix_result = auto_fix_graph(tree)
    return fixed, validator.validate(fixed), fix_result
