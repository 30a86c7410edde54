"""
Named failure conditions raised by the graph engine.

Every primitive either returns a new tree or raises one of these. The
message is written for the driving agent: it names the id and the role
that failed so the next turn can correct the reference.
"""

from typing import Any, Dict, List, Optional


class GraphOperationError(Exception):
    code = "GRAPH_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ReferenceNotFoundError(GraphOperationError):
    """A parent/node/source/target/group/edge id does not resolve."""

    code = "REFERENCE_NOT_FOUND"

    ROLE_NAMES = {
        "node": "Node",
        "parent": "Parent node",
        "new_parent": "New parent node",
        "source": "Source node",
        "target": "Target node",
        "group": "Group",
        "edge": "Edge",
    }

    def __init__(self, ref_id: str, role: str = "node"):
        self.ref_id = ref_id
        self.role = role
        noun = self.ROLE_NAMES.get(role, role.capitalize())
        super().__init__(f"{noun} '{ref_id}' not found")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"ref_id": self.ref_id, "role": self.role})
        return data


class DuplicateIdError(GraphOperationError):
    code = "DUPLICATE_ID"

    def __init__(self, ref_id: str, kind: str = "node", path: Optional[List[str]] = None):
        self.ref_id = ref_id
        self.kind = kind
        self.path = path or []
        location = " → ".join(self.path) if self.path else "unknown"
        super().__init__(f"{kind.capitalize()} '{ref_id}' already exists at: {location}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"ref_id": self.ref_id, "kind": self.kind, "path": self.path})
        return data


class StructuralViolationError(GraphOperationError):
    """The operation would break the tree (ungroup the root, cycles, ...)."""

    code = "STRUCTURAL_VIOLATION"


class InvalidArgumentsError(GraphOperationError):
    code = "INVALID_ARGUMENTS"


class UnknownOperationError(GraphOperationError):
    code = "UNKNOWN_OPERATION"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown operation: {name}")


class GraphFormatError(GraphOperationError):
    code = "INVALID_GRAPH"


class StaleVersionError(GraphOperationError):
    code = "STALE_VERSION"

    def __init__(self, session_id: str, expected: int, current: int):
        self.session_id = session_id
        self.expected = expected
        self.current = current
        super().__init__(
            f"Graph '{session_id}' is at version {current}, "
            f"update was based on version {expected}"
        )
