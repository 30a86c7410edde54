"""
Session store: one graph slot per conversation.

Writes are optimistic. Every save names the version it was computed from
and the row is only updated if that is still the stored version, so an
agent round working on an outdated graph cannot clobber a newer one.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from archgraph.db.models import GraphSession, OperationLog
from archgraph.db.session import SessionLocal
from archgraph.graph.errors import StaleVersionError
from archgraph.graph.model import GraphNode

logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Graph session '{session_id}' not found")


@dataclass
class StoredGraph:
    id: str
    version: int
    graph: GraphNode


def _to_stored(row: GraphSession) -> StoredGraph:
    return StoredGraph(
        id=row.id,
        version=row.version,
        graph=GraphNode.from_dict(json.loads(row.graph_json)),
    )


class GraphSessionStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def create(self, graph: GraphNode, session_id: Optional[str] = None) -> StoredGraph:
        row = GraphSession(
            id=session_id or uuid.uuid4().hex,
            graph_json=json.dumps(graph.to_dict()),
            version=0,
        )
        with self.session_factory() as db:
            db.add(row)
            db.commit()
            stored = _to_stored(row)
        logger.info("[STORE] Created session %s", stored.id)
        return stored

    def get(self, session_id: str) -> StoredGraph:
        with self.session_factory() as db:
            row = db.get(GraphSession, session_id)
            if row is None:
                raise SessionNotFoundError(session_id)
            return _to_stored(row)

    def save(self, session_id: str, graph: GraphNode, expected_version: int) -> StoredGraph:
        """Store ``graph`` as version ``expected_version + 1``."""
        with self.session_factory() as db:
            result = db.execute(
                update(GraphSession)
                .where(GraphSession.id == session_id, GraphSession.version == expected_version)
                .values(graph_json=json.dumps(graph.to_dict()), version=expected_version + 1)
            )
            if result.rowcount == 0:
                row = db.get(GraphSession, session_id)
                if row is None:
                    raise SessionNotFoundError(session_id)
                logger.warning(
                    "[STORE] Rejected stale write to %s (based on v%d, stored v%d)",
                    session_id, expected_version, row.version,
                )
                raise StaleVersionError(session_id, expected_version, row.version)
            db.commit()

        logger.info("[STORE] Saved session %s at v%d", session_id, expected_version + 1)
        return StoredGraph(id=session_id, version=expected_version + 1, graph=graph)

    def log_operation(
        self,
        session_id: str,
        name: str,
        arguments: Any,
        status: str,
        error: Optional[str] = None,
        version: Optional[int] = None,
    ) -> None:
        with self.session_factory() as db:
            db.add(OperationLog(
                session_id=session_id,
                name=name,
                arguments=json.dumps(arguments) if not isinstance(arguments, str) else arguments,
                status=status,
                error=error,
                version=version,
            ))
            db.commit()

    def list_operations(self, session_id: str) -> List[Dict[str, Any]]:
        with self.session_factory() as db:
            rows = (
                db.query(OperationLog)
                .filter(OperationLog.session_id == session_id)
                .order_by(OperationLog.id)
                .all()
            )
            return [
                {
                    "id": row.id,
                    "name": row.name,
                    "arguments": row.arguments,
                    "status": row.status,
                    "error": row.error,
                    "version": row.version,
                    "created_at": row.created_at.isoformat() if row.created_at else None,
                }
                for row in rows
            ]
