"""
Layout coordination for sessions that keep changing while a layout runs.

Each request is stamped with the session version and the structural hash of
the snapshot it was computed from. Only the most recent stamp per session is
current; an answer arriving for an older stamp is dropped so that it never
overwrites a newer graph.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from archgraph.config import LAYOUT_TIMEOUT
from archgraph.graph.hashing import structural_hash
from archgraph.graph.model import GraphNode
from archgraph.layout.elk import (
    ElkLayoutClient,
    LayoutTimeoutError,
    merge_layout,
    strip_geometry,
    to_elk_graph,
)
from archgraph.layout.options import LayoutOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutTicket:
    session_id: str
    version: int
    structure: str


class LayoutCoordinator:
    def __init__(self, client: Optional[ElkLayoutClient] = None, timeout: float = LAYOUT_TIMEOUT):
        self.client = client or ElkLayoutClient()
        self.timeout = timeout
        self._latest: Dict[str, LayoutTicket] = {}

    def register(self, session_id: str, version: int, tree: GraphNode) -> LayoutTicket:
        ticket = LayoutTicket(session_id, version, structural_hash(tree))
        current = self._latest.get(session_id)
        if current is None or current.version <= version:
            self._latest[session_id] = ticket
        return ticket

    def is_current(self, ticket: LayoutTicket) -> bool:
        return self._latest.get(ticket.session_id) == ticket

    def needs_layout(self, session_id: str, tree: GraphNode) -> bool:
        """False when the last requested layout was for the same structure."""
        current = self._latest.get(session_id)
        return current is None or current.structure != structural_hash(tree)

    async def layout(
        self,
        session_id: str,
        version: int,
        tree: GraphNode,
        options: Optional[LayoutOptions] = None,
    ) -> Optional[GraphNode]:
        """
        Lay out ``tree`` off the event loop.

        Returns the tree with geometry merged in, or None when a newer
        request for the same session was registered in the meantime.
        Raises LayoutTimeoutError when the engine takes longer than
        ``timeout`` seconds.
        """
        ticket = self.register(session_id, version, tree)
        elk_graph = to_elk_graph(strip_geometry(tree), options)

        try:
            laid_out = await asyncio.wait_for(
                asyncio.to_thread(self.client.layout, elk_graph),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("[LAYOUT] Session %s v%d timed out after %ss", session_id, version, self.timeout)
            raise LayoutTimeoutError(f"Layout did not finish within {self.timeout}s") from exc

        if not self.is_current(ticket):
            logger.info("[LAYOUT] Discarding stale layout for session %s v%d", session_id, version)
            return None

        logger.info("[LAYOUT] Layout ready for session %s v%d", session_id, version)
        return merge_layout(tree, laid_out)
