"""
Relationship Graph Store
========================

Directed, typed, weighted links between memory items, persisted as a single
JSON document (the adjacency index):

    {"<node id>": [{"fromId", "toId", "linkType", "strength", "createdAt", "metadata"?}, ...]}

Write rules:
- add_link inserts the forward edge and a mirrored reverse edge
  (parent <-> child swapped, other types unchanged, same strength)
- Inserts are idempotent per ordered (from, to) pair: first write wins
- remove_link deletes only the forward edge; unlink deletes both directions
- Every mutation is read-modify-write of the whole document, serialized by a
  per-store lock and written atomically (temp file + os.replace)

Traversal (traverse_chain) is a breadth-first walk that marks nodes visited
when they are dequeued, not when they are enqueued. A node reachable through
several parents at the same depth is therefore emitted once per such edge but
expanded only once. Emission order follows adjacency-list insertion order.
This is first-discovery order, not shortest-path BFS.
"""

import json
import os
import structlog
import tempfile
import time
from collections import deque
from pathlib import Path
from threading import RLock
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple, Union

from memfuse.storage.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    ParseOutcome,
)
from memfuse.storage.graph.models import (
    ChainTraversalResult,
    LinkType,
    RelationshipLink,
    reverse_link_type,
)

log = structlog.get_logger()

AdjacencyIndex = Dict[str, List[RelationshipLink]]


class RelationshipGraphStore:
    """
    File-backed relationship graph.

    Example:
        >>> graph = RelationshipGraphStore("/tmp/memory")
        >>> graph.add_link("x", "y", LinkType.PARENT, strength=0.8)
        True
        >>> [l.link_type for l in graph.get_links("y")]
        [<LinkType.CHILD: 'child'>]
        >>> graph.traverse_chain("x", max_hops=2, min_strength=0.5)
        [<ChainTraversalResult(id=y, hops=1, type=parent, strength=0.80)>]
    """

    def __init__(
        self,
        memory_dir: Union[str, Path],
        index_filename: str = "chain-index.json",
        diagnostics: Optional[DiagnosticsSink] = None,
    ):
        self.memory_dir = Path(memory_dir)
        self.index_path = self.memory_dir / index_filename
        self.diagnostics = diagnostics or LoggingDiagnosticsSink()
        self._lock = RLock()

        log.info("RelationshipGraphStore initialized", index_path=str(self.index_path))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_index(self) -> AdjacencyIndex:
        """
        Read the full adjacency index.

        A missing file is an empty graph. A corrupt document is reported and
        also treated as an empty graph; individual malformed edges are
        reported and dropped.
        """
        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            self.diagnostics.report(Diagnostic(
                kind=DiagnosticKind.MALFORMED_RECORD,
                message=f"adjacency index is not valid UTF-8: {e}",
                source=str(self.index_path),
            ))
            return {}

        outcome = self._parse_document(raw)
        if not outcome.ok:
            self.diagnostics.report(outcome.diagnostic)
            return {}

        index: AdjacencyIndex = {}
        for node_id, entries in outcome.value.items():
            if not isinstance(entries, list):
                self.diagnostics.report(Diagnostic(
                    kind=DiagnosticKind.MALFORMED_RECORD,
                    message=f"adjacency entry for {node_id!r} is not a list",
                    source=str(self.index_path),
                ))
                continue
            links = []
            for entry in entries:
                parsed = self._parse_link(node_id, entry)
                if parsed.ok:
                    links.append(parsed.value)
                else:
                    self.diagnostics.report(parsed.diagnostic)
            index[node_id] = links
        return index

    def _parse_document(self, raw: str) -> ParseOutcome[Dict[str, Any]]:
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as e:
            return ParseOutcome.failure(Diagnostic(
                kind=DiagnosticKind.MALFORMED_RECORD,
                message=f"adjacency index is not valid JSON: {e}",
                source=str(self.index_path),
            ))
        if not isinstance(data, dict):
            return ParseOutcome.failure(Diagnostic(
                kind=DiagnosticKind.MALFORMED_RECORD,
                message=f"adjacency index must be an object, got {type(data).__name__}",
                source=str(self.index_path),
            ))
        return ParseOutcome.success(data)

    def _parse_link(self, node_id: str, entry: Any) -> ParseOutcome[RelationshipLink]:
        try:
            return ParseOutcome.success(RelationshipLink.from_dict(entry))
        except (KeyError, ValueError, TypeError, OverflowError, RecursionError) as e:
            return ParseOutcome.failure(Diagnostic(
                kind=DiagnosticKind.MALFORMED_RECORD,
                message=f"malformed link under {node_id!r}: {e}",
                source=str(self.index_path),
            ))

    def _save_index(self, index: AdjacencyIndex) -> None:
        if not self.memory_dir.is_dir():
            self.memory_dir.mkdir(parents=True, exist_ok=True)
            self.diagnostics.report(Diagnostic(
                kind=DiagnosticKind.STORAGE_UNAVAILABLE,
                message="memory directory missing, created",
                source=str(self.memory_dir),
            ))

        document = {
            node_id: [link.to_dict() for link in links]
            for node_id, links in index.items()
        }
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.memory_dir), prefix=".chain-index.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.index_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_if_absent(index: AdjacencyIndex, link: RelationshipLink) -> bool:
        existing = index.setdefault(link.from_id, [])
        if any(l.to_id == link.to_id for l in existing):
            return False
        existing.append(link)
        return True

    def add_link(
        self,
        from_id: str,
        to_id: str,
        link_type: Union[LinkType, str] = LinkType.RELATED,
        strength: float = 0.5,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Link ``from_id`` -> ``to_id`` and mirror it back.

        Never an upsert: if an edge for the same ordered pair exists it is
        left untouched, whatever its type or strength.

        Args:
            from_id: Source item
            to_id: Target item
            link_type: Relationship kind (LinkType or its string value)
            strength: Edge weight in [0, 1]
            metadata: Optional payload copied onto both edges

        Returns:
            True if the forward edge was inserted

        Raises:
            ValueError: unknown link type or strength outside [0, 1]
        """
        link_type = LinkType(link_type)
        strength = float(strength)
        if not 0.0 <= strength <= 1.0:
            raise ValueError(f"strength must be in [0, 1], got {strength}")

        with self._lock:
            index = self.load_index()
            created_at = int(time.time() * 1000)

            forward = RelationshipLink(
                from_id=from_id,
                to_id=to_id,
                link_type=link_type,
                strength=strength,
                created_at=created_at,
                metadata=metadata,
            )
            reverse = RelationshipLink(
                from_id=to_id,
                to_id=from_id,
                link_type=reverse_link_type(link_type),
                strength=strength,
                created_at=created_at,
                metadata=metadata,
            )
            inserted = self._insert_if_absent(index, forward)
            mirrored = self._insert_if_absent(index, reverse)

            self._save_index(index)

        log.debug(
            "add_link()",
            from_id=from_id,
            to_id=to_id,
            link_type=link_type.value,
            inserted=inserted,
            mirrored=mirrored,
        )
        return inserted

    def remove_link(self, from_id: str, to_id: str) -> bool:
        """
        Remove the directed edge ``from_id`` -> ``to_id`` only.

        The mirrored edge ``to_id`` -> ``from_id`` is left in place; use
        unlink() to drop both directions.

        Returns:
            True if an edge was removed
        """
        with self._lock:
            index = self.load_index()
            removed = self._drop_edge(index, from_id, to_id)
            if removed:
                self._save_index(index)

        log.debug("remove_link()", from_id=from_id, to_id=to_id, removed=removed)
        return removed

    def unlink(self, a: str, b: str) -> int:
        """
        Remove both ``a`` -> ``b`` and ``b`` -> ``a`` in one write.

        Returns:
            Number of edges removed (0, 1 or 2)
        """
        with self._lock:
            index = self.load_index()
            removed = int(self._drop_edge(index, a, b)) + int(self._drop_edge(index, b, a))
            if removed:
                self._save_index(index)

        log.debug("unlink()", a=a, b=b, removed=removed)
        return removed

    @staticmethod
    def _drop_edge(index: AdjacencyIndex, from_id: str, to_id: str) -> bool:
        links = index.get(from_id, [])
        kept = [l for l in links if l.to_id != to_id]
        if len(kept) == len(links):
            return False
        index[from_id] = kept
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_links(self, node_id: str) -> List[RelationshipLink]:
        """Outgoing edges of ``node_id`` in insertion order (empty if none)."""
        return list(self.load_index().get(node_id, []))

    def traverse_chain(
        self,
        start_id: str,
        max_hops: int = 3,
        min_strength: float = 0.3,
        index: Optional[AdjacencyIndex] = None,
    ) -> List[ChainTraversalResult]:
        """
        Breadth-first walk from ``start_id``.

        Args:
            start_id: Node to start from (never emitted itself)
            max_hops: Nodes at this depth are not expanded; 0 yields nothing
            min_strength: Edges weaker than this are not followed
            index: Preloaded adjacency snapshot; read from disk if None

        Returns:
            One result per followed edge, in discovery order
        """
        if index is None:
            index = self.load_index()

        results: List[ChainTraversalResult] = []
        visited = set()
        queue: Deque[Tuple[str, int, str]] = deque([(start_id, 0, start_id)])

        while queue:
            node_id, hops, path = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            if hops >= max_hops:
                continue

            for link in index.get(node_id, []):
                if link.strength < min_strength:
                    continue
                if link.to_id in visited:
                    continue

                next_path = f"{path} -> {link.to_id}"
                results.append(ChainTraversalResult(
                    id=link.to_id,
                    path=next_path,
                    link_type=link.link_type,
                    link_strength=link.strength,
                    hop_distance=hops + 1,
                    discovered_at=link.created_at,
                ))
                queue.append((link.to_id, hops + 1, next_path))

        return results

    def find_related(
        self,
        node_id: str,
        max_hops: int = 2,
        min_strength: float = 0.3,
        link_types: Optional[Iterable[Union[LinkType, str]]] = None,
    ) -> List[ChainTraversalResult]:
        """traverse_chain() restricted to ``link_types`` (all types if None or empty)."""
        results = self.traverse_chain(node_id, max_hops=max_hops, min_strength=min_strength)
        wanted = {LinkType(t) for t in link_types} if link_types else set()
        if not wanted:
            return results
        return [r for r in results if r.link_type in wanted]
