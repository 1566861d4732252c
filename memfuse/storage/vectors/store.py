"""
Embedding Store
===============

Flat-file embedding storage with exact (linear scan) cosine search.

Layout:
    <memory_dir>/vectors/partition-<n>.vectors.jsonl

Each partition file is an append-only JSON Lines log of
``{id, vector, partition, timestamp, sourceId}`` records. There is no update
or delete: saving the same id twice stores two records.

Search rules:
- Only records whose vector length equals ``dimensions`` take part
- Query and candidates are L2-normalized on every call (no caching)
- Scores <= 0 are dropped
- Ties keep load order (partitions ascending, then file order)
"""

import json
import re
import structlog
import time
import uuid
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from memfuse.storage.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    ParseOutcome,
    report_all,
)
from memfuse.storage.vectors.models import EmbeddingRecord, VectorSearchResult

log = structlog.get_logger()

PARTITION_SUFFIX = ".vectors.jsonl"
_PARTITION_FILE = re.compile(r"^partition-(-?\d+)\.vectors\.jsonl$")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def normalize(vector: Sequence[float]) -> List[float]:
    """L2-normalize ``vector``. A zero-norm vector is returned unchanged."""
    arr = np.asarray(vector, dtype=float)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return [float(v) for v in arr]
    return (arr / norm).tolist()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns exactly 0.0 when the lengths differ or either operand has zero
    norm, so two zero vectors have similarity 0, not 1.
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        return 0.0
    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def generate_id() -> str:
    """Memory id: base36 millisecond timestamp plus 9 random characters."""
    millis = int(time.time() * 1000)
    digits = []
    while millis:
        millis, rem = divmod(millis, 36)
        digits.append(_BASE36[rem])
    stamp = "".join(reversed(digits)) or "0"
    return f"{stamp}_{uuid.uuid4().hex[:9]}"


class EmbeddingStore:
    """
    Partitioned, append-only embedding store.

    Example:
        >>> store = EmbeddingStore("/tmp/memory", dimensions=4)
        >>> store.save("a", [1, 0, 0, 0], partition=12, timestamp="2026-03-20T10:00:00", source_id="a")
        >>> store.search([1, 0, 0, 0], k=5)
        [<VectorSearchResult(id=a, score=1.000, partition=12)>]
    """

    # Exposed on the class so callers can use store.normalize / store.similarity
    normalize = staticmethod(normalize)
    similarity = staticmethod(cosine_similarity)

    def __init__(
        self,
        memory_dir: Union[str, Path],
        dimensions: int = 768,
        vectors_subdir: str = "vectors",
        diagnostics: Optional[DiagnosticsSink] = None,
    ):
        """
        Initialize EmbeddingStore.

        Args:
            memory_dir: Root memory directory
            dimensions: Embedding dimension D; other lengths are excluded
            vectors_subdir: Sub-directory holding the partition files
            diagnostics: Sink for tolerated data problems (default: structlog)
        """
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self.memory_dir = Path(memory_dir)
        self.dimensions = dimensions
        self.vector_dir = self.memory_dir / vectors_subdir
        self.diagnostics = diagnostics or LoggingDiagnosticsSink()
        self._lock = RLock()
        self._ensure_dir()

        log.info(
            "EmbeddingStore initialized",
            vector_dir=str(self.vector_dir),
            dimensions=self.dimensions,
        )

    def _ensure_dir(self) -> None:
        if self.vector_dir.is_dir():
            return
        self.vector_dir.mkdir(parents=True, exist_ok=True)
        self.diagnostics.report(Diagnostic(
            kind=DiagnosticKind.STORAGE_UNAVAILABLE,
            message="vector directory missing, created",
            source=str(self.vector_dir),
        ))

    def partition_path(self, partition: int) -> Path:
        return self.vector_dir / f"partition-{int(partition)}{PARTITION_SUFFIX}"

    def partitions(self) -> List[int]:
        """Partitions that have a file on disk, ascending."""
        return [self._partition_number(path) for path in self._partition_files()]

    def _partition_files(self) -> List[Path]:
        if not self.vector_dir.is_dir():
            return []
        # Exactly the names partition_path() produces
        files = [p for p in self.vector_dir.iterdir() if self._partition_number(p) is not None]
        return sorted(files, key=lambda p: (self._partition_number(p), p.name))

    @staticmethod
    def _partition_number(path: Path) -> Optional[int]:
        match = _PARTITION_FILE.match(path.name)
        return int(match.group(1)) if match else None

    def save(
        self,
        id: str,
        vector: Sequence[float],
        partition: int,
        timestamp: Union[str, datetime],
        source_id: str,
    ) -> EmbeddingRecord:
        """
        Append one record to the partition log. No deduplication.

        The vector is stored as given; a wrong length is not rejected here but
        the record will be excluded from loads and searches.
        """
        if isinstance(timestamp, datetime):
            timestamp = timestamp.isoformat()
        record = EmbeddingRecord(
            id=id,
            vector=[float(v) for v in vector],
            partition=int(partition),
            timestamp=timestamp,
            source_id=source_id,
        )
        line = json.dumps(record.to_dict()) + "\n"

        with self._lock:
            self._ensure_dir()
            with open(self.partition_path(record.partition), "a", encoding="utf-8") as f:
                f.write(line)

        log.debug("Embedding saved", id=id, partition=record.partition)
        return record

    def load(self, partitions: Optional[Iterable[int]] = None) -> List[EmbeddingRecord]:
        """
        Read records from the listed partitions, or from all of them.

        Malformed lines and dimension mismatches are reported to the
        diagnostics sink and skipped. Missing partition files yield nothing.
        """
        wanted = list(partitions) if partitions is not None else []
        if wanted:
            paths = [self.partition_path(p) for p in wanted]
        else:
            paths = self._partition_files()

        records: List[EmbeddingRecord] = []
        for path in paths:
            records.extend(report_all(self.diagnostics, self._read_partition(path)))
        return records

    def _read_partition(self, path: Path) -> List[ParseOutcome[EmbeddingRecord]]:
        try:
            with open(path, "rb") as f:
                raw_lines = f.read().split(b"\n")
        except FileNotFoundError:
            return []

        # Decoded per line so one bad byte costs only its own record
        outcomes = []
        for lineno, raw in enumerate(raw_lines, start=1):
            if not raw.strip():
                continue
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                outcomes.append(ParseOutcome.failure(Diagnostic(
                    kind=DiagnosticKind.MALFORMED_RECORD,
                    message=f"line is not valid UTF-8: {e}",
                    source=str(path),
                    line=lineno,
                )))
                continue
            outcomes.append(self._parse_line(line, str(path), lineno))
        return outcomes

    def _parse_line(self, line: str, source: str, lineno: int) -> ParseOutcome[EmbeddingRecord]:
        try:
            record = EmbeddingRecord.from_dict(json.loads(line))
        except (ValueError, KeyError, TypeError, OverflowError, RecursionError) as e:
            return ParseOutcome.failure(Diagnostic(
                kind=DiagnosticKind.MALFORMED_RECORD,
                message=f"unparseable embedding record: {e}",
                source=source,
                line=lineno,
            ))

        if len(record.vector) != self.dimensions:
            return ParseOutcome.failure(Diagnostic(
                kind=DiagnosticKind.DIMENSION_MISMATCH,
                message=(
                    f"record {record.id} has {len(record.vector)} dimensions, "
                    f"expected {self.dimensions}"
                ),
                source=source,
                line=lineno,
            ))
        return ParseOutcome.success(record)

    def search(
        self,
        query: Sequence[float],
        k: int = 5,
        partitions: Optional[Iterable[int]] = None,
    ) -> List[VectorSearchResult]:
        """
        Exact cosine search over the loaded records.

        Args:
            query: Query embedding
            k: Maximum number of results
            partitions: Restrict to these partitions (default: all)

        Returns:
            Up to ``k`` results with score > 0, highest first
        """
        if k <= 0:
            return []

        records = self.load(partitions)
        q = np.asarray(normalize(query), dtype=float)
        if not records or q.shape != (self.dimensions,) or not q.any():
            log.debug("search() - nothing to score", candidates=len(records))
            return []

        matrix = np.asarray([r.vector for r in records], dtype=float)
        norms = np.linalg.norm(matrix, axis=1)
        # Zero rows stay zero and score exactly 0.
        matrix = matrix / np.where(norms == 0.0, 1.0, norms)[:, None]
        scores = np.clip(matrix @ q, -1.0, 1.0)

        order = np.argsort(-scores, kind="stable")
        results: List[VectorSearchResult] = []
        for i in order:
            score = float(scores[i])
            if not score > 0.0:
                break
            record = records[i]
            results.append(VectorSearchResult(
                id=record.id,
                score=score,
                source_id=record.source_id,
                partition=record.partition,
                timestamp=record.timestamp,
            ))
            if len(results) >= k:
                break

        log.debug(
            f"search() - scanned {len(records)} records, returned {len(results)}",
            k=k,
        )
        return results
