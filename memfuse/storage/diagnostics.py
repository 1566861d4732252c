"""
Storage Diagnostics
===================

Tolerated data problems are not raised: they are described as Diagnostic
values and routed to a sink, so corruption stays observable while reads
keep going.

Kinds:
- STORAGE_UNAVAILABLE: store directory missing (created on the fly)
- MALFORMED_RECORD: a line or document that does not parse
- DIMENSION_MISMATCH: embedding whose length differs from the store dimension
- INVALID_CONFIG: configuration value replaced by a safe default

Example:
    >>> sink = CollectingDiagnosticsSink()
    >>> store = EmbeddingStore(memory_dir, dimensions=4, diagnostics=sink)
    >>> store.load()
    >>> [d.kind for d in sink.diagnostics]
    [<DiagnosticKind.MALFORMED_RECORD: 'malformed_record'>]
"""

import structlog
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Optional, Protocol, TypeVar

log = structlog.get_logger()

T = TypeVar("T")


class DiagnosticKind(str, Enum):
    """Non-fatal problem categories."""
    STORAGE_UNAVAILABLE = "storage_unavailable"
    MALFORMED_RECORD = "malformed_record"
    DIMENSION_MISMATCH = "dimension_mismatch"
    INVALID_CONFIG = "invalid_config"


@dataclass(frozen=True)
class Diagnostic:
    """
    A tolerated problem found while reading persisted state.

    Attributes:
        kind: Problem category
        message: Human-readable description
        source: File (or component) where it was found
        line: 1-based line number for line-oriented files
    """
    kind: DiagnosticKind
    message: str
    source: Optional[str] = None
    line: Optional[int] = None


@dataclass(frozen=True)
class ParseOutcome(Generic[T]):
    """
    Result of parsing one persisted entry: a value or a diagnostic.

    Use the ``success``/``failure`` constructors rather than building it directly.
    """
    value: Optional[T] = None
    diagnostic: Optional[Diagnostic] = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    @classmethod
    def success(cls, value: T) -> "ParseOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, diagnostic: Diagnostic) -> "ParseOutcome[T]":
        return cls(diagnostic=diagnostic)


class DiagnosticsSink(Protocol):
    def report(self, diagnostic: Diagnostic) -> None: ...


class LoggingDiagnosticsSink:
    """Default sink: every diagnostic becomes a structlog warning."""

    def report(self, diagnostic: Diagnostic) -> None:
        log.warning(
            "Storage diagnostic",
            kind=diagnostic.kind.value,
            message=diagnostic.message,
            source=diagnostic.source,
            line=diagnostic.line,
        )


class CollectingDiagnosticsSink:
    """Keeps diagnostics in memory for later inspection."""

    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def clear(self) -> None:
        self.diagnostics.clear()


def report_all(sink: Any, outcomes: List[ParseOutcome]) -> List[Any]:
    """Forward failures to ``sink`` and return the successful values, in order."""
    values = []
    for outcome in outcomes:
        if outcome.ok:
            values.append(outcome.value)
        else:
            sink.report(outcome.diagnostic)
    return values
