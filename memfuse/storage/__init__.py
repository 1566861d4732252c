"""
Storage Layer
=============

File-backed memory storage and hybrid retrieval.

Components:
- vectors/: EmbeddingStore, partitioned JSONL embeddings with cosine search
- graph/: RelationshipGraphStore, typed relationship graph with bounded BFS
- retriever/: HybridRetriever, fuses both signals into one ranking
- diagnostics: tolerated-error reporting shared by the stores

Architecture:
    query vector            seed ids
         |                     |
         v                     v
  [EmbeddingStore]   [RelationshipGraphStore]
  vectors/*.jsonl       chain-index.json
         |                     |
   vector_score         chain_score / link_strength
         |                     |
         +----------+----------+
                    |
                    v
  hybrid = vector_score * (1 + chain_weight * link_strength) * recency
"""

from memfuse.storage.diagnostics import (
    CollectingDiagnosticsSink,
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    ParseOutcome,
)
from memfuse.storage.graph import LinkType, RelationshipGraphStore, RelationshipLink
from memfuse.storage.retriever import (
    HybridRetriever,
    RetrievalCandidate,
    RetrievalConfig,
    RetrievalMetrics,
)
from memfuse.storage.vectors import EmbeddingRecord, EmbeddingStore

__all__ = [
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticsSink",
    "LoggingDiagnosticsSink",
    "CollectingDiagnosticsSink",
    "ParseOutcome",
    # Vectors
    "EmbeddingStore",
    "EmbeddingRecord",
    # Graph
    "RelationshipGraphStore",
    "RelationshipLink",
    "LinkType",
    # Retriever
    "HybridRetriever",
    "RetrievalConfig",
    "RetrievalCandidate",
    "RetrievalMetrics",
]
