"""
memfuse: hybrid memory retrieval
================================

Long-term memory retrieval that fuses dense-vector similarity with an
explicit, typed relationship graph between memory items.

Quick Start:
    from memfuse import HybridRetriever, LinkType

    retriever = HybridRetriever.from_memory_dir("/var/lib/memfuse", dimensions=768)
    retriever.embedding_store.save("m1", vector, partition=42,
                                   timestamp="2026-10-18T09:00:00", source_id="m1")
    retriever.graph_store.add_link("m1", "m2", LinkType.SEQUENTIAL, strength=0.8)

    start = time.time()
    results = await retriever.retrieve(query_vector, seed_ids=["m1"], max_results=5)
    metrics = retriever.get_metrics(results, start)

Components:
- storage.vectors: EmbeddingStore
- storage.graph: RelationshipGraphStore, LinkType
- storage.retriever: HybridRetriever, RetrievalConfig, RetrievalCandidate
- config: StorageConfig and test/prod environments
- weights: YAML-backed retrieval defaults
"""

__version__ = "0.1.0"
__author__ = "memfuse Team"

from memfuse.config import StorageConfig, get_current_environment
from memfuse.storage import (
    CollectingDiagnosticsSink,
    Diagnostic,
    DiagnosticKind,
    EmbeddingStore,
    HybridRetriever,
    LinkType,
    RelationshipGraphStore,
    RetrievalCandidate,
    RetrievalConfig,
    RetrievalMetrics,
)
from memfuse.weights import WeightStore, get_weight_store

__all__ = [
    # Retrieval
    "HybridRetriever",
    "RetrievalConfig",
    "RetrievalCandidate",
    "RetrievalMetrics",
    # Stores
    "EmbeddingStore",
    "RelationshipGraphStore",
    "LinkType",
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "CollectingDiagnosticsSink",
    # Config
    "StorageConfig",
    "get_current_environment",
    "WeightStore",
    "get_weight_store",
]
