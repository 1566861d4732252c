"""
memfuse Vector Storage
======================

Partitioned flat-file embedding store with exact cosine search.

Example:
    from memfuse.storage.vectors import EmbeddingStore

    store = EmbeddingStore("/var/lib/memfuse", dimensions=768)
    store.save("m1", vector, partition=42, timestamp="2026-10-18T09:00:00", source_id="m1")
    hits = store.search(query_vector, k=5)
"""

from memfuse.storage.vectors.models import EmbeddingRecord, VectorSearchResult
from memfuse.storage.vectors.store import (
    EmbeddingStore,
    cosine_similarity,
    generate_id,
    normalize,
)

__all__ = [
    "EmbeddingStore",
    "EmbeddingRecord",
    "VectorSearchResult",
    "cosine_similarity",
    "normalize",
    "generate_id",
]
