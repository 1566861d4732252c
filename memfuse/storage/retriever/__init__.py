"""
memfuse Hybrid Retriever
========================

Vector similarity and relationship-graph fusion.
"""

from memfuse.storage.retriever.hybrid import (
    HybridRetriever,
    calculate_chain_score,
    calculate_hybrid_score,
    calculate_recency_score,
)
from memfuse.storage.retriever.models import (
    InvalidConfigError,
    RetrievalCandidate,
    RetrievalConfig,
    RetrievalMetrics,
)

__all__ = [
    "HybridRetriever",
    "RetrievalConfig",
    "RetrievalCandidate",
    "RetrievalMetrics",
    "InvalidConfigError",
    "calculate_chain_score",
    "calculate_hybrid_score",
    "calculate_recency_score",
]
