"""
memfuse Weight Management
=========================

YAML-backed defaults for hybrid retrieval.

Example:
    >>> from memfuse.weights import get_weight_store
    >>>
    >>> store = get_weight_store()
    >>> config = store.get_retrieval_config()
    >>> config.chain_weight
    0.3
"""

from memfuse.weights.config import (
    GraphWeights,
    RecencyWeights,
    RetrievalWeights,
)
from memfuse.weights.store import (
    WeightStore,
    get_weight_store,
)

__all__ = [
    # Config models
    "RetrievalWeights",
    "RecencyWeights",
    "GraphWeights",
    # Store
    "WeightStore",
    "get_weight_store",
]
