"""
memfuse Graph Storage
=====================

Typed, weighted relationship graph between memory items, persisted as one
JSON adjacency document.

Example:
    from memfuse.storage.graph import RelationshipGraphStore, LinkType

    graph = RelationshipGraphStore("/var/lib/memfuse")
    graph.add_link("m1", "m2", LinkType.CAUSAL, strength=0.9)
    related = graph.find_related("m1", link_types=[LinkType.CAUSAL])
"""

from memfuse.storage.graph.models import (
    ChainTraversalResult,
    LinkType,
    RelationshipLink,
    reverse_link_type,
)
from memfuse.storage.graph.store import AdjacencyIndex, RelationshipGraphStore

__all__ = [
    "RelationshipGraphStore",
    "AdjacencyIndex",
    "RelationshipLink",
    "ChainTraversalResult",
    "LinkType",
    "reverse_link_type",
]
