"""
Hybrid Retriever Models
=======================

Configuration, per-call candidates and metrics for HybridRetriever.
"""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional

from memfuse.storage.graph.models import LinkType


class InvalidConfigError(ValueError):
    """Raised when a RetrievalConfig value is outside its valid range."""


@dataclass(frozen=True)
class RetrievalConfig:
    """
    Immutable configuration of one HybridRetriever.

    Attributes:
        vector_weight: Weight of vector similarity. Kept for configuration
                       compatibility; the hybrid score formula does not use it
        chain_weight: Boost factor per unit of link strength
                      (chain_boost = 1 + chain_weight * link_strength)
        recency_boost: Multiply scores by an exponential recency decay
        recency_half_life_hours: Half-life of the decay; <= 0 disables decay
        max_hops: Maximum graph traversal depth from each seed
        min_link_strength: Weakest edge followed during traversal
        max_chain_candidates: Cap on chain results merged per call
        vector_candidate_multiplier: Vector search fetches max_results * this
    """
    vector_weight: float = 0.7
    chain_weight: float = 0.3
    recency_boost: bool = True
    recency_half_life_hours: float = 24.0
    max_hops: int = 2
    min_link_strength: float = 0.3
    max_chain_candidates: int = 50
    vector_candidate_multiplier: int = 3

    def __post_init__(self):
        """Validate configuration values."""
        for name in ("vector_weight", "chain_weight", "min_link_strength"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise InvalidConfigError(f"{name} must be in [0, 1], got {value}")
        if self.max_hops < 0:
            raise InvalidConfigError(f"max_hops must be >= 0, got {self.max_hops}")
        if self.max_chain_candidates < 0:
            raise InvalidConfigError(
                f"max_chain_candidates must be >= 0, got {self.max_chain_candidates}"
            )
        if self.vector_candidate_multiplier < 1:
            raise InvalidConfigError(
                f"vector_candidate_multiplier must be >= 1, got {self.vector_candidate_multiplier}"
            )

    @property
    def recency_decay_enabled(self) -> bool:
        return self.recency_boost and self.recency_half_life_hours > 0

    @classmethod
    def from_overrides(
        cls,
        base: Optional["RetrievalConfig"] = None,
        **overrides: Any,
    ) -> "RetrievalConfig":
        """
        Defaults (or ``base``) with caller-supplied values applied.

        None values are ignored so partial option dicts can be passed through.

        Raises:
            InvalidConfigError: unknown key or invalid value
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidConfigError(f"unknown retrieval config keys: {unknown}")
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(base or cls(), **values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RetrievalCandidate:
    """
    Scored item produced by one retrieve() call.

    Attributes:
        id: Memory item id
        source_id: Source item id (the id itself for graph-only candidates)
        vector_score: Cosine similarity to the query (0 if graph-only)
        chain_score: link_strength decayed by 0.5 per extra hop
        link_strength: Strongest edge that reached the item
        recency_score: Recency multiplier in [0, 1]
        hybrid_score: Final ranking score
        link_type: Type of the last merged-in edge
        hop_distance: Hop distance of the last merged-in edge
        timestamp: Item timestamp used for recency (ISO string or epoch ms)
    """
    id: str
    source_id: str
    vector_score: float
    chain_score: float
    link_strength: float
    recency_score: float
    hybrid_score: float
    link_type: Optional[LinkType] = None
    hop_distance: Optional[int] = None
    timestamp: Any = None

    def __repr__(self) -> str:
        return (
            f"<RetrievalCandidate(id={self.id}, hybrid={self.hybrid_score:.3f}, "
            f"vec={self.vector_score:.3f}, chain={self.chain_score:.3f})>"
        )


@dataclass
class RetrievalMetrics:
    """
    Summary of a completed retrieve() call.

    Times are epoch seconds; retrieval_rate is results per second.
    """
    query_start_time: float
    query_end_time: float
    vector_candidates_count: int
    chain_candidates_count: int
    final_results_count: int
    avg_vector_score: float
    avg_chain_score: float
    avg_link_strength: float
    retrieval_rate: float

    @property
    def elapsed_seconds(self) -> float:
        return self.query_end_time - self.query_start_time

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dict for JSON serialization."""
        return {
            "query_start_time": self.query_start_time,
            "query_end_time": self.query_end_time,
            "vector_candidates_count": self.vector_candidates_count,
            "chain_candidates_count": self.chain_candidates_count,
            "final_results_count": self.final_results_count,
            "avg_vector_score": round(self.avg_vector_score, 4),
            "avg_chain_score": round(self.avg_chain_score, 4),
            "avg_link_strength": round(self.avg_link_strength, 4),
            "retrieval_rate": round(self.retrieval_rate, 4),
        }
