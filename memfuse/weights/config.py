"""
Weight Configuration Models
===========================

Pydantic models for the retrieval weights shipped in ``weights.yaml``.

The YAML file holds the defaults a deployment starts from; a HybridRetriever
turns them into an immutable RetrievalConfig at construction time.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RecencyWeights(BaseModel):
    """
    Recency decay settings.

    A non-positive half-life is accepted: it disables the decay.
    """
    enabled: bool = Field(default=True, description="Apply recency decay")
    half_life_hours: float = Field(default=24.0, description="Half-life in hours")


class GraphWeights(BaseModel):
    """Graph traversal settings."""
    max_hops: int = Field(default=2, ge=0, le=10)
    min_link_strength: float = Field(default=0.3, ge=0.0, le=1.0)
    max_chain_candidates: int = Field(default=50, ge=0)


class RetrievalWeights(BaseModel):
    """
    Weights and limits of hybrid retrieval.

    Attributes:
        vector_weight: Weight of vector similarity (not used by the score formula)
        chain_weight: Link-strength boost factor
        vector_candidate_multiplier: Over-retrieval factor for the vector stage
        recency: Recency decay settings
        graph: Traversal settings
    """
    version: str = Field(default="1.0")
    vector_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    chain_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    vector_candidate_multiplier: int = Field(default=3, ge=1, le=20)
    recency: RecencyWeights = Field(default_factory=RecencyWeights)
    graph: GraphWeights = Field(default_factory=GraphWeights)
    description: Optional[str] = Field(default=None)

    def to_config_kwargs(self) -> Dict[str, Any]:
        """Flatten to RetrievalConfig keyword arguments."""
        return {
            "vector_weight": self.vector_weight,
            "chain_weight": self.chain_weight,
            "recency_boost": self.recency.enabled,
            "recency_half_life_hours": self.recency.half_life_hours,
            "max_hops": self.graph.max_hops,
            "min_link_strength": self.graph.min_link_strength,
            "max_chain_candidates": self.graph.max_chain_candidates,
            "vector_candidate_multiplier": self.vector_candidate_multiplier,
        }
