"""
HybridRetriever
===============

Retrieval fusion of vector similarity and the relationship graph.

Core algorithm:
1. Vector search in EmbeddingStore (max_results * vector_candidate_multiplier)
2. Graph walk from every seed id (one adjacency snapshot per call)
3. Merge both result sets by item id
4. Recency decay per candidate (optional)
5. hybrid = vector_score * chain_boost * recency_score
   chain_boost = 1 + chain_weight * link_strength   (1 when link_strength == 0)
6. Drop hybrid < min_score, sort descending, keep max_results

Notes on the score:
- vector_weight is carried by RetrievalConfig but is not part of the formula.
- A graph-only candidate has vector_score 0, so its final hybrid score is 0:
  it survives only when min_score <= 0. Its provisional score before step 5
  is chain_score * 0.5.
- Recency is measured from the candidate's own timestamp (embedding record
  timestamp, or edge creation time for graph-only candidates) to the
  reference time of the call. Missing or unparseable timestamps score 1.0.
"""

import asyncio
import math
import structlog
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Union

from memfuse.storage.diagnostics import DiagnosticsSink
from memfuse.storage.graph.models import ChainTraversalResult
from memfuse.storage.graph.store import RelationshipGraphStore
from memfuse.storage.retriever.models import (
    RetrievalCandidate,
    RetrievalConfig,
    RetrievalMetrics,
)
from memfuse.storage.vectors.models import VectorSearchResult
from memfuse.storage.vectors.store import EmbeddingStore

if TYPE_CHECKING:
    from memfuse.config import StorageConfig
    from memfuse.weights import WeightStore

log = structlog.get_logger()

DEFAULT_MAX_RESULTS = 10
DEFAULT_MIN_SCORE = 0.3
GRAPH_ONLY_PENALTY = 0.5


def _to_epoch_seconds(value: Any) -> Optional[float]:
    """datetime, ISO string or epoch milliseconds -> epoch seconds (None if unusable)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) / 1000.0
    if isinstance(value, str):
        if not value:
            return None
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return None


def calculate_recency_score(
    timestamp: Any,
    reference_time: Any,
    half_life_hours: float,
) -> float:
    """
    Exponential recency decay, 2 ** (-age_hours / half_life_hours), clamped to [0, 1].

    Args:
        timestamp: When the item happened (datetime, ISO string or epoch ms)
        reference_time: "Now" for the calculation (same accepted types)
        half_life_hours: Age at which the score halves; <= 0 disables decay

    Returns:
        1.0 when decay is disabled or either time is unusable
    """
    if half_life_hours <= 0:
        return 1.0
    event = _to_epoch_seconds(timestamp)
    reference = _to_epoch_seconds(reference_time)
    if event is None or reference is None:
        return 1.0
    age_hours = (reference - event) / 3600.0
    if age_hours <= 0:
        return 1.0
    decay = math.exp(-math.log(2) * age_hours / half_life_hours)
    return max(0.0, min(1.0, decay))


def calculate_chain_score(link_strength: float, hop_distance: int) -> float:
    """Link strength halved for every hop beyond the first."""
    if hop_distance <= 0:
        return link_strength
    return link_strength * math.pow(0.5, hop_distance - 1)


def calculate_hybrid_score(
    vector_score: float,
    link_strength: float,
    recency_score: float,
    chain_weight: float,
) -> float:
    """vector_score * chain_boost * recency_score."""
    chain_boost = 1.0 + chain_weight * link_strength if link_strength > 0 else 1.0
    return vector_score * chain_boost * recency_score


class HybridRetriever:
    """
    Fuses EmbeddingStore and RelationshipGraphStore results into one ranking.

    Flow:
        query vector ──> EmbeddingStore.search ──┐
                                                 ├─> merge by id ─> recency ─> score ─> filter/sort/top-k
        seed ids ─────> traverse_chain (each) ───┘

    Example:
        >>> retriever = HybridRetriever.from_memory_dir("/tmp/memory", dimensions=4)
        >>> start = time.time()
        >>> results = await retriever.retrieve([1, 0, 0, 0], seed_ids=["x"], max_results=5)
        >>> metrics = retriever.get_metrics(results, start)
    """

    def __init__(
        self,
        embedding_store: EmbeddingStore,
        graph_store: RelationshipGraphStore,
        config: Optional[RetrievalConfig] = None,
        **overrides: Any,
    ):
        """
        Initialize HybridRetriever.

        Args:
            embedding_store: Vector side
            graph_store: Relationship side
            config: Base configuration (default: RetrievalConfig())
            **overrides: Individual RetrievalConfig fields to override
        """
        self.embedding_store = embedding_store
        self.graph_store = graph_store
        self.config = RetrievalConfig.from_overrides(config, **overrides)

        log.info(
            f"HybridRetriever initialized - "
            f"chain_weight={self.config.chain_weight}, "
            f"max_hops={self.config.max_hops}, "
            f"multiplier={self.config.vector_candidate_multiplier}x, "
            f"recency={'on' if self.config.recency_decay_enabled else 'off'}"
        )

    @classmethod
    def from_memory_dir(
        cls,
        memory_dir: Union[str, Path],
        dimensions: int = 768,
        config: Optional[RetrievalConfig] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        **overrides: Any,
    ) -> "HybridRetriever":
        """Build both stores under one memory directory."""
        return cls(
            EmbeddingStore(memory_dir, dimensions=dimensions, diagnostics=diagnostics),
            RelationshipGraphStore(memory_dir, diagnostics=diagnostics),
            config=config,
            **overrides,
        )

    @classmethod
    def from_storage_config(
        cls,
        storage_config: Optional["StorageConfig"] = None,
        weight_store: Optional["WeightStore"] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        **overrides: Any,
    ) -> "HybridRetriever":
        """
        Build a retriever for an environment, with weights from YAML.

        Args:
            storage_config: Storage layout (default: current environment)
            weight_store: Source of default weights (default: get_weight_store())
            diagnostics: Sink shared by both stores
            **overrides: RetrievalConfig fields applied on top of the YAML weights
        """
        from memfuse.config import get_current_environment
        from memfuse.weights import get_weight_store

        storage_config = storage_config or get_current_environment()
        weight_store = weight_store or get_weight_store()

        return cls(
            EmbeddingStore(
                storage_config.memory_dir,
                dimensions=storage_config.dimensions,
                vectors_subdir=storage_config.vectors_subdir,
                diagnostics=diagnostics,
            ),
            RelationshipGraphStore(
                storage_config.memory_dir,
                index_filename=storage_config.index_filename,
                diagnostics=diagnostics,
            ),
            config=weight_store.get_retrieval_config(**overrides),
        )

    async def retrieve(
        self,
        query_vector: Sequence[float],
        seed_ids: Optional[Iterable[str]] = None,
        max_results: Optional[int] = None,
        min_score: Optional[float] = None,
        partitions: Optional[Iterable[int]] = None,
        reference_time: Optional[datetime] = None,
    ) -> List[RetrievalCandidate]:
        """
        Rank memory items against a query embedding and seed items.

        Args:
            query_vector: Query embedding
            seed_ids: Starting points for graph traversal
            max_results: Result cap (default 10)
            min_score: Minimum hybrid score kept (default 0.3)
            partitions: Restrict the vector stage to these partitions
            reference_time: "Now" for recency (default: current UTC time)

        Returns:
            Candidates with hybrid_score >= min_score, highest first
        """
        max_results = DEFAULT_MAX_RESULTS if max_results is None else max_results
        min_score = DEFAULT_MIN_SCORE if min_score is None else min_score
        seeds = list(seed_ids or [])
        partition_list = list(partitions) if partitions is not None else None
        reference_time = reference_time or datetime.now(timezone.utc)

        if max_results <= 0:
            return []

        k = max_results * self.config.vector_candidate_multiplier
        log.debug(f"retrieve() - seeds={len(seeds)}, k={k}, min_score={min_score}")

        # STEP 1 + 2: both stages are file-bound, run them off the event loop
        loop = asyncio.get_running_loop()
        vector_results, chain_results = await asyncio.gather(
            loop.run_in_executor(None, self._vector_stage, query_vector, k, partition_list),
            loop.run_in_executor(None, self._graph_stage, seeds),
        )
        log.debug(
            f"Candidate stages returned {len(vector_results)} vector, "
            f"{len(chain_results)} chain results"
        )

        # STEP 3: merge
        merged = self._merge(vector_results, chain_results)

        # STEP 4 + 5: recency and final score
        for candidate in merged.values():
            self._score(candidate, reference_time)

        # STEP 6: filter, rank, truncate
        ranked = sorted(
            (c for c in merged.values() if c.hybrid_score >= min_score),
            key=lambda c: c.hybrid_score,
            reverse=True,
        )
        top_results = ranked[:max_results]

        if top_results:
            avg_score = sum(c.hybrid_score for c in top_results) / len(top_results)
            log.info(
                f"retrieve() - returned {len(top_results)} results "
                f"(avg hybrid_score={avg_score:.3f})"
            )
        else:
            log.info("retrieve() - returned 0 results")

        return top_results

    def _vector_stage(
        self,
        query_vector: Sequence[float],
        k: int,
        partitions: Optional[List[int]],
    ) -> List[VectorSearchResult]:
        return self.embedding_store.search(query_vector, k=k, partitions=partitions)

    def _graph_stage(self, seed_ids: List[str]) -> List[ChainTraversalResult]:
        """Walk from every seed against one snapshot; no cross-seed dedup."""
        if not seed_ids:
            return []
        index = self.graph_store.load_index()
        results: List[ChainTraversalResult] = []
        for seed_id in seed_ids:
            results.extend(self.graph_store.traverse_chain(
                seed_id,
                max_hops=self.config.max_hops,
                min_strength=self.config.min_link_strength,
                index=index,
            ))
        if len(results) > self.config.max_chain_candidates:
            log.debug(
                f"Chain candidates capped at {self.config.max_chain_candidates} "
                f"(found {len(results)})"
            )
            results = results[: self.config.max_chain_candidates]
        return results

    def _merge(
        self,
        vector_results: List[VectorSearchResult],
        chain_results: List[ChainTraversalResult],
    ) -> Dict[str, RetrievalCandidate]:
        merged: Dict[str, RetrievalCandidate] = {}

        for v in vector_results:
            # Duplicate ids: results are sorted, so the best record wins
            if v.id in merged:
                continue
            merged[v.id] = RetrievalCandidate(
                id=v.id,
                source_id=v.source_id,
                vector_score=v.score,
                chain_score=0.0,
                link_strength=0.0,
                recency_score=1.0,
                hybrid_score=v.score,
                timestamp=v.timestamp,
            )

        for c in chain_results:
            chain_score = calculate_chain_score(c.link_strength, c.hop_distance)
            existing = merged.get(c.id)
            if existing is not None:
                existing.chain_score = max(existing.chain_score, chain_score)
                existing.link_strength = max(existing.link_strength, c.link_strength)
                existing.link_type = c.link_type
                existing.hop_distance = c.hop_distance
                continue
            merged[c.id] = RetrievalCandidate(
                id=c.id,
                source_id=c.id,
                vector_score=0.0,
                chain_score=chain_score,
                link_strength=c.link_strength,
                recency_score=1.0,
                hybrid_score=chain_score * GRAPH_ONLY_PENALTY,
                link_type=c.link_type,
                hop_distance=c.hop_distance,
                timestamp=c.discovered_at,
            )

        return merged

    def _score(self, candidate: RetrievalCandidate, reference_time: datetime) -> None:
        if self.config.recency_boost:
            candidate.recency_score = calculate_recency_score(
                candidate.timestamp,
                reference_time,
                self.config.recency_half_life_hours,
            )
        candidate.hybrid_score = calculate_hybrid_score(
            vector_score=candidate.vector_score,
            link_strength=candidate.link_strength,
            recency_score=candidate.recency_score,
            chain_weight=self.config.chain_weight,
        )

    def get_metrics(
        self,
        results: Sequence[RetrievalCandidate],
        start_time: float,
        end_time: Optional[float] = None,
    ) -> RetrievalMetrics:
        """
        Summarize a completed retrieve() call. Does not modify ``results``.

        Args:
            results: Candidates returned by retrieve()
            start_time: time.time() taken before the call
            end_time: Override for the end of the measurement (default: now)
        """
        end_time = time.time() if end_time is None else end_time
        count = len(results)
        elapsed = end_time - start_time

        def average(attr: str) -> float:
            if not count:
                return 0.0
            return sum(getattr(r, attr) for r in results) / count

        return RetrievalMetrics(
            query_start_time=start_time,
            query_end_time=end_time,
            vector_candidates_count=sum(1 for r in results if r.vector_score > 0),
            chain_candidates_count=sum(1 for r in results if r.chain_score > 0),
            final_results_count=count,
            avg_vector_score=average("vector_score"),
            avg_chain_score=average("chain_score"),
            avg_link_strength=average("link_strength"),
            retrieval_rate=count / elapsed if elapsed > 0 else 0.0,
        )
