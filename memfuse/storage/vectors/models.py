"""
Embedding Store Models
======================

Dataclasses for persisted embedding records and search hits.
"""

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass
class EmbeddingRecord:
    """
    One persisted embedding, as stored in a partition file.

    Attributes:
        id: Memory item id
        vector: Embedding values (length must match the store dimension)
        partition: Coarse time bucket (e.g. week number)
        timestamp: ISO-8601 timestamp of the memory item
        source_id: Id of the item the embedding was computed from
    """
    id: str
    vector: List[float]
    partition: int
    timestamp: str
    source_id: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the on-disk field names."""
        return {
            "id": self.id,
            "vector": list(self.vector),
            "partition": self.partition,
            "timestamp": self.timestamp,
            "sourceId": self.source_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmbeddingRecord":
        """
        Build a record from a decoded JSON object.

        Raises:
            KeyError: required field missing
            TypeError / ValueError: field of the wrong type
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected object, got {type(data).__name__}")
        vector = data["vector"]
        if not isinstance(vector, list):
            raise TypeError("vector must be a list")
        return cls(
            id=str(data["id"]),
            vector=[float(v) for v in vector],
            partition=int(data["partition"] if "partition" in data else data["weekNumber"]),
            timestamp=str(data.get("timestamp", "")),
            source_id=str(data.get("sourceId", data["id"])),
        )


@dataclass
class VectorSearchResult:
    """
    Hit from EmbeddingStore.search().

    ``timestamp`` is carried through so the retriever can compute recency.
    """
    id: str
    score: float
    source_id: str
    partition: int
    timestamp: str = ""

    def __repr__(self) -> str:
        return f"<VectorSearchResult(id={self.id}, score={self.score:.3f}, partition={self.partition})>"
