"""
Relationship Graph Models
=========================

Typed, weighted, directed links between memory items and the results of
walking them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class LinkType(str, Enum):
    """Relationship kinds between memory items."""
    RELATED = "related"         # general related content
    PARENT = "parent"
    CHILD = "child"
    SEQUENTIAL = "sequential"   # temporal sequence
    CAUSAL = "causal"           # cause -> effect
    REFERENCE = "reference"     # explicit reference


_REVERSE_TYPES = {
    LinkType.PARENT: LinkType.CHILD,
    LinkType.CHILD: LinkType.PARENT,
}


def reverse_link_type(link_type: LinkType) -> LinkType:
    """Type of the mirrored edge: parent and child swap, the rest are symmetric."""
    return _REVERSE_TYPES.get(link_type, link_type)


@dataclass
class RelationshipLink:
    """
    One directed edge of the adjacency index.

    Attributes:
        from_id: Source item
        to_id: Target item
        link_type: Relationship kind
        strength: Edge weight in [0, 1]
        created_at: Creation time, epoch milliseconds
        metadata: Optional free-form payload
    """
    from_id: str
    to_id: str
    link_type: LinkType
    strength: float
    created_at: int
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "fromId": self.from_id,
            "toId": self.to_id,
            "linkType": self.link_type.value,
            "strength": self.strength,
            "createdAt": self.created_at,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelationshipLink":
        """Raises KeyError / ValueError / TypeError on malformed input."""
        if not isinstance(data, dict):
            raise TypeError(f"expected object, got {type(data).__name__}")
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            raise TypeError("metadata must be an object")
        return cls(
            from_id=str(data["fromId"]),
            to_id=str(data["toId"]),
            link_type=LinkType(data["linkType"]),
            strength=float(data["strength"]),
            created_at=int(data.get("createdAt", 0)),
            metadata=metadata,
        )


@dataclass
class ChainTraversalResult:
    """
    Node reached while walking the graph from a start node.

    Attributes:
        id: Reached node
        path: Human-readable route, e.g. "x -> y -> z"
        link_type: Type of the edge that reached the node
        link_strength: Strength of that edge
        hop_distance: Edges walked from the start node
        discovered_at: ``created_at`` of that edge (epoch ms)
    """
    id: str
    path: str
    link_type: LinkType
    link_strength: float
    hop_distance: int
    discovered_at: int

    def __repr__(self) -> str:
        return (
            f"<ChainTraversalResult(id={self.id}, hops={self.hop_distance}, "
            f"type={self.link_type.value}, strength={self.link_strength:.2f})>"
        )

