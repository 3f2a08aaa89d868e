"""Data models used throughout simgraph."""

import enum
from dataclasses import dataclass, field, fields
from typing import Any, NamedTuple


@dataclass
class Item:
    """A labeled text record, optionally carrying an embedding."""
    id: str
    text: str
    category: str | None = None
    embedding: list[float] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Item id must not be empty")
        if not self.text or not self.text.strip():
            raise ValueError(f"Item {self.id} has no text")

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        return cls(
            id=str(data["id"]),
            text=data["text"],
            category=data.get("category"),
            embedding=data.get("embedding"),
            metadata=data.get("metadata") or {},
        )


@dataclass
class GraphNode(Item):
    """An embedded item plus presentation attributes."""
    size: float = 8.0
    color: str = "#6b7280"

    @classmethod
    def from_item(cls, item: Item, size: float, color: str) -> "GraphNode":
        return cls(
            id=item.id,
            text=item.text,
            category=item.category,
            embedding=item.embedding,
            metadata=item.metadata,
            size=size,
            color=color,
        )

    def to_item(self) -> Item:
        """The underlying item without presentation attributes."""
        return Item(
            id=self.id,
            text=self.text,
            category=self.category,
            embedding=self.embedding,
            metadata=self.metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["size"] = self.size
        data["color"] = self.color
        return data


@dataclass(frozen=True)
class GraphLink:
    """An undirected, weighted relation between two nodes."""
    source: str
    target: str
    similarity: float
    distance: float

    @property
    def key(self) -> tuple[str, str]:
        """Canonical unordered pair."""
        return pair_key(self.source, self.target)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "similarity": self.similarity,
            "distance": self.distance,
        }


def pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


@dataclass
class GraphData:
    """Nodes and links as produced by a connection strategy."""
    nodes: list[GraphNode] = field(default_factory=list)
    links: list[GraphLink] = field(default_factory=list)

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def get_node(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }


class SimilarPair(NamedTuple):
    source: str
    target: str
    similarity: float


# camelCase names accepted for compatibility with exported app settings
_OPTION_ALIASES = {
    "categoryWeight": "category_weight",
    "maxConnections": "max_connections",
    "minSimilarity": "noise_floor",
    "noiseFloor": "noise_floor",
    "timeWindow": "time_window",
    "minCommunitySize": "min_community_size",
}


@dataclass
class ConnectionOptions:
    """Tunables for connection strategies.

    The numeric defaults are empirical, not derived; every one of them can be
    overridden from config or per call.
    """
    threshold: float = 0.7
    category_weight: float = 0.7
    max_connections: int = 5
    noise_floor: float = 0.05

    # adaptive
    adaptive_window: int = 10
    adaptive_tiers: tuple[tuple[float, int], ...] = ((0.7, 3), (0.5, 5))
    adaptive_fallback_count: int = 7
    adaptive_min_threshold: float = 0.3
    adaptive_threshold_ratio: float = 0.5

    # category_based
    same_category_links: int = 3
    cross_category_links: int = 2

    # temporal
    time_window: float = 86400.0  # seconds
    temporal_weight: float = 0.4

    # community
    community_threshold: float = 0.6
    community_seed_neighbors: int = 5
    min_community_size: int = 2
    within_community_threshold: float = 0.3
    bridge_threshold: float = 0.4
    resolution: float = 1.0

    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: dict[str, Any] | None) -> "ConnectionOptions":
        """Build options from a config/CLI mapping; unknown keys land in ``extra``."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (values or {}).items():
            name = _OPTION_ALIASES.get(key, key)
            if name == "extra":
                extra.update(value or {})
            elif name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        if "adaptive_tiers" in kwargs:
            kwargs["adaptive_tiers"] = tuple((float(t), int(c)) for t, c in kwargs["adaptive_tiers"])
        return cls(extra=extra, **kwargs)

    def merged(self, **overrides: Any) -> "ConnectionOptions":
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ConnectionOptions(**values)


SEARCH_FIELDS = frozenset({"text", "category", "metadata"})


@dataclass(frozen=True)
class SearchOptions:
    """Search query context (the query itself is passed separately)."""
    max_results: int = 5
    case_sensitive: bool = False
    search_fields: frozenset[str] = SEARCH_FIELDS
    semantic_threshold: float = 0.7

    def __post_init__(self):
        if self.max_results < 1:
            raise ValueError("max_results must be a positive integer")
        object.__setattr__(self, "search_fields", frozenset(self.search_fields))
        unknown = self.search_fields - SEARCH_FIELDS
        if unknown:
            raise ValueError(f"Unknown search fields: {', '.join(sorted(unknown))}")


class MatchType(str, enum.Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    METADATA = "metadata"
    SEMANTIC = "semantic"


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit; built fresh for every query."""
    item: Item
    score: float
    match_type: MatchType
    matched_text: str = ""
    highlights: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.item.id,
            "score": self.score,
            "match_type": self.match_type.value,
            "matched_text": self.matched_text,
            "highlights": list(self.highlights),
        }


class PipelineState(str, enum.Enum):
    PREPARING = "preparing"
    BATCHING = "batching"
    SUBMITTING = "submitting"
    RETRYING = "retrying"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """A stage transition of an embedding run."""
    state: PipelineState
    progress: float  # percent, never decreases within a run
    message: str
    current: int = 0
    total: int = 0


@dataclass(frozen=True)
class CostEstimate:
    tokens: int
    cost: float
    cost_per_item: float
    batches: int
    estimated_seconds: int


@dataclass
class EmbeddingRunResult:
    """Summary of a finished embedding run."""
    items: list[Item]
    embedded: int
    missing: int
    batches: int
    attempts: dict[int, int]
    estimate: CostEstimate
    elapsed: float = 0.0
