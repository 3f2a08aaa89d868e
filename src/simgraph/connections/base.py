"""Shared pieces of the connection strategies."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..models import ConnectionOptions, GraphLink, Item, SimilarPair, pair_key
from ..similarity import ExhaustivePairs, embedded_nodes

DEFAULT_BASE_DISTANCE = 30.0
DEFAULT_DISTANCE_SPREAD = 120.0


def make_link(
    source: str,
    target: str,
    similarity: float,
    base: float = DEFAULT_BASE_DISTANCE,
    spread: float = DEFAULT_DISTANCE_SPREAD,
) -> GraphLink:
    """Build a link whose distance shrinks as similarity grows."""
    return GraphLink(
        source=source,
        target=target,
        similarity=similarity,
        distance=base + (1 - similarity) * spread,
    )


class LinkSet:
    """Undirected links keyed by their unordered endpoint pair.

    Self-links and repeated pairs are ignored. Insertion order is kept.
    """

    def __init__(self):
        self._links: dict[tuple[str, str], GraphLink] = {}

    def add(
        self,
        source: str,
        target: str,
        similarity: float,
        base: float = DEFAULT_BASE_DISTANCE,
        spread: float = DEFAULT_DISTANCE_SPREAD,
    ) -> bool:
        """Add a link; returns False if it was a self-link or already present."""
        if source == target:
            return False
        key = pair_key(source, target)
        if key in self._links:
            return False
        self._links[key] = make_link(source, target, similarity, base, spread)
        return True

    def has(self, a: str, b: str) -> bool:
        return pair_key(a, b) in self._links

    def links(self) -> list[GraphLink]:
        return list(self._links.values())

    def __len__(self) -> int:
        return len(self._links)


def neighbor_lists(pairs: Sequence[SimilarPair]) -> dict[str, list[tuple[str, float]]]:
    """Per-node candidates, counting the node on either side of a pair.

    ``pairs`` must already be sorted descending; each list inherits that order.
    """
    candidates: dict[str, list[tuple[str, float]]] = {}
    for source, target, similarity in pairs:
        candidates.setdefault(source, []).append((target, similarity))
        candidates.setdefault(target, []).append((source, similarity))
    return candidates


class ConnectionStrategy(ABC):
    """Turns a set of embedded nodes into undirected, deduplicated links."""

    name: str = ""
    description: str = ""

    def generate(
        self,
        nodes: Sequence[Item],
        options: ConnectionOptions | None = None,
        pairs: Sequence[SimilarPair] | None = None,
    ) -> list[GraphLink]:
        """Generate links for ``nodes``.

        Args:
            nodes: Candidate nodes; only those with a dominant-length
                embedding take part.
            options: Tunables; defaults apply when omitted.
            pairs: Precomputed similarity enumeration over the same nodes,
                sorted descending. Computed here when omitted.
        """
        options = options or ConnectionOptions()
        members = embedded_nodes(nodes)
        if len(members) < 2:
            return []

        if pairs is None:
            pairs = ExhaustivePairs().pairs(members, options.noise_floor)
        else:
            member_ids = {m.id for m in members}
            pairs = [p for p in pairs if p.source in member_ids and p.target in member_ids]

        return self.connect(members, pairs, options).links()

    @abstractmethod
    def connect(
        self,
        nodes: list[Item],
        pairs: Sequence[SimilarPair],
        options: ConnectionOptions,
    ) -> LinkSet:
        """Select links from the enumerated pairs."""
