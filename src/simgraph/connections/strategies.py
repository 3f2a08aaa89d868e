"""Core connection strategies: top-k, threshold, adaptive and category-biased."""

from collections.abc import Sequence

from ..models import ConnectionOptions, Item, SimilarPair
from .base import ConnectionStrategy, LinkSet, neighbor_lists


class TopKStrategy(ConnectionStrategy):
    """Connect each node to its k most similar nodes.

    A node can end up with more than k links because its neighbors pick it
    too; k bounds only what each node contributes.
    """

    def __init__(self, k: int):
        self.k = k
        self.name = f"top{k}"
        self.description = f"Connect each node to its top {k} most similar nodes"

    def connect(self, nodes: list[Item], pairs: Sequence[SimilarPair], options: ConnectionOptions) -> LinkSet:
        candidates = neighbor_lists(pairs)
        links = LinkSet()
        for node in nodes:
            for other, similarity in candidates.get(node.id, [])[:self.k]:
                links.add(node.id, other, similarity)
        return links


class ThresholdStrategy(ConnectionStrategy):
    """Connect every pair at or above ``options.threshold``."""

    name = "threshold"
    description = "Connect nodes with similarity above threshold"

    def connect(self, nodes: list[Item], pairs: Sequence[SimilarPair], options: ConnectionOptions) -> LinkSet:
        links = LinkSet()
        for source, target, similarity in pairs:
            if similarity < options.threshold:
                break  # pairs are sorted descending
            links.add(source, target, similarity)
        return links


class AdaptiveStrategy(ConnectionStrategy):
    """Fewer, tighter links in dense neighborhoods; more, looser ones in sparse ones.

    For each node the mean of its best ``adaptive_window`` similarities picks a
    link count from ``adaptive_tiers`` and a floor of
    ``max(adaptive_min_threshold, mean * adaptive_threshold_ratio)``.
    """

    name = "adaptive"
    description = "Dynamically adjust connections based on similarity patterns"

    def connect(self, nodes: list[Item], pairs: Sequence[SimilarPair], options: ConnectionOptions) -> LinkSet:
        candidates = neighbor_lists(pairs)
        links = LinkSet()

        for node in nodes:
            ranked = candidates.get(node.id)
            if not ranked:
                continue

            window = ranked[:options.adaptive_window]
            avg = sum(s for _, s in window) / len(window)
            count = self.link_count(avg, options)
            floor = max(options.adaptive_min_threshold, avg * options.adaptive_threshold_ratio)

            for other, similarity in ranked[:count]:
                if similarity > floor:
                    links.add(node.id, other, similarity)
        return links

    @staticmethod
    def link_count(avg: float, options: ConnectionOptions) -> int:
        for cutoff, count in options.adaptive_tiers:
            if avg > cutoff:
                return count
        return options.adaptive_fallback_count


class CategoryStrategy(ConnectionStrategy):
    """Prefer links inside a node's own category, keep a few across categories.

    Two nodes that both lack a category count as the same category.
    """

    name = "category_based"
    description = "Prioritize connections within same category, with some cross-category links"

    def connect(self, nodes: list[Item], pairs: Sequence[SimilarPair], options: ConnectionOptions) -> LinkSet:
        category = {n.id: n.category for n in nodes}
        same: dict[str, list[tuple[str, float]]] = {}
        different: dict[str, list[tuple[str, float]]] = {}

        for source, target, similarity in pairs:
            bucket = same if category[source] == category[target] else different
            bucket.setdefault(source, []).append((target, similarity))
            bucket.setdefault(target, []).append((source, similarity))

        links = LinkSet()
        for node in nodes:
            selected = (
                same.get(node.id, [])[:options.same_category_links]
                + different.get(node.id, [])[:options.cross_category_links]
            )
            for other, similarity in selected:
                links.add(node.id, other, similarity)
        return links
