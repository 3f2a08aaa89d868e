"""Graph assembly: nodes, strategy dispatch and summary statistics."""

import logging
import math
from collections.abc import Sequence
from typing import Any

from ..connections import ConnectionRegistry, default_connection_registry
from ..models import ConnectionOptions, GraphData, GraphNode, Item
from ..similarity import ExhaustivePairs, PairEnumerator, cosine_similarity, embedded_nodes
from .analytics import GraphAnalytics

logger = logging.getLogger(__name__)

DEFAULT_COLORS = {
    "World": "#ef4444",
    "Sports": "#3b82f6",
    "Business": "#10b981",
    "Sci/Tech": "#f59e0b",
    "Technology": "#f59e0b",
    "Q&A": "#8b5cf6",
    "Science": "#06b6d4",
    "Politics": "#f97316",
    "default": "#6b7280",
}
BASE_NODE_SIZE = 8.0


class GraphService:
    """Builds graphs from items with a named connection strategy."""

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        config: dict[str, Any] | None = None,
        enumerator: PairEnumerator | None = None,
    ):
        config = config or {}
        self.registry = registry or default_connection_registry()
        self.colors = {**DEFAULT_COLORS, **config.get("colors", {})}
        size_cfg = config.get("node_size", {})
        self.min_size = size_cfg.get("min", BASE_NODE_SIZE)
        self.max_size = size_cfg.get("max", 20.0)
        self.enumerator = enumerator or ExhaustivePairs()

    # --- nodes ---------------------------------------------------------

    def node_size(self, item: Item) -> float:
        """Grows with text length and metadata richness, clamped to the configured range."""
        text_factor = math.log(len(item.text) + 1) * 0.5
        metadata_factor = len(item.metadata) * 0.3
        return max(self.min_size, min(self.max_size, BASE_NODE_SIZE + text_factor + metadata_factor))

    def node_color(self, item: Item) -> str:
        if item.category:
            return self.colors.get(item.category, self.colors["default"])
        return self.colors["default"]

    def build_nodes(self, items: Sequence[Item], node_enhancements: bool = True) -> list[GraphNode]:
        return [
            GraphNode.from_item(
                item,
                size=self.node_size(item) if node_enhancements else BASE_NODE_SIZE,
                color=self.node_color(item),
            )
            for item in embedded_nodes(items)
        ]

    # --- generation ----------------------------------------------------

    def generate_graph(
        self,
        items: Sequence[Item],
        strategy: str,
        options: ConnectionOptions | None = None,
        node_enhancements: bool = True,
    ) -> GraphData:
        """Build nodes for the embedded items and link them with ``strategy``.

        Raises:
            UnknownStrategy: if ``strategy`` is not registered.
        """
        connector = self.registry.get(strategy)
        options = options or ConnectionOptions()
        nodes = self.build_nodes(items, node_enhancements)
        if not nodes:
            return GraphData()

        pairs = self.enumerator.pairs(nodes, options.noise_floor)
        links = connector.generate(nodes, options, pairs)
        logger.info(f"Generated {len(links)} link(s) over {len(nodes)} node(s) with '{strategy}'")
        return GraphData(nodes=nodes, links=links)

    async def agenerate_graph(
        self,
        items: Sequence[Item],
        strategy: str,
        options: ConnectionOptions | None = None,
        node_enhancements: bool = True,
    ) -> GraphData:
        """Like :meth:`generate_graph`, yielding to the event loop while scoring pairs."""
        connector = self.registry.get(strategy)
        options = options or ConnectionOptions()
        nodes = self.build_nodes(items, node_enhancements)
        if not nodes:
            return GraphData()

        if hasattr(self.enumerator, "apairs"):
            pairs = await self.enumerator.apairs(nodes, options.noise_floor)
        else:
            pairs = self.enumerator.pairs(nodes, options.noise_floor)
        return GraphData(nodes=nodes, links=connector.generate(nodes, options, pairs))

    def update_connections(
        self,
        graph: GraphData,
        strategy: str,
        options: ConnectionOptions | None = None,
    ) -> GraphData:
        """Re-link the existing nodes; node attributes are left as they are."""
        connector = self.registry.get(strategy)
        if not graph.nodes:
            return graph
        options = options or ConnectionOptions()
        pairs = self.enumerator.pairs(graph.nodes, options.noise_floor)
        return GraphData(nodes=graph.nodes, links=connector.generate(graph.nodes, options, pairs))

    def strategies(self) -> list[dict[str, str]]:
        return self.registry.describe()

    # --- queries -------------------------------------------------------

    def find_similar_nodes(
        self,
        target: Item,
        all_nodes: Sequence[Item],
        max_results: int = 5,
        min_similarity: float = 0.5,
    ) -> list[tuple[Item, float]]:
        """Most similar other nodes to ``target``, independent of any graph."""
        if not target.embedding:
            return []

        found = []
        for node in all_nodes:
            if node.id == target.id or not node.embedding:
                continue
            if len(node.embedding) != len(target.embedding):
                continue
            similarity = cosine_similarity(target.embedding, node.embedding)
            if similarity >= min_similarity:
                found.append((node, similarity))

        found.sort(key=lambda entry: entry[1], reverse=True)
        return found[:max_results]

    def graph_stats(self, graph: GraphData) -> dict[str, Any]:
        analytics = GraphAnalytics(graph)
        categories = sorted({n.category for n in graph.nodes if n.category})
        avg_similarity = (
            sum(link.similarity for link in graph.links) / len(graph.links) if graph.links else 0.0
        )
        return {
            "node_count": len(graph.nodes),
            "link_count": len(graph.links),
            "category_count": len(categories),
            "categories": categories,
            "avg_similarity": round(avg_similarity, 3),
            "density": analytics.density(),
            "connection_distribution": analytics.connection_distribution(),
            "is_connected": analytics.is_connected(),
            "components": len(analytics.components()),
        }
