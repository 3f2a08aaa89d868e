"""Read-only queries over an assembled graph."""

from collections import deque
from dataclasses import dataclass
from typing import Any

from ..models import GraphData, GraphLink, GraphNode

DISTRIBUTION_BUCKETS = ("0", "1-2", "3-5", "6-10", "10+")


@dataclass
class Neighborhood:
    node: GraphNode
    neighbors: list[tuple[GraphNode, GraphLink]]


def _bucket(count: int) -> str:
    if count == 0:
        return "0"
    if count <= 2:
        return "1-2"
    if count <= 5:
        return "3-5"
    if count <= 10:
        return "6-10"
    return "10+"


class GraphAnalytics:
    """Traversal and summary metrics for one graph snapshot.

    The adjacency is built once; links that point at unknown nodes are
    ignored.
    """

    def __init__(self, graph: GraphData):
        self.graph = graph
        self._nodes = {n.id: n for n in graph.nodes}
        self._adjacency: dict[str, list[tuple[str, GraphLink]]] = {n.id: [] for n in graph.nodes}
        for link in graph.links:
            if link.source in self._nodes and link.target in self._nodes:
                self._adjacency[link.source].append((link.target, link))
                self._adjacency[link.target].append((link.source, link))

    def neighborhood(self, node_id: str) -> Neighborhood | None:
        """Directly linked nodes, most similar first."""
        node = self._nodes.get(node_id)
        if node is None:
            return None
        neighbors = [(self._nodes[other], link) for other, link in self._adjacency[node_id]]
        neighbors.sort(key=lambda entry: entry[1].similarity, reverse=True)
        return Neighborhood(node=node, neighbors=neighbors)

    def degree(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, []))

    def shortest_path(self, from_id: str, to_id: str) -> list[GraphNode] | None:
        """Fewest-hop path by breadth-first search, or None if disconnected."""
        if from_id not in self._nodes or to_id not in self._nodes:
            return None
        if from_id == to_id:
            return [self._nodes[from_id]]

        parent: dict[str, str | None] = {from_id: None}
        queue = deque([from_id])
        while queue:
            current = queue.popleft()
            for other, _ in self._adjacency[current]:
                if other in parent:
                    continue
                parent[other] = current
                if other == to_id:
                    return self._walk_back(parent, to_id)
                queue.append(other)
        return None

    def _walk_back(self, parent: dict[str, str | None], end: str) -> list[GraphNode]:
        path = []
        step: str | None = end
        while step is not None:
            path.append(self._nodes[step])
            step = parent[step]
        path.reverse()
        return path

    def is_connected(self) -> bool:
        """True if a depth-first walk from the first node reaches every node."""
        if len(self._nodes) <= 1:
            return True
        start = self.graph.nodes[0].id
        visited = {start}
        stack = [start]
        while stack:
            current = stack.pop()
            for other, _ in self._adjacency[current]:
                if other not in visited:
                    visited.add(other)
                    stack.append(other)
        return len(visited) == len(self._nodes)

    def components(self) -> list[list[str]]:
        """Connected components, largest first."""
        seen: set[str] = set()
        found: list[list[str]] = []
        for node in self.graph.nodes:
            if node.id in seen:
                continue
            seen.add(node.id)
            component = []
            stack = [node.id]
            while stack:
                current = stack.pop()
                component.append(current)
                for other, _ in self._adjacency[current]:
                    if other not in seen:
                        seen.add(other)
                        stack.append(other)
            found.append(component)
        found.sort(key=len, reverse=True)
        return found

    def density(self) -> float:
        n = len(self._nodes)
        if n <= 1:
            return 0.0
        return len(self.graph.links) / (n * (n - 1) / 2)

    def connection_distribution(self) -> dict[str, Any]:
        """Histogram of per-node link counts plus average, min and max."""
        counts = [len(self._adjacency[node_id]) for node_id in self._nodes]
        buckets = {name: 0 for name in DISTRIBUTION_BUCKETS}
        for count in counts:
            buckets[_bucket(count)] += 1

        if not counts:
            return {"average": 0.0, "max": 0, "min": 0, "distribution": buckets}
        return {
            "average": round(sum(counts) / len(counts), 2),
            "max": max(counts),
            "min": min(counts),
            "distribution": buckets,
        }
