"""Name → strategy registry for connection strategies."""

from collections.abc import Sequence

from ..errors import UnknownStrategy
from ..models import ConnectionOptions, GraphLink, Item, SimilarPair
from .advanced import CommunityStrategy, TemporalStrategy
from .base import ConnectionStrategy
from .strategies import AdaptiveStrategy, CategoryStrategy, ThresholdStrategy, TopKStrategy


class ConnectionRegistry:
    """Connection strategies keyed by name."""

    def __init__(self):
        self._strategies: dict[str, ConnectionStrategy] = {}

    def register(self, strategy: ConnectionStrategy) -> None:
        if not strategy.name:
            raise ValueError("Connection strategy needs a name")
        self._strategies[strategy.name] = strategy

    def get(self, name: str) -> ConnectionStrategy:
        try:
            return self._strategies[name]
        except KeyError:
            raise UnknownStrategy("connection", name, self.names()) from None

    def names(self) -> list[str]:
        return list(self._strategies)

    def describe(self) -> list[dict[str, str]]:
        return [{"name": s.name, "description": s.description} for s in self._strategies.values()]

    def generate(
        self,
        name: str,
        nodes: Sequence[Item],
        options: ConnectionOptions | None = None,
        pairs: Sequence[SimilarPair] | None = None,
    ) -> list[GraphLink]:
        return self.get(name).generate(nodes, options, pairs)

    def __contains__(self, name: str) -> bool:
        return name in self._strategies


def default_connection_registry() -> ConnectionRegistry:
    """Registry with every built-in connection strategy."""
    registry = ConnectionRegistry()
    for strategy in (
        TopKStrategy(3),
        TopKStrategy(5),
        TopKStrategy(10),
        ThresholdStrategy(),
        AdaptiveStrategy(),
        CategoryStrategy(),
        TemporalStrategy(),
        CommunityStrategy(),
    ):
        registry.register(strategy)
    return registry
