"""Name → strategy registry for search strategies."""

import logging
from collections.abc import Iterable, Sequence

from ..errors import UnknownStrategy
from ..models import Item, SearchOptions, SearchResult
from .strategies import (
    CategorySearchStrategy,
    FuzzySearchStrategy,
    SearchStrategy,
    SemanticSearchStrategy,
    TextSearchStrategy,
)

logger = logging.getLogger(__name__)


class SearchRegistry:
    """Search strategies keyed by name."""

    def __init__(self):
        self._strategies: dict[str, SearchStrategy] = {}

    def register(self, strategy: SearchStrategy) -> None:
        if not strategy.name:
            raise ValueError("Search strategy needs a name")
        self._strategies[strategy.name] = strategy

    def get(self, name: str) -> SearchStrategy:
        try:
            return self._strategies[name]
        except KeyError:
            raise UnknownStrategy("search", name, self.names()) from None

    def names(self) -> list[str]:
        return list(self._strategies)

    def describe(self) -> list[dict[str, str]]:
        return [{"name": s.name, "description": s.description} for s in self._strategies.values()]

    def search(
        self,
        name: str,
        nodes: Sequence[Item],
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        return self.get(name).search(nodes, query, options)

    def search_multiple(
        self,
        names: Iterable[str],
        nodes: Sequence[Item],
        query: str,
        options: SearchOptions | None = None,
    ) -> dict[str, list[SearchResult]]:
        """Run several strategies; a failing one yields an empty list instead of raising."""
        results: dict[str, list[SearchResult]] = {}
        for name in names:
            try:
                results[name] = self.search(name, nodes, query, options)
            except Exception as e:
                logger.warning(f"Search strategy '{name}' failed: {e}")
                results[name] = []
        return results

    def __contains__(self, name: str) -> bool:
        return name in self._strategies


def default_search_registry() -> SearchRegistry:
    """Registry with every built-in search strategy."""
    registry = SearchRegistry()
    for strategy in (
        TextSearchStrategy(),
        FuzzySearchStrategy(),
        CategorySearchStrategy(),
        SemanticSearchStrategy(),
    ):
        registry.register(strategy)
    return registry
