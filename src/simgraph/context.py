"""Application context: the registries and graph service one process works with."""

import logging
from dataclasses import dataclass
from typing import Any

from .config import DEFAULT_CONFIG
from .connections import ConnectionRegistry, ConnectionStrategy, default_connection_registry
from .graph import GraphService
from .models import ConnectionOptions, SearchOptions
from .search import SearchRegistry, SearchStrategy, default_search_registry
from .similarity import get_pair_enumerator

logger = logging.getLogger(__name__)


@dataclass
class SimGraphContext:
    """Everything the CLI (or an embedding application) needs, passed explicitly.

    Strategies are meant to be registered at startup, before graphs are built.
    """
    config: dict[str, Any]
    connections: ConnectionRegistry
    search: SearchRegistry
    graph: GraphService

    def strategies(self) -> dict[str, list[dict[str, str]]]:
        return {
            "connection": self.connections.describe(),
            "search": self.search.describe(),
        }

    def register_connection_strategy(self, strategy: ConnectionStrategy) -> None:
        if strategy.name in self.connections:
            logger.warning(f"Replacing connection strategy '{strategy.name}'")
        self.connections.register(strategy)

    def register_search_strategy(self, strategy: SearchStrategy) -> None:
        if strategy.name in self.search:
            logger.warning(f"Replacing search strategy '{strategy.name}'")
        self.search.register(strategy)

    def connection_options(self, **overrides: Any) -> ConnectionOptions:
        """Configured connection options with per-call overrides applied."""
        return ConnectionOptions.from_mapping(self.config.get("connections")).merged(**overrides)

    def search_options(self, **overrides: Any) -> SearchOptions:
        values = {**self.config.get("search", {}), **{k: v for k, v in overrides.items() if v is not None}}
        if "search_fields" in values:
            values["search_fields"] = frozenset(values["search_fields"])
        return SearchOptions(**values)


def create_context(config: dict[str, Any] | None = None) -> SimGraphContext:
    """Build a context with the built-in strategies registered."""
    config = config if config is not None else DEFAULT_CONFIG
    connections = default_connection_registry()
    return SimGraphContext(
        config=config,
        connections=connections,
        search=default_search_registry(),
        graph=GraphService(connections, config, get_pair_enumerator(config)),
    )
