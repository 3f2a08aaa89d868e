"""simgraph - Similarity graphs, search and embeddings for labeled text."""

from .context import SimGraphContext, create_context
from .models import ConnectionOptions, GraphData, GraphLink, GraphNode, Item, SearchOptions, SearchResult

__version__ = "0.1.0"

__all__ = [
    "ConnectionOptions",
    "GraphData",
    "GraphLink",
    "GraphNode",
    "Item",
    "SearchOptions",
    "SearchResult",
    "SimGraphContext",
    "create_context",
]
