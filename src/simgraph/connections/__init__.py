"""Connection strategies and their registry."""

from .advanced import CommunityStrategy, TemporalStrategy
from .base import ConnectionStrategy, LinkSet, make_link, neighbor_lists
from .registry import ConnectionRegistry, default_connection_registry
from .strategies import AdaptiveStrategy, CategoryStrategy, ThresholdStrategy, TopKStrategy

__all__ = [
    "AdaptiveStrategy",
    "CategoryStrategy",
    "CommunityStrategy",
    "ConnectionRegistry",
    "ConnectionStrategy",
    "LinkSet",
    "TemporalStrategy",
    "ThresholdStrategy",
    "TopKStrategy",
    "default_connection_registry",
    "make_link",
    "neighbor_lists",
]
