"""Search strategies and their registry."""

from .registry import SearchRegistry, default_search_registry
from .strategies import (
    CategorySearchStrategy,
    FuzzySearchStrategy,
    SearchStrategy,
    SemanticSearchStrategy,
    TextSearchStrategy,
)

__all__ = [
    "CategorySearchStrategy",
    "FuzzySearchStrategy",
    "SearchRegistry",
    "SearchStrategy",
    "SemanticSearchStrategy",
    "TextSearchStrategy",
    "default_search_registry",
]
