"""Graph assembly and analytics."""

from .analytics import GraphAnalytics, Neighborhood
from .service import DEFAULT_COLORS, GraphService

__all__ = ["DEFAULT_COLORS", "GraphAnalytics", "GraphService", "Neighborhood"]
