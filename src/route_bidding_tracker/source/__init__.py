"""Route data source integrations."""

from .base import RouteDataSource
from .http import HttpRouteDataSource

__all__ = ["HttpRouteDataSource", "RouteDataSource"]
