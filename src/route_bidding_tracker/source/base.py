"""Provider-agnostic route data source interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..routes.models import Route


class RouteDataSource(ABC):
    """Base contract for the external service that stores driver routes."""

    @abstractmethod
    def fetch_routes(self, driver_id: str) -> list[Route]:
        """Return every route owned by ``driver_id``.

        Raises RouteSourceUnavailableError when the service cannot be reached.
        """

    @abstractmethod
    def delete_route(self, route_id: str, driver_id: str) -> None:
        """Delete one route.

        Raises RouteNotFoundError, RouteForbiddenError or
        RouteSourceUnavailableError.
        """

    @abstractmethod
    def close(self) -> None:
        """Release provider resources."""
