"""HTTP adapter for the hosted route data service."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import (
    RouteDataError,
    RouteForbiddenError,
    RouteNotFoundError,
    RouteSourceUnavailableError,
)
from ..redaction import sanitize_text
from ..routes.models import Route
from .base import RouteDataSource

_LIST_KEYS = ("data", "routes", "items")


class HttpRouteDataSource(RouteDataSource):
    """Fetches and deletes driver routes over the data service's REST API.

    Transport failures are never retried here; a retry is an explicit user
    action (pull-to-refresh, pressing delete again).
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        headers = {
            "Accept": "application/json",
            "User-Agent": "route-bidding-tracker/0.1",
        }
        if settings.routes_api_key:
            headers["apikey"] = settings.routes_api_key
            headers["Authorization"] = f"Bearer {settings.routes_api_key}"
        self._client = httpx.Client(
            base_url=str(settings.routes_api_base_url),
            timeout=settings.routes_timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def __enter__(self) -> HttpRouteDataSource:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_routes(self, driver_id: str) -> list[Route]:
        """Fetch and normalize every route for ``driver_id``."""
        response = self._request(
            "GET",
            self.settings.routes_endpoint,
            params={"driverId": driver_id},
            context="route fetch",
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RouteDataError(
                "Route fetch returned a non-JSON response.",
                status_code=response.status_code,
            ) from exc
        return self.normalize_routes(payload)

    def delete_route(self, route_id: str, driver_id: str) -> None:
        """Delete one route owned by ``driver_id``."""
        path = self.settings.route_delete_endpoint_template.format(
            route_id=quote(route_id, safe="")
        )
        self._request(
            "DELETE",
            path,
            params={"driverId": driver_id},
            context=f"route delete ({route_id})",
        )

    def normalize_routes(self, payload: Any) -> list[Route]:
        """Parse route records, skipping malformed ones with a warning."""
        records = self.extract_route_records(payload)
        routes: list[Route] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                self.logger.warning("Skipping non-object route record at index %d", index)
                continue
            try:
                routes.append(Route.model_validate(record))
            except ValidationError as exc:
                self.logger.warning(
                    "Skipping invalid route record %r: %d validation error(s)",
                    record.get("id"),
                    exc.error_count(),
                )
        return routes

    @staticmethod
    def extract_route_records(payload: Any) -> list[Any]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in _LIST_KEYS:
                value = payload.get(key)
                if isinstance(value, list):
                    return value
        raise RouteDataError(
            f"Route payload has unexpected shape: {type(payload).__name__} "
            f"without any of {list(_LIST_KEYS)}."
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any],
        context: str,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, path, params=params)
        except httpx.HTTPError as exc:
            self.logger.warning("Route service %s failed (%s)", context, type(exc).__name__)
            raise RouteSourceUnavailableError(
                f"Route service {context} failed: {sanitize_text(str(exc))}"
            ) from exc

        status = response.status_code
        if status < 400:
            return response

        detail = sanitize_text(response.text[:300])
        message = f"Route service {context} failed with status {status}: {detail}"
        if status == 404:
            raise RouteNotFoundError(message, status_code=status)
        if status in (401, 403):
            raise RouteForbiddenError(message, status_code=status)
        if status >= 500 or status == 429:
            raise RouteSourceUnavailableError(message, status_code=status)
        raise RouteDataError(message, status_code=status)
