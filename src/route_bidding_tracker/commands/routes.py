"""Delete and edit command wrappers around the route data source."""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..exceptions import (
    JournalError,
    RouteDataError,
    RouteForbiddenError,
    RouteNotFoundError,
    RouteSourceUnavailableError,
)
from ..journal import JournalWriter
from ..redaction import sanitize_text
from ..routes.models import Route
from ..source.base import RouteDataSource
from .models import DeleteResult, DeleteStatus, FetchResult

# Fields handed to the edit workflow; everything else on the record is derived
# or owned by the data service.
EDIT_PAYLOAD_FIELDS: tuple[str, ...] = (
    "id",
    "origin_lat",
    "origin_lng",
    "destination_lat",
    "destination_lng",
    "origin_location_name",
    "destination_location_name",
    "departure_time",
    "bidding_start",
    "status",
    "detour_tolerance_km",
    "suggested_price_min",
    "suggested_price_max",
    "total_distance_km",
    "estimated_duration_minutes",
    "route_polyline",
    "bid_count",
    "highest_bid_amount",
    "created_at",
)


def build_edit_payload(route: Route) -> dict[str, Any]:
    """Return the clean, JSON-safe record an edit screen is opened with."""
    return route.model_dump(
        mode="json",
        by_alias=True,
        include=set(EDIT_PAYLOAD_FIELDS),
    )


class RouteCommandService:
    """Issue route commands for one driver and report typed results."""

    def __init__(
        self,
        source: RouteDataSource,
        driver_id: str,
        logger: logging.Logger,
        journal: JournalWriter | None = None,
    ) -> None:
        self.source = source
        self.driver_id = driver_id
        self.logger = logger
        self.journal = journal
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    def fetch_routes(self) -> FetchResult:
        """Fetch the driver's routes without raising."""
        try:
            routes = self.source.fetch_routes(self.driver_id)
        except RouteSourceUnavailableError as exc:
            self.logger.warning("Route fetch unavailable: %s", exc)
            return FetchResult(
                driver_id=self.driver_id,
                status="unavailable",
                message=sanitize_text(str(exc)),
            )
        except RouteDataError as exc:
            self.logger.error("Route fetch failed: %s", exc)
            return FetchResult(
                driver_id=self.driver_id,
                status="failed",
                message=sanitize_text(str(exc)),
            )
        except Exception as exc:  # any source failure becomes a result
            self.logger.exception("Route fetch raised unexpectedly")
            return FetchResult(
                driver_id=self.driver_id,
                status="failed",
                message=sanitize_text(f"{type(exc).__name__}: {exc}"),
            )
        return FetchResult(driver_id=self.driver_id, status="ok", routes=tuple(routes))

    def is_delete_in_flight(self, route_id: str) -> bool:
        with self._lock:
            return route_id in self._in_flight

    def in_flight_route_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_flight)

    def request_delete(self, route_id: str) -> DeleteResult:
        """Delete a route, allowing at most one in-flight delete per route id."""
        with self._lock:
            if route_id in self._in_flight:
                self.logger.info("Delete already in progress for route %s", route_id)
                return DeleteResult(
                    route_id=route_id,
                    status="already_in_progress",
                    message=f"A delete for route {route_id} is already in progress.",
                )
            self._in_flight.add(route_id)

        self._write_event("route_delete_requested", {"route_id": route_id})
        try:
            result = self._delete(route_id)
        finally:
            with self._lock:
                self._in_flight.discard(route_id)

        self._write_event(
            "route_delete_result",
            {"route_id": route_id, "status": result.status, "message": result.message},
        )
        return result

    def _delete(self, route_id: str) -> DeleteResult:
        status: DeleteStatus
        try:
            self.source.delete_route(route_id, self.driver_id)
        except RouteNotFoundError as exc:
            status, error = "not_found", exc
        except RouteForbiddenError as exc:
            status, error = "forbidden", exc
        except RouteSourceUnavailableError as exc:
            status, error = "unavailable", exc
        except RouteDataError as exc:
            status, error = "failed", exc
        except Exception as exc:  # any source failure becomes a result
            self.logger.exception("Delete for route %s raised unexpectedly", route_id)
            return DeleteResult(
                route_id=route_id,
                status="failed",
                message=sanitize_text(f"{type(exc).__name__}: {exc}"),
            )
        else:
            self.logger.info("Route %s deleted", route_id)
            return DeleteResult(route_id=route_id, status="deleted")

        self.logger.warning("Delete for route %s finished as %s: %s", route_id, status, error)
        return DeleteResult(route_id=route_id, status=status, message=sanitize_text(str(error)))

    def _write_event(self, event_type: str, payload: dict[str, object]) -> None:
        if self.journal is None:
            return
        try:
            self.journal.write_event(
                event_type,
                payload=payload,
                metadata={"driver_id": self.driver_id},
            )
        except JournalError as exc:
            self.logger.error("Failed to journal %s: %s", event_type, exc)
