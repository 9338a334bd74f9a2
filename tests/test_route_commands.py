"""Tests for route delete/fetch commands and edit payloads."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from route_bidding_tracker.commands.routes import RouteCommandService, build_edit_payload
from route_bidding_tracker.exceptions import (
    RouteDataError,
    RouteForbiddenError,
    RouteNotFoundError,
    RouteSourceUnavailableError,
)
from route_bidding_tracker.journal import JournalWriter
from route_bidding_tracker.routes.models import Route
from route_bidding_tracker.source.base import RouteDataSource


def _route(route_id: str = "route-1", **overrides: object) -> Route:
    payload: dict[str, object] = {
        "id": route_id,
        "status": "OPEN",
        "departureTime": "2024-02-20T09:30:00Z",
        "biddingEndTime": "2024-02-19T18:00:00Z",
        "bidCount": 3,
        "highestBidAmount": "150.00",
        "originLat": 6.9271,
        "originLng": 79.8612,
        "originLocationName": "Colombo",
        "suggestedPriceMin": 100,
    }
    payload.update(overrides)
    return Route.model_validate(payload)


class _MemorySource(RouteDataSource):
    def __init__(self, routes: list[Route] | None = None) -> None:
        self.routes = {route.id: route for route in routes or []}
        self.delete_calls: list[tuple[str, str]] = []
        self.fetch_error: Exception | None = None
        self.delete_errors: dict[str, Exception] = {}

    def fetch_routes(self, driver_id: str) -> list[Route]:
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.routes.values())

    def delete_route(self, route_id: str, driver_id: str) -> None:
        self.delete_calls.append((route_id, driver_id))
        if route_id in self.delete_errors:
            raise self.delete_errors[route_id]
        if self.routes.pop(route_id, None) is None:
            raise RouteNotFoundError(f"Route {route_id} not found", status_code=404)

    def close(self) -> None:
        return None


class _BlockingSource(_MemorySource):
    def __init__(self, routes: list[Route]) -> None:
        super().__init__(routes)
        self.entered = threading.Event()
        self.release = threading.Event()

    def delete_route(self, route_id: str, driver_id: str) -> None:
        self.entered.set()
        assert self.release.wait(timeout=5.0)
        super().delete_route(route_id, driver_id)


def _service(source: RouteDataSource, journal: JournalWriter | None = None) -> RouteCommandService:
    return RouteCommandService(
        source=source,
        driver_id="driver-7",
        logger=logging.getLogger("test-commands"),
        journal=journal,
    )


def _journal_events(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_delete_existing_route() -> None:
    source = _MemorySource([_route()])
    result = _service(source).request_delete("route-1")
    assert result.status == "deleted"
    assert result.ok is True
    assert source.delete_calls == [("route-1", "driver-7")]


def test_second_delete_reports_not_found_instead_of_raising() -> None:
    source = _MemorySource([_route()])
    service = _service(source)
    assert service.request_delete("route-1").status == "deleted"

    again = service.request_delete("route-1")
    assert again.status == "not_found"
    assert again.ok is False
    assert "not found" in (again.message or "")


def test_delete_error_kinds_are_surfaced() -> None:
    source = _MemorySource([_route("a"), _route("b"), _route("c")])
    source.delete_errors = {
        "a": RouteForbiddenError("not your route", status_code=403),
        "b": RouteSourceUnavailableError("connection reset"),
        "c": RouteDataError("bad request", status_code=400),
    }
    service = _service(source)
    assert service.request_delete("a").status == "forbidden"
    assert service.request_delete("b").status == "unavailable"
    assert service.request_delete("c").status == "failed"
    assert service.in_flight_route_ids() == frozenset()


def test_concurrent_delete_for_same_route_issues_one_call() -> None:
    source = _BlockingSource([_route()])
    service = _service(source)
    results = []

    worker = threading.Thread(target=lambda: results.append(service.request_delete("route-1")))
    worker.start()
    assert source.entered.wait(timeout=5.0)

    assert service.is_delete_in_flight("route-1") is True
    duplicate = service.request_delete("route-1")
    source.release.set()
    worker.join(timeout=5.0)

    assert duplicate.status == "already_in_progress"
    assert [result.status for result in results] == ["deleted"]
    assert source.delete_calls == [("route-1", "driver-7")]
    assert service.is_delete_in_flight("route-1") is False


def test_delete_for_other_route_is_not_blocked() -> None:
    source = _BlockingSource([_route("route-1")])
    source.routes["route-2"] = _route("route-2")
    service = _service(source)

    worker = threading.Thread(target=lambda: service.request_delete("route-1"))
    worker.start()
    assert source.entered.wait(timeout=5.0)
    assert service.in_flight_route_ids() == frozenset({"route-1"})
    source.release.set()
    worker.join(timeout=5.0)

    assert service.request_delete("route-2").status == "deleted"


def test_delete_is_journaled(tmp_path: Path) -> None:
    journal = JournalWriter(journal_dir=tmp_path, session_id="cmd-test")
    source = _MemorySource([_route()])
    _service(source, journal).request_delete("route-1")

    events = _journal_events(journal.events_path)
    assert [event["event_type"] for event in events] == [
        "route_delete_requested",
        "route_delete_result",
    ]
    assert events[1]["payload"]["status"] == "deleted"
    assert events[1]["metadata"]["driver_id"] == "driver-7"


def test_fetch_routes_wraps_outcomes() -> None:
    source = _MemorySource([_route()])
    service = _service(source)

    ok = service.fetch_routes()
    assert ok.status == "ok"
    assert [route.id for route in ok.routes] == ["route-1"]

    source.fetch_error = RouteSourceUnavailableError("service down")
    unavailable = service.fetch_routes()
    assert unavailable.status == "unavailable"
    assert unavailable.routes == ()
    assert unavailable.message == "service down"

    source.fetch_error = RouteDataError("unexpected payload")
    assert service.fetch_routes().status == "failed"


def test_edit_payload_is_clean_and_json_safe() -> None:
    payload = build_edit_payload(_route())

    assert payload["id"] == "route-1"
    assert payload["originLocationName"] == "Colombo"
    assert payload["departureTime"].startswith("2024-02-20T09:30:00")
    assert payload["bidCount"] == 3
    assert payload["highestBidAmount"] == "150.00"
    assert payload["suggestedPriceMin"] == "100"
    assert "biddingEndTime" not in payload
    json.dumps(payload)


class _BrokenSource(_MemorySource):
    def fetch_routes(self, driver_id: str) -> list[Route]:
        raise TimeoutError("read timed out")

    def delete_route(self, route_id: str, driver_id: str) -> None:
        self.delete_calls.append((route_id, driver_id))
        raise ConnectionResetError("connection reset by peer")


def test_unexpected_source_errors_become_failed_results() -> None:
    source = _BrokenSource([_route()])
    service = _service(source)

    deleted = service.request_delete("route-1")
    assert deleted.status == "failed"
    assert deleted.message == "ConnectionResetError: connection reset by peer"
    assert service.in_flight_route_ids() == frozenset()

    fetched = service.fetch_routes()
    assert fetched.status == "failed"
    assert fetched.routes == ()
    assert "TimeoutError" in (fetched.message or "")
