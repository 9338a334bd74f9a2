"""Filter, order and decorate a driver's routes for one display bucket."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime, tzinfo
from decimal import Decimal

from ..clock import ensure_utc
from ..exceptions import UnknownRouteStatusError
from .countdown import ENDED, calculate_countdown
from .models import Bucket, Countdown, Route, RouteViewEntry
from .status import available_actions, classify_status, status_label

UnknownStatusHandler = Callable[[Route, UnknownRouteStatusError], None]


def format_currency(amount: Decimal | float, symbol: str = "$") -> str:
    """Format a monetary amount with thousands separators and two decimals."""
    return f"{symbol}{Decimal(str(amount)):,.2f}"


def location_display(
    name: str | None,
    lat: float | None,
    lng: float | None,
    *,
    fallback: str,
) -> str:
    """Prefer the geocoded name, then raw coordinates, then ``fallback``."""
    if name and name.strip():
        return name.strip()
    if lat is not None and lng is not None:
        return f"{lat}, {lng}"
    return fallback


def countdown_banner(countdown: Countdown, bucket: Bucket) -> str | None:
    """Banner text shown under an active route; None when no countdown is shown."""
    if bucket != "active":
        return None
    if countdown.expired:
        return "Bidding Ended"
    return f"Ends in: {countdown.display_text}"


def highest_bid_display(route: Route, currency_symbol: str = "$") -> str:
    if route.highest_bid_amount is not None and route.highest_bid_amount > 0:
        return format_currency(route.highest_bid_amount, currency_symbol)
    return "No bids yet"


def resolve_bucket(
    route: Route,
    on_unknown_status: UnknownStatusHandler | None = None,
) -> Bucket:
    """Classify a route, falling back to ``past`` for unknown statuses."""
    try:
        return classify_status(route.status)
    except UnknownRouteStatusError as exc:
        if on_unknown_status is not None:
            on_unknown_status(route, exc)
        return "past"


def sort_routes(routes: Iterable[Route]) -> list[Route]:
    """Newest departure first; equal departures ordered by id ascending."""
    by_id = sorted(routes, key=lambda route: route.id)
    # Stable sort: the id order survives within equal departure times.
    return sorted(by_id, key=lambda route: route.departure_time, reverse=True)


def build_entry(
    route: Route,
    bucket: Bucket,
    now: datetime,
    *,
    currency_symbol: str = "$",
    display_tz: tzinfo = UTC,
) -> RouteViewEntry:
    """Attach countdown and display fields to one already-classified route."""
    countdown = calculate_countdown(route.bidding_end_time, now) if bucket == "active" else ENDED
    departure = route.departure_time.astimezone(display_tz)
    return RouteViewEntry(
        route=route,
        bucket=bucket,
        countdown=countdown,
        status_label=status_label(route.status),
        actions=available_actions(route.status),
        origin_display=location_display(
            route.origin_location_name,
            route.origin_lat,
            route.origin_lng,
            fallback="Unknown origin",
        ),
        destination_display=location_display(
            route.destination_location_name,
            route.destination_lat,
            route.destination_lng,
            fallback="Unknown destination",
        ),
        countdown_banner=countdown_banner(countdown, bucket),
        bid_summary=f"{route.bid_count} Bids",
        highest_bid_display=highest_bid_display(route, currency_symbol),
        departure_date_display=departure.strftime("%a, %b %d, %Y"),
        departure_hour_display=departure.strftime("%I:%M %p"),
    )


def view(
    routes: Iterable[Route],
    bucket: Bucket,
    now: datetime,
    *,
    on_unknown_status: UnknownStatusHandler | None = None,
    currency_symbol: str = "$",
    display_tz: tzinfo = UTC,
) -> tuple[RouteViewEntry, ...]:
    """Return the ordered, countdown-annotated routes belonging to ``bucket``.

    Pure apart from ``on_unknown_status``, which receives every route whose
    status could not be classified; such routes are shown as ``past``.
    """
    now = ensure_utc(now)
    selected = [
        route for route in routes if resolve_bucket(route, on_unknown_status) == bucket
    ]
    return tuple(
        build_entry(
            route,
            bucket,
            now,
            currency_symbol=currency_symbol,
            display_tz=display_tz,
        )
        for route in sort_routes(selected)
    )
