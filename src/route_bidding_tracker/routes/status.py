"""Route lifecycle status classification."""

from __future__ import annotations

from ..exceptions import UnknownRouteStatusError
from .models import Bucket, RouteAction

_BUCKET_BY_STATUS: dict[str, Bucket] = {
    "INITIATED": "active",
    "OPEN": "active",
    "BOOKED": "past",
    "COMPLETED": "past",
    "CANCELLED": "past",
}

_STATUS_LABELS: dict[str, str] = {
    "INITIATED": "Initiated",
    "OPEN": "Open for Bidding",
    "BOOKED": "Booked",
    "COMPLETED": "Completed",
    "CANCELLED": "Cancelled",
}

_ACTIVE_ACTIONS: tuple[RouteAction, ...] = ("view_bids", "edit", "delete")
_BOOKED_ACTIONS: tuple[RouteAction, ...] = ("view_details", "track_delivery")
_PAST_ACTIONS: tuple[RouteAction, ...] = ("view_details",)


def _normalize(status: object) -> str:
    if not isinstance(status, str):
        raise UnknownRouteStatusError(status)
    return status.strip().upper()


def classify_status(status: object) -> Bucket:
    """Map a lifecycle status to its display bucket.

    Raises UnknownRouteStatusError for anything outside the five known
    statuses; callers decide how to fail safe.
    """
    bucket = _BUCKET_BY_STATUS.get(_normalize(status))
    if bucket is None:
        raise UnknownRouteStatusError(status)
    return bucket


def is_countdown_eligible(status: object) -> bool:
    """Return True when the status shows a bidding countdown."""
    try:
        return classify_status(status) == "active"
    except UnknownRouteStatusError:
        return False


def status_label(status: object) -> str:
    """Human label for a status; unknown values are title-cased verbatim."""
    if not isinstance(status, str):
        return "Unknown"
    normalized = status.strip().upper()
    return _STATUS_LABELS.get(normalized, normalized.replace("_", " ").title() or "Unknown")


def available_actions(status: object) -> tuple[RouteAction, ...]:
    """Actions a driver can take on a route in this status."""
    try:
        bucket = classify_status(status)
    except UnknownRouteStatusError:
        return _PAST_ACTIONS
    if bucket == "active":
        return _ACTIVE_ACTIONS
    if _normalize(status) == "BOOKED":
        return _BOOKED_ACTIONS
    return _PAST_ACTIONS
