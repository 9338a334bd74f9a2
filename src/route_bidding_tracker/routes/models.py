"""Typed route and countdown models shared across the tracker."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..clock import ensure_utc

RouteStatus = Literal["INITIATED", "OPEN", "BOOKED", "COMPLETED", "CANCELLED"]
Bucket = Literal["active", "past"]
RouteAction = Literal["view_bids", "edit", "delete", "view_details", "track_delivery"]

ROUTE_STATUSES: tuple[str, ...] = get_args(RouteStatus)


class Route(BaseModel):
    """One driver route as returned by the route data service.

    ``status`` is kept as the raw (normalized) string rather than a closed
    literal: an unexpected value must reach the classifier, where it is
    reported, instead of dropping the whole record at parse time.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    id: str = Field(min_length=1)
    status: str
    departure_time: datetime
    bidding_end_time: datetime | None = None
    bid_count: int = Field(default=0, ge=0)
    highest_bid_amount: Decimal | None = Field(default=None, ge=0)

    origin_lat: float | None = None
    origin_lng: float | None = None
    destination_lat: float | None = None
    destination_lng: float | None = None
    origin_location_name: str | None = None
    destination_location_name: str | None = None
    bidding_start: datetime | None = None
    detour_tolerance_km: float | None = None
    suggested_price_min: Decimal | None = None
    suggested_price_max: Decimal | None = None
    total_distance_km: float | None = None
    estimated_duration_minutes: int | None = None
    route_polyline: str | None = None
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return str(value).strip()
        return value

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("bid_count", mode="before")
    @classmethod
    def missing_bid_count_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator(
        "departure_time",
        "bidding_end_time",
        "bidding_start",
        "created_at",
        mode="after",
    )
    @classmethod
    def ensure_timezone_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class Countdown(BaseModel):
    """Remaining time until a bidding window closes, as of one instant."""

    model_config = ConfigDict(frozen=True)

    remaining_millis: int = Field(ge=0)
    expired: bool
    display_text: str


class RouteViewEntry(BaseModel):
    """A route paired with its countdown and render-ready display fields."""

    model_config = ConfigDict(frozen=True)

    route: Route
    bucket: Bucket
    countdown: Countdown
    status_label: str
    actions: tuple[RouteAction, ...]
    origin_display: str
    destination_display: str
    countdown_banner: str | None
    bid_summary: str
    highest_bid_display: str
    departure_date_display: str
    departure_hour_display: str
