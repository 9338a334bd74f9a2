"""Typed results for route commands."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from ..routes.models import Route

DeleteStatus = Literal[
    "deleted",
    "not_found",
    "forbidden",
    "unavailable",
    "already_in_progress",
    "failed",
]
FetchStatus = Literal["ok", "unavailable", "failed"]


class DeleteResult(BaseModel):
    """Outcome of one delete request, surfaced verbatim to the caller."""

    model_config = ConfigDict(frozen=True)

    route_id: str
    status: DeleteStatus
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "deleted"


class FetchResult(BaseModel):
    """Outcome of fetching a driver's routes."""

    model_config = ConfigDict(frozen=True)

    driver_id: str
    status: FetchStatus
    routes: tuple[Route, ...] = ()
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"
