"""Immutable records delivered by the refresh loop."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..routes.models import Bucket, RouteViewEntry

LoopState = Literal["idle", "running"]


class RouteSnapshot(BaseModel):
    """The render-ready route list for one bucket as of one tick."""

    model_config = ConfigDict(frozen=True)

    bucket: Bucket
    generated_at: datetime
    tick_index: int = Field(ge=0)
    entries: tuple[RouteViewEntry, ...] = ()

    @property
    def route_ids(self) -> tuple[str, ...]:
        return tuple(entry.route.id for entry in self.entries)


class RefreshFailure(BaseModel):
    """A tick whose route fetch failed; the loop keeps running."""

    model_config = ConfigDict(frozen=True)

    bucket: Bucket
    occurred_at: datetime
    tick_index: int = Field(ge=0)
    error_type: str
    message: str
