"""Sushi item model."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from sushisync.models._base import SushiBaseModel, Timestamp


class SushiType(StrEnum):
    NIGIRI = "Nigiri"
    ROLL = "Roll"


class Sushi(SushiBaseModel):
    """A sushi item as returned by the list and detail endpoints."""

    id: str
    name: str = ""
    price: float = 0.0
    type: SushiType = SushiType.NIGIRI
    fish_type: str | None = None
    """Preparation of the fish (e.g. ``"Fresh"``)."""
    pieces: int | None = Field(default=None, ge=0)
    created_at: Timestamp = None
    fish: str = ""
    image: str = ""
    """Image URL."""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Some backends hand out numeric ids.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
