"""Pydantic request models for write operations.

These models provide a consistent "validate → normalize → execute" flow.
They are used by :class:`sushisync.service.SushiService` before any
transport call is made.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sushisync.models.sushi import SushiType


class SushiCreate(BaseModel):
    """Payload for creating a sushi item.

    Every field is required regardless of ``type``; price is numeric
    with at most two decimal places.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    name: str = Field(min_length=1)
    image: str = Field(min_length=1)
    price: float = Field(ge=0)
    type: SushiType
    fish: str = Field(min_length=1)
    fish_type: str = Field(min_length=1)
    pieces: int = Field(gt=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("price", mode="before")
    @classmethod
    def _price_two_decimals(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("price must be a number")
        if isinstance(value, str):
            value = value.strip()
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError("price must be a valid number") from exc
        if not amount.is_finite():
            raise ValueError("price must be a valid number")
        if amount.as_tuple().exponent < -2:  # type: ignore[operator]
            raise ValueError("price must have at most two decimal places")
        return float(amount)

    def to_payload(self) -> dict[str, Any]:
        """Serialize with API (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)
