"""Typed list filters and their persisted-location parsers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from sushisync.exceptions import ValidationError

T = TypeVar("T")


class SortOption(StrEnum):
    NAME = "name"
    PRICE = "price"


class TypeOption(StrEnum):
    ALL = "all"
    ROLL = "Roll"
    NIGIRI = "Nigiri"


SORT_LABELS: dict[SortOption, str] = {
    SortOption.PRICE: "Price",
    SortOption.NAME: "Name",
}

TYPE_LABELS: dict[TypeOption, str] = {
    TypeOption.ALL: "All Types",
    TypeOption.ROLL: "Roll",
    TypeOption.NIGIRI: "Nigiri",
}


class FilterState(BaseModel):
    """Fully populated list filter state.

    Unset fields always hold their declared default; values outside a
    field's domain are rejected at construction.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    search: str = ""
    sort_by: SortOption = Field(default=SortOption.NAME, alias="sortBy")
    type: TypeOption = TypeOption.ALL

    @property
    def has_active_filters(self) -> bool:
        return self != FilterState()

    def to_params(self) -> dict[str, str]:
        """Request params for the list endpoint.

        ``search`` only when non-empty, ``sortBy`` always, ``type`` only
        when narrowing.
        """
        params: dict[str, str] = {}
        if self.search:
            params["search"] = self.search
        params["sortBy"] = self.sort_by.value
        if self.type != TypeOption.ALL:
            params["type"] = self.type.value
        return params


@dataclass(frozen=True)
class FilterField(Generic[T]):
    """Parser for one persisted filter key."""

    key: str
    attr: str
    default: T
    parse: Callable[[str], T]

    def read(self, raw: str | None) -> T:
        if raw is None:
            return self.default
        return self.parse(raw)

    def serialize(self, value: Any) -> str | None:
        """Persisted form, or ``None`` when the value equals the default."""
        if value == self.default:
            return None
        return str(value.value if isinstance(value, StrEnum) else value)


def _parse_string(raw: str) -> str:
    return raw


def _enum_parser(key: str, enum_cls: type[StrEnum]) -> Callable[[str], Any]:
    def _parse(raw: str) -> Any:
        try:
            return enum_cls(raw)
        except ValueError as exc:
            raise ValidationError(
                f"{raw!r} is not a valid {key}",
                field=key,
                value=raw,
            ) from exc

    return _parse


FILTER_FIELDS: tuple[FilterField[Any], ...] = (
    FilterField(key="search", attr="search", default="", parse=_parse_string),
    FilterField(
        key="sortBy",
        attr="sort_by",
        default=SortOption.NAME,
        parse=_enum_parser("sortBy", SortOption),
    ),
    FilterField(
        key="type",
        attr="type",
        default=TypeOption.ALL,
        parse=_enum_parser("type", TypeOption),
    ),
)
"""Recognized persisted keys in canonical order."""
