"""Data models for the sushi API and list filters."""

from sushisync.models._base import SushiBaseModel, Timestamp, parse_timestamp
from sushisync.models.filters import (
    FILTER_FIELDS,
    SORT_LABELS,
    TYPE_LABELS,
    FilterField,
    FilterState,
    SortOption,
    TypeOption,
)
from sushisync.models.requests import SushiCreate
from sushisync.models.sushi import Sushi, SushiType

__all__ = [
    "FILTER_FIELDS",
    "SORT_LABELS",
    "TYPE_LABELS",
    "FilterField",
    "FilterState",
    "SortOption",
    "Sushi",
    "SushiBaseModel",
    "SushiCreate",
    "SushiType",
    "Timestamp",
    "TypeOption",
    "parse_timestamp",
]
