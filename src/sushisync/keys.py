"""Canonical cache keys for sushi queries."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sushisync import _constants as const
from sushisync.models.filters import FILTER_FIELDS, FilterState

ParamsSnapshot = tuple[tuple[str, str], ...]


def canonical_params(params: Mapping[str, Any]) -> ParamsSnapshot:
    """Sorted ``(name, value)`` pairs with values stringified."""
    return tuple(sorted((str(name), str(value)) for name, value in params.items()))


@dataclass(frozen=True, eq=False)
class QueryKey:
    """``(resource, variant, params)`` identifier for a cacheable request.

    ``variant`` and ``params`` may be ``None`` to express a prefix used
    for invalidation, e.g. ``QueryKey("sushi", "list")`` matches every
    list entry.  Equality and hashing go through :attr:`canonical`.
    """

    resource: str
    variant: str | None = None
    params: ParamsSnapshot | None = None
    canonical: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.params, Mapping):
            object.__setattr__(self, "params", canonical_params(self.params))
        elif self.params is not None:
            object.__setattr__(self, "params", canonical_params(dict(self.params)))
        payload = [
            self.resource,
            self.variant,
            None if self.params is None else dict(self.params),
        ]
        object.__setattr__(
            self,
            "canonical",
            json.dumps(payload, separators=(",", ":"), sort_keys=True),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryKey):
            return NotImplemented
        return self.canonical == other.canonical

    def __hash__(self) -> int:
        return hash(self.canonical)

    def __str__(self) -> str:
        return self.canonical

    @property
    def is_prefix(self) -> bool:
        return self.variant is None or self.params is None

    def matches(self, prefix: QueryKey) -> bool:
        """Whether this key falls under ``prefix`` (``None`` parts are wildcards)."""
        if self.resource != prefix.resource:
            return False
        if prefix.variant is not None and self.variant != prefix.variant:
            return False
        return prefix.params is None or self.params == prefix.params


class SushiKeys:
    """Key factory for the sushi resource."""

    resource = const.RESOURCE

    def all(self) -> QueryKey:
        return QueryKey(self.resource)

    def lists(self) -> QueryKey:
        """Prefix matching every list entry regardless of filters."""
        return QueryKey(self.resource, "list")

    def list(self, filters: FilterState | None = None) -> QueryKey:
        """List key; fields equal to their default are omitted."""
        filters = filters or FilterState()
        params: dict[str, str] = {}
        for spec in FILTER_FIELDS:
            serialized = spec.serialize(getattr(filters, spec.attr))
            if serialized is not None:
                params[spec.key] = serialized
        return QueryKey(self.resource, "list", canonical_params(params))

    def detail(self, sushi_id: str) -> QueryKey:
        return QueryKey(self.resource, "detail", canonical_params({"id": sushi_id}))


sushi_keys = SushiKeys()
