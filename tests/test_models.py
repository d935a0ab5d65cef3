"""Tests for Pydantic model parsing with SushiBaseModel and the write payload."""

from __future__ import annotations

from datetime import UTC, datetime

import pydantic
import pytest

from sushisync.models import (
    SORT_LABELS,
    TYPE_LABELS,
    FilterState,
    SortOption,
    Sushi,
    SushiCreate,
    SushiType,
    TypeOption,
)
from sushisync.models._base import parse_timestamp

# ------------------------------------------------------------------
# Sushi
# ------------------------------------------------------------------


class TestSushi:
    def test_camel_case_payload(self) -> None:
        payload = {
            "id": "abc",
            "name": "Salmon Nigiri",
            "price": 4.5,
            "type": "Nigiri",
            "fishType": "Fresh",
            "pieces": 2,
            "fish": "Salmon",
            "image": "https://example.com/salmon.jpg",
            "createdAt": "2026-03-01T12:00:00Z",
        }

        item = Sushi.model_validate(payload)

        assert item.type == SushiType.NIGIRI
        assert item.fish_type == "Fresh"
        assert item.created_at == datetime(2026, 3, 1, 12, tzinfo=UTC)
        assert item.raw == payload

    def test_numeric_id_coerced(self) -> None:
        assert Sushi.model_validate({"id": 7}).id == "7"

    def test_blank_values_use_defaults(self) -> None:
        item = Sushi.model_validate({"id": "1", "fishType": "  ", "pieces": None})

        assert item.fish_type is None
        assert item.pieces is None
        assert item.name == ""

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            Sushi.model_validate({"id": "1", "type": "Sashimi"})


class TestParseTimestamp:
    def test_epoch_millis(self) -> None:
        assert parse_timestamp(1_767_225_600_000) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_naive_iso_assumed_utc(self) -> None:
        assert parse_timestamp("2026-01-01T00:00:00") == datetime(2026, 1, 1, tzinfo=UTC)

    def test_empty(self) -> None:
        assert parse_timestamp("") is None


# ------------------------------------------------------------------
# SushiCreate
# ------------------------------------------------------------------


def _form(**overrides: object) -> dict[str, object]:
    values: dict[str, object] = {
        "name": "Dragon Roll",
        "image": "https://example.com/dragon.jpg",
        "price": "12.50",
        "type": "Roll",
        "fish": "Eel",
        "fishType": "Grilled",
        "pieces": 8,
    }
    values.update(overrides)
    return values


class TestSushiCreate:
    def test_string_price_coerced(self) -> None:
        payload = SushiCreate.model_validate(_form())

        assert payload.price == 12.5
        assert payload.type == SushiType.ROLL

    def test_payload_uses_api_keys(self) -> None:
        created = datetime(2026, 1, 1, tzinfo=UTC)
        body = SushiCreate.model_validate(_form(createdAt=created)).to_payload()

        assert body["fishType"] == "Grilled"
        assert body["price"] == 12.5
        assert body["createdAt"].startswith("2026-01-01T00:00:00")
        assert "fish_type" not in body

    def test_created_at_defaults_to_now(self) -> None:
        before = datetime.now(UTC)

        payload = SushiCreate.model_validate(_form())

        assert payload.created_at >= before

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price": "12.555"},
            {"price": "abc"},
            {"price": -1},
            {"price": True},
            {"pieces": 0},
            {"name": "   "},
            {"fishType": ""},
            {"type": "Sashimi"},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict[str, object]) -> None:
        with pytest.raises(pydantic.ValidationError):
            SushiCreate.model_validate(_form(**overrides))

    def test_fields_required_regardless_of_type(self) -> None:
        values = _form(type="Nigiri")
        del values["pieces"]

        with pytest.raises(pydantic.ValidationError):
            SushiCreate.model_validate(values)


# ------------------------------------------------------------------
# FilterState
# ------------------------------------------------------------------


class TestFilterState:
    def test_defaults(self) -> None:
        state = FilterState()

        assert state.search == ""
        assert state.sort_by == SortOption.NAME
        assert state.type == TypeOption.ALL
        assert not state.has_active_filters

    def test_params_for_list_request(self) -> None:
        assert FilterState().to_params() == {"sortBy": "name"}
        assert FilterState(search="ika", type=TypeOption.ROLL).to_params() == {
            "search": "ika",
            "sortBy": "name",
            "type": "Roll",
        }

    def test_alias_accepted(self) -> None:
        assert FilterState.model_validate({"sortBy": "price"}).sort_by == SortOption.PRICE

    def test_out_of_domain_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            FilterState.model_validate({"type": "Maki"})

    def test_every_option_has_a_label(self) -> None:
        assert set(SORT_LABELS) == set(SortOption)
        assert set(TYPE_LABELS) == set(TypeOption)
        assert TYPE_LABELS[FilterState().type] == "All Types"
        assert SORT_LABELS[SortOption.PRICE] == "Price"
