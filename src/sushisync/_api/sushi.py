"""Sushi REST endpoints.

Thin wrappers that shape requests and validate responses into models.
HTTP details stay in the transport.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import pydantic

from sushisync import _constants as const
from sushisync._abort import AbortSignal
from sushisync._transport import Transport
from sushisync.exceptions import NetworkError
from sushisync.models.requests import SushiCreate
from sushisync.models.sushi import Sushi

_logger = logging.getLogger(__name__)


def _parse_item(payload: Any, endpoint: str) -> Sushi:
    if not isinstance(payload, dict):
        raise NetworkError(f"Unexpected payload from {endpoint}: {type(payload).__name__}", endpoint=endpoint)
    try:
        return Sushi.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise NetworkError(f"Malformed sushi item from {endpoint}: {exc}", endpoint=endpoint) from exc


async def fetch_sushi(
    transport: Transport,
    params: Mapping[str, str],
    signal: AbortSignal | None = None,
) -> list[Sushi]:
    """List items, filtered and sorted server-side by ``params``."""
    endpoint = const.SUSHI_LIST_PATH
    data = await transport.request("GET", endpoint, params=dict(params), signal=signal)
    if data is None:
        return []
    if not isinstance(data, list):
        raise NetworkError(f"Expected a list from {endpoint}, got {type(data).__name__}", endpoint=endpoint)
    return [_parse_item(item, endpoint) for item in data]


async def fetch_sushi_by_id(
    transport: Transport,
    sushi_id: str,
    signal: AbortSignal | None = None,
) -> Sushi:
    endpoint = const.sushi_item_path(sushi_id)
    data = await transport.request("GET", endpoint, signal=signal)
    return _parse_item(data, endpoint)


async def create_sushi(transport: Transport, payload: SushiCreate) -> Sushi | None:
    """Create an item; returns the server's copy when it echoes one."""
    endpoint = const.SUSHI_CREATE_PATH
    data = await transport.request("POST", endpoint, json=payload.to_payload())
    if data is None:
        return None
    return _parse_item(data, endpoint)


async def delete_sushi(transport: Transport, sushi_id: str) -> None:
    endpoint = const.sushi_item_path(sushi_id)
    await transport.request("DELETE", endpoint)
    _logger.debug("Deleted sushi %s", sushi_id)
