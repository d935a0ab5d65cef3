"""Client configuration for sushisync."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from sushisync import _constants as const
from sushisync.exceptions import SushiConfigError


def _parse_number(env_key: str, raw: str, cast: Callable[[str], Any]) -> Any:
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise SushiConfigError(f"{env_key} must be numeric, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        API host, e.g. ``"https://api.example.com"``.
    api_version : str
        Version path segment appended to ``base_url``.  Empty to disable.
    search_debounce_ms : int
        Quiet period before a typed search term is written to the location.
    stale_after : float
        Seconds a successful fetch is served from cache without a
        network call.
    gc_idle : float
        Seconds an entry without subscribers survives before ``sweep``
        removes it.
    sweep_interval : float
        Seconds between background garbage-collection sweeps.
    retry_count : int
        Automatic retries of a failed fetch before it is surfaced.
    retry_delay : float
        Seconds to wait before each retry.
    request_timeout : float
        Total HTTP timeout per request in seconds.
    """

    base_url: str = const.BASE_URL
    api_version: str = const.API_VERSION
    search_debounce_ms: int = const.SEARCH_DEBOUNCE_MS
    stale_after: float = const.STALE_AFTER_SECONDS
    gc_idle: float = const.GC_IDLE_SECONDS
    sweep_interval: float = const.SWEEP_INTERVAL_SECONDS
    retry_count: int = const.RETRY_COUNT
    retry_delay: float = const.RETRY_DELAY_SECONDS
    request_timeout: float = const.REQUEST_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise SushiConfigError("retry_count must be >= 0")
        if self.search_debounce_ms < 0:
            raise SushiConfigError("search_debounce_ms must be >= 0")
        if self.stale_after < 0 or self.gc_idle < 0:
            raise SushiConfigError("cache windows must be >= 0")
        if self.sweep_interval <= 0:
            raise SushiConfigError("sweep_interval must be > 0")

    @property
    def api_base_url(self) -> str:
        """``base_url`` joined with ``api_version`` without doubled slashes."""
        parts = [self.base_url.rstrip("/")]
        version = self.api_version.strip("/")
        if version:
            parts.append(version)
        return "/".join(parts)

    @property
    def stale_after_delta(self) -> timedelta:
        return timedelta(seconds=self.stale_after)

    @property
    def gc_idle_delta(self) -> timedelta:
        return timedelta(seconds=self.gc_idle)

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads optional ``SUSHI_*`` variables.  Explicit keyword arguments
        override environment values.

        Raises
        ------
        SushiConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "SUSHI_BASE_URL": "base_url",
            "SUSHI_API_VERSION": "api_version",
        }
        _ENV_NUM_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "SUSHI_SEARCH_DEBOUNCE_MS": ("search_debounce_ms", int),
            "SUSHI_STALE_AFTER": ("stale_after", float),
            "SUSHI_GC_IDLE": ("gc_idle", float),
            "SUSHI_SWEEP_INTERVAL": ("sweep_interval", float),
            "SUSHI_RETRY_COUNT": ("retry_count", int),
            "SUSHI_RETRY_DELAY": ("retry_delay", float),
            "SUSHI_REQUEST_TIMEOUT": ("request_timeout", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, cast) in _ENV_NUM_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(env_key, val, cast)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
