"""HTTP transport for the sushi REST API."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from sushisync._abort import AbortSignal
from sushisync._constants import USER_AGENT
from sushisync.config import SyncConfig
from sushisync.exceptions import FetchAborted, NetworkError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the API modules.

    Tests pass in-memory doubles; production uses :class:`HttpTransport`.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        signal: AbortSignal | None = None,
    ) -> Any: ...


class HttpTransport:
    """JSON-over-HTTP transport built on :mod:`aiohttp`.

    Usage::

        async with HttpTransport(config) as transport:
            items = await fetch_sushi(transport, {}, AbortSignal())
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http = session

    async def __aenter__(self) -> HttpTransport:
        if self._http is None:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise NetworkError("Transport not initialized. Use 'async with HttpTransport(...)'")
        return self._http

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        signal: AbortSignal | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty).

        Raises
        ------
        FetchAborted
            ``signal`` fired before or during the request.
        NetworkError
            Connection failure, timeout, non-2xx status or invalid JSON.
        """
        if signal is None:
            return await self._send(method, path, params=params, body=json)

        signal.raise_if_aborted(path)
        send = asyncio.ensure_future(self._send(method, path, params=params, body=json))
        aborted = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({send, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            aborted.cancel()
            if not send.done():
                send.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await send
        if signal.aborted and (send.cancelled() or not send.done()):
            _logger.debug("%s %s aborted", method, path)
            raise FetchAborted(f"{method} {path} aborted: {signal.reason}", endpoint=path)
        return send.result()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None,
        body: Any,
    ) -> Any:
        http = self._require_session()
        url = f"{self._config.api_base_url}{path}"
        headers = {"accept": "application/json", "user-agent": USER_AGENT}

        _logger.debug("%s %s params=%s", method, url, dict(params or {}))

        try:
            async with http.request(method, url, params=params, json=body, headers=headers) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise NetworkError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=path,
                    )
        except NetworkError:
            raise
        except aiohttp.ClientError as exc:
            raise NetworkError(f"Request to {path} failed: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise NetworkError(f"Request to {path} timed out", endpoint=path) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise NetworkError(
                f"Invalid JSON from {path}: {text[:200]}",
                status_code=resp.status,
                endpoint=path,
            ) from exc
