"""Sushi feature facade: filters, queries, mutations and overlays wired together."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sushisync import _constants as const
from sushisync._abort import AbortSignal
from sushisync._api import sushi as _sushi_api
from sushisync._transport import Transport
from sushisync.context import QueryListener, Subscription, SyncContext
from sushisync.debounce import Scheduler
from sushisync.executor import FetchFn
from sushisync.keys import sushi_keys
from sushisync.location import LocationAdapter
from sushisync.models.filters import FilterState
from sushisync.models.requests import SushiCreate
from sushisync.models.sushi import Sushi
from sushisync.mutations import MutationResult
from sushisync.synchronizer import FilterSynchronizer

_logger = logging.getLogger(__name__)


class SushiService:
    """What the sushi pages do, minus the rendering.

    The list watch follows the committed filters: when they change the
    watch moves to the new key and the old key's in-flight fetch is
    abandoned.
    """

    def __init__(
        self,
        context: SyncContext,
        transport: Transport,
        location: LocationAdapter,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.context = context
        self._transport = transport
        self.filters = FilterSynchronizer(
            location,
            search_debounce_ms=context.config.search_debounce_ms,
            scheduler=scheduler,
        )

    def close(self) -> None:
        """Detach from the location and drop any pending search commit."""
        self.filters.dispose()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _list_fetcher(self, filters: FilterState) -> FetchFn:
        params = filters.to_params()

        async def _fetch(signal: AbortSignal) -> list[Sushi]:
            return await _sushi_api.fetch_sushi(self._transport, params, signal)

        return _fetch

    def _detail_fetcher(self, sushi_id: str) -> FetchFn:
        async def _fetch(signal: AbortSignal) -> Sushi:
            return await _sushi_api.fetch_sushi_by_id(self._transport, sushi_id, signal)

        return _fetch

    def watch_list(self, listener: QueryListener) -> Subscription:
        """Watch the list for the current filters, following filter changes."""
        filters = self.filters.state
        subscription = self.context.watch(sushi_keys.list(filters), self._list_fetcher(filters), listener)

        def _on_filters(state: FilterState) -> None:
            if subscription.active:
                subscription.change_key(sushi_keys.list(state), self._list_fetcher(state))

        subscription.on_close(self.filters.subscribe(_on_filters))
        return subscription

    def watch_detail(self, sushi_id: str, listener: QueryListener) -> Subscription:
        return self.context.watch(sushi_keys.detail(sushi_id), self._detail_fetcher(sushi_id), listener)

    async def get_list(self) -> list[Sushi]:
        """One-shot list read for the current filters.

        Raises the stored fetch error when there is no data to return.
        """
        filters = self.filters.state
        entry = await self.context.fetch(sushi_keys.list(filters), self._list_fetcher(filters))
        if entry.data is None and entry.error is not None:
            raise entry.error
        return list(entry.data or [])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, values: SushiCreate | Mapping[str, Any]) -> MutationResult[Sushi | None]:
        """Create an item, refresh every list and close the form sheet.

        Raises :class:`pydantic.ValidationError` for invalid ``values``;
        no request is made in that case.
        """
        payload = values if isinstance(values, SushiCreate) else SushiCreate.model_validate(values)
        result = await self.context.mutations.run(
            lambda: _sushi_api.create_sushi(self._transport, payload),
            invalidate=[sushi_keys.lists()],
            success_message=const.msg_created(const.TITLE),
            operation="create",
        )
        if result.ok:
            self.context.overlays.sheet.close()
        return result

    async def delete(self, sushi_id: str) -> MutationResult[None]:
        """Delete an item, refresh lists and its detail, close the dialog."""
        result = await self.context.mutations.run(
            lambda: _sushi_api.delete_sushi(self._transport, sushi_id),
            invalidate=[sushi_keys.lists(), sushi_keys.detail(sushi_id)],
            success_message=const.msg_deleted(const.TITLE),
            operation="delete",
        )
        if result.ok:
            self.context.overlays.dialog.close()
        return result

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def open_create_form(self) -> None:
        self.context.overlays.sheet.open(const.SUSHI_FORM_HANDLE, title=const.msg_add(const.TITLE))

    def confirm_delete(self, sushi_id: str, name: str) -> None:
        self.context.overlays.dialog.open(
            f"{const.SUSHI_DELETE_HANDLE_PREFIX}{sushi_id}",
            title=const.CONFIRM_DELETE_TITLE,
            description=const.msg_confirm_delete(name),
        )
