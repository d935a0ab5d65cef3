"""Write operations followed by cache invalidation."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from sushisync import _constants as const
from sushisync.cache.store import CacheStore
from sushisync.exceptions import MutationError
from sushisync.keys import QueryKey

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class NotificationKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """Outcome message for the presentation layer (rendered as a toast)."""

    kind: NotificationKind
    message: str


NotifyFn = Callable[[Notification], None]


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    data: T | None = None
    error: MutationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> T | None:
        if self.error is not None:
            raise self.error
        return self.data


class MutationCoordinator:
    """Runs a write, then invalidates, then notifies.

    Invalidation only ever happens after the write has succeeded; a
    failed write leaves the cache exactly as it was.
    """

    def __init__(self, cache: CacheStore, notify: NotifyFn | None = None) -> None:
        self._cache = cache
        self._notify = notify

    async def run(
        self,
        write_fn: Callable[[], Awaitable[T]],
        *,
        invalidate: Sequence[QueryKey] = (),
        success_message: str | None = None,
        operation: str = "",
    ) -> MutationResult[T]:
        try:
            data = await write_fn()
        except Exception as exc:
            message = str(exc) or const.ERROR_GENERIC
            error = MutationError(message, operation=operation)
            error.__cause__ = exc
            _logger.debug("Mutation %s failed: %s", operation or "<write>", message)
            self._emit(Notification(NotificationKind.ERROR, message))
            return MutationResult(error=error)

        for prefix in invalidate:
            self._cache.invalidate(prefix)
        if success_message:
            self._emit(Notification(NotificationKind.SUCCESS, success_message))
        return MutationResult(data=data)

    def _emit(self, notification: Notification) -> None:
        if self._notify is None:
            return
        try:
            self._notify(notification)
        except Exception:
            _logger.debug("Notification listener failed", exc_info=True)
