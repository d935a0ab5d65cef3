"""Single-slot sheet and dialog state."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

_logger = logging.getLogger(__name__)

R = TypeVar("R")


class OverlayKind(StrEnum):
    SHEET = "sheet"
    DIALOG = "dialog"


@dataclass(frozen=True)
class OverlaySlot:
    """Snapshot of one overlay.

    ``content`` is an opaque handle such as ``"sushi-form"`` or
    ``"sushi-delete:42"``; the presentation layer maps it to a view.
    """

    kind: OverlayKind
    is_open: bool = False
    title: str | None = None
    description: str | None = None
    content: str | None = None


OverlayListener = Callable[[OverlaySlot], None]


class OverlayStore:
    """``closed -> open -> closed`` state machine for one overlay kind.

    Opening while open overwrites the payload; nothing is queued.
    Closing keeps the last content so a closing animation still has
    something to show.
    """

    def __init__(self, kind: OverlayKind) -> None:
        self._slot = OverlaySlot(kind=kind)
        self._listeners: list[OverlayListener] = []

    @property
    def state(self) -> OverlaySlot:
        return self._slot

    @property
    def is_open(self) -> bool:
        return self._slot.is_open

    def open(self, content: str, title: str, description: str | None = None) -> None:
        self._set(
            dataclasses.replace(
                self._slot,
                is_open=True,
                content=content,
                title=title,
                description=description,
            )
        )

    def close(self) -> None:
        if not self._slot.is_open:
            return
        self._set(dataclasses.replace(self._slot, is_open=False))

    def subscribe(self, listener: OverlayListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def render(self, table: Mapping[str, Callable[[OverlaySlot], R]]) -> R | None:
        """Dispatch the open slot's content handle through ``table``.

        Keys match the handle exactly, or as a prefix when they end with
        ``":"``.  Returns ``None`` when closed or unmatched.
        """
        slot = self._slot
        if not slot.is_open or slot.content is None:
            return None
        renderer = table.get(slot.content)
        if renderer is None:
            for handle, candidate in table.items():
                if handle.endswith(":") and slot.content.startswith(handle):
                    renderer = candidate
                    break
        if renderer is None:
            _logger.debug("No renderer for %s content %r", slot.kind, slot.content)
            return None
        return renderer(slot)

    def _set(self, slot: OverlaySlot) -> None:
        self._slot = slot
        for listener in list(self._listeners):
            try:
                listener(slot)
            except Exception:
                _logger.debug("Overlay listener failed", exc_info=True)


class Overlays:
    """The two process-wide overlay slots."""

    def __init__(self) -> None:
        self.sheet = OverlayStore(OverlayKind.SHEET)
        self.dialog = OverlayStore(OverlayKind.DIALOG)

    def __getitem__(self, kind: OverlayKind) -> OverlayStore:
        return self.sheet if kind == OverlayKind.SHEET else self.dialog
