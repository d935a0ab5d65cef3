#!/usr/bin/env python3
"""Live sushisync check against a running sushi API.

Watches the list for the filters given on the command line, prints every
view transition, and optionally creates and deletes a throwaway item to
show invalidation-driven refetches.

Configuration comes from ``SUSHI_*`` environment variables
(``SUSHI_BASE_URL``, ``SUSHI_API_VERSION``, ...); see ``SyncConfig.from_env``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from sushisync import (  # noqa: E402
    HttpTransport,
    MemoryLocation,
    Notification,
    QueryView,
    SushiService,
    SyncConfig,
    SyncContext,
)
from sushisync.location import format_query  # noqa: E402
from sushisync.models import SORT_LABELS, TYPE_LABELS, FilterState  # noqa: E402


def _print_view(view: QueryView) -> None:
    if view.is_error:
        stale = f" (showing {len(view.data)} cached)" if view.data is not None else ""
        print(f"[{view.key}] error: {view.error}{stale}")
    elif view.is_loading:
        print(f"[{view.key}] loading...")
    elif view.is_fetching:
        print(f"[{view.key}] refreshing {len(view.data)} cached item(s)...")
    elif view.is_empty:
        print(f"[{view.key}] no sushi yet")
    elif view.is_success:
        for item in view.data:
            print(f"[{view.key}] {item.id:>4}  {item.name:<24} {item.type:<7} {item.price:>7.2f}")


def _print_filters(state: FilterState) -> None:
    search = f" matching {state.search!r}" if state.search else ""
    print(f"Showing {TYPE_LABELS[state.type]}{search}, sorted by {SORT_LABELS[state.sort_by]}")


def _print_notification(note: Notification) -> None:
    print(f"<{note.kind}> {note.message}")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch the sushi list through sushisync")
    parser.add_argument("--search", default="", help="Initial search filter.")
    parser.add_argument("--sort-by", default="name", choices=["name", "price"], help="Sort field.")
    parser.add_argument("--type", default="all", choices=["all", "Roll", "Nigiri"], help="Type filter.")
    parser.add_argument(
        "--roundtrip",
        action="store_true",
        help="Create then delete a test item to exercise list invalidation.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging for sushisync.")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    config = SyncConfig.from_env()
    location = MemoryLocation(format_query({"search": args.search, "sortBy": args.sort_by, "type": args.type}))

    async with HttpTransport(config) as transport, SyncContext(config) as context:
        context.on_notification(_print_notification)
        service = SushiService(context, transport, location)
        _print_filters(service.filters.state)
        subscription = service.watch_list(_print_view)
        try:
            await asyncio.sleep(0.5)
            if args.roundtrip:
                created = await service.create(
                    {
                        "name": "sushisync sample",
                        "image": "https://example.com/sample.jpg",
                        "price": "1.00",
                        "type": "Roll",
                        "fish": "None",
                        "fishType": "Test",
                        "pieces": 1,
                    }
                )
                await asyncio.sleep(0.5)
                if created.ok and created.data is not None:
                    await service.delete(created.data.id)
                    await asyncio.sleep(0.5)
                elif not created.ok:
                    return 1
            view = subscription.view
        finally:
            subscription.unsubscribe()
            service.close()

    return 1 if view.is_error else 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
