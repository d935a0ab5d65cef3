"""sushisync - client-side data synchronization for the sushi API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sushisync")
except PackageNotFoundError:
    __version__ = "0+local"
from sushisync._abort import AbortSignal
from sushisync._transport import HttpTransport, Transport
from sushisync.cache import CacheEntry, CacheStore, QueryStatus
from sushisync.config import SyncConfig
from sushisync.context import QueryView, Subscription, SyncContext
from sushisync.debounce import DebounceBuffer, LoopScheduler, Scheduler
from sushisync.exceptions import (
    FetchAborted,
    MutationError,
    NetworkError,
    SushiConfigError,
    SushiSyncError,
    ValidationError,
)
from sushisync.executor import RequestExecutor
from sushisync.keys import QueryKey, sushi_keys
from sushisync.location import LocationAdapter, MemoryLocation
from sushisync.models import (
    FilterState,
    SortOption,
    Sushi,
    SushiCreate,
    SushiType,
    TypeOption,
)
from sushisync.mutations import MutationCoordinator, MutationResult, Notification, NotificationKind
from sushisync.overlay import OverlayKind, Overlays, OverlaySlot, OverlayStore
from sushisync.service import SushiService
from sushisync.synchronizer import FilterSynchronizer

__all__ = [
    "__version__",
    "AbortSignal",
    "CacheEntry",
    "CacheStore",
    "DebounceBuffer",
    "FetchAborted",
    "FilterState",
    "FilterSynchronizer",
    "HttpTransport",
    "LocationAdapter",
    "LoopScheduler",
    "MemoryLocation",
    "MutationCoordinator",
    "MutationError",
    "MutationResult",
    "NetworkError",
    "Notification",
    "NotificationKind",
    "OverlayKind",
    "OverlaySlot",
    "OverlayStore",
    "Overlays",
    "QueryKey",
    "QueryStatus",
    "QueryView",
    "RequestExecutor",
    "Scheduler",
    "SortOption",
    "Subscription",
    "Sushi",
    "SushiConfigError",
    "SushiCreate",
    "SushiService",
    "SushiSyncError",
    "SushiType",
    "SyncConfig",
    "SyncContext",
    "Transport",
    "TypeOption",
    "ValidationError",
    "sushi_keys",
]
