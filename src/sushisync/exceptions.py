"""Custom exception hierarchy for sushisync."""

from __future__ import annotations


class SushiSyncError(Exception):
    """Base exception for all sushisync errors."""


class SushiConfigError(SushiSyncError):
    """Invalid or missing configuration."""


class NetworkError(SushiSyncError):
    """Transport-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FetchAborted(NetworkError):
    """The request was cancelled before it completed.

    Cancellation is an outcome, not a failure: the executor drops the
    result silently and never stores this on a cache entry.
    """


class ValidationError(SushiSyncError):
    """A persisted location value is outside its field's domain.

    Raised by the filter field parsers and always recovered by falling
    back to the field default.
    """

    def __init__(self, message: str, *, field: str = "", value: str = "") -> None:
        self.field = field
        self.value = value
        super().__init__(message)


class MutationError(SushiSyncError):
    """A write (create/delete) was rejected or failed in transit.

    ``message`` is safe to show to the user; the underlying transport
    error is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.message = message
        self.operation = operation
        super().__init__(message)
