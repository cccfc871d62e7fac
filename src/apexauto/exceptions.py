"""Custom exception hierarchy for apexauto."""

from __future__ import annotations


class ApexError(Exception):
    """Base exception for all apexauto errors."""


class ApexConfigError(ApexError):
    """Invalid or missing configuration."""


class ApexValidationError(ApexError):
    """Local validation failed before any remote call was attempted."""

    def __init__(self, message: str, *, errors: dict[str, str] | None = None) -> None:
        self.errors = dict(errors or {})
        super().__init__(message)


class ApexTransportError(ApexError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

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


class ApexStoreError(ApexError):
    """The remote store rejected a read or write."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
        kind: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        self.kind = kind
        super().__init__(message)


class ApexRecordNotFoundError(ApexStoreError):
    """The addressed row does not exist (or was deleted remotely)."""


class ApexWriteTimeoutError(ApexStoreError):
    """A remote write did not complete within the configured bound.

    The editor treats this exactly like any other write failure: the
    local buffer is retained and the user may retry.
    """


class ApexStorageError(ApexError):
    """Object storage upload failure."""


class ApexRealtimeError(ApexError):
    """Realtime channel failure (join rejected, socket closed)."""
