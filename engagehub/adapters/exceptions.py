"""
engagehub.adapters.exceptions - Adapter Error Hierarchy

Every error raised inside a wrapped adapter operation is converted into a
failed AdapterResult by BaseAdapter.execute_operation(). The ``code``
attribute of these exceptions becomes ``AdapterResult.error.code``; any other
exception is reported as ``ADAPTER_ERROR``.

Example:
    >>> from engagehub.adapters.exceptions import AdapterNotFoundError
    >>>
    >>> raise AdapterNotFoundError("Employee not found or access denied")
"""

from typing import Any

ADAPTER_ERROR = "ADAPTER_ERROR"


class AdapterError(Exception):
    """Base exception for all adapter-layer errors."""

    code: str = ADAPTER_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details


class AdapterValidationError(AdapterError):
    """Raised when adapter input or output fails schema validation."""


class AdapterDisabledError(AdapterError):
    """Raised when an adapter's feature flag evaluates to disabled."""


class AdapterNotFoundError(AdapterError):
    """Raised when the entity an operation targets does not exist or is out of scope."""

    code = "NOT_FOUND"


class AdapterTimeoutError(AdapterError):
    """Raised when a wrapped operation exceeds the adapter's operation timeout."""

    code = "TIMEOUT"


class RateLimitedError(AdapterError):
    """Raised when an operation exceeds the adapter's configured rate limit."""

    code = "RATE_LIMITED"


__all__ = [
    "ADAPTER_ERROR",
    "AdapterDisabledError",
    "AdapterError",
    "AdapterNotFoundError",
    "AdapterTimeoutError",
    "AdapterValidationError",
    "RateLimitedError",
]
