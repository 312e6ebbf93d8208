"""
engagehub.adapters.types - Adapter Envelope, Context and Config Types

Common types every adapter operation consumes or returns:
- AdapterContext: per-request identity used for flag evaluation and log correlation
- AdapterConfig: static per-adapter configuration (defaults applied once)
- AdapterResult: uniform success/failure envelope
- PaginatedResult / Page / PaginationInfo: list operations
- OperationMetrics / HealthStatus: observability snapshots

Field names are snake_case in Python and camelCase on the wire
(``model_dump(by_alias=True)``).
"""

import math
import random
import string
import time
from datetime import UTC, datetime
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

HealthState = Literal["healthy", "degraded", "unhealthy"]

_REQUEST_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_request_id() -> str:
    """Return a request id of the form ``req_<epoch-millis>_<9 random chars>``."""
    suffix = "".join(random.choices(_REQUEST_ID_ALPHABET, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


class WireModel(BaseModel):
    """Base for models serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Context and configuration
# ============================================================================


class AdapterContext(WireModel):
    """
    Identity and correlation data for one adapter operation.

    Immutable once created. ``request_id`` is generated when absent.

    Example:
        >>> context = AdapterContext(user_id=7, organization_id=42)
        >>> context.request_id.startswith("req_")
        True
    """

    model_config = ConfigDict(frozen=True)

    user_id: int | None = None
    organization_id: int | None = None
    request_id: str = Field(default_factory=generate_request_id)
    ip_address: str | None = None
    user_agent: str | None = None
    operation_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("request_id", mode="before")
    @classmethod
    def _default_request_id(cls, value: Any) -> Any:
        return value or generate_request_id()


class AdapterConfig(WireModel):
    """
    Static configuration for an adapter instance.

    ``cache_ttl`` is in seconds, ``rate_limit_window`` in milliseconds and
    ``operation_timeout`` in seconds (``None`` disables the timeout).
    """

    model_config = ConfigDict(frozen=True)

    adapter_name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    feature_flag: str | None = None

    cache_enabled: bool = False
    cache_ttl: int = Field(default=300, ge=0)

    fallback_enabled: bool = False
    fallback_adapter: str | None = None

    rate_limit_enabled: bool = False
    rate_limit_max: int = Field(default=100, ge=1)
    rate_limit_window: int = Field(default=60_000, ge=1)

    operation_timeout: float | None = Field(default=30.0, gt=0)


# ============================================================================
# Result envelope
# ============================================================================


class AdapterErrorInfo(WireModel):
    """Error payload of a failed AdapterResult."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class ResultMetadata(WireModel):
    """Execution metadata attached to every AdapterResult."""

    execution_time: int = Field(default=0, ge=0, description="Milliseconds")
    cache_hit: bool = False
    fallback_used: bool = False
    adapter_version: str | None = None


class AdapterResult(WireModel, Generic[T]):
    """
    Uniform result envelope for adapter operations.

    Exactly one of the two shapes holds:
    - ``success=True``: ``error`` is None (``data`` may legitimately be None)
    - ``success=False``: ``error`` is set and ``data`` is None
    """

    success: bool
    data: T | None = None
    error: AdapterErrorInfo | None = None
    metadata: ResultMetadata | None = None

    @model_validator(mode="after")
    def _check_envelope(self) -> "AdapterResult[T]":
        if self.success and self.error is not None:
            raise ValueError("successful result must not carry an error")
        if not self.success:
            if self.error is None:
                raise ValueError("failed result must carry an error")
            if self.data is not None:
                raise ValueError("failed result must not carry data")
        return self

    @classmethod
    def ok(cls, data: Any, metadata: ResultMetadata | None = None) -> "AdapterResult[Any]":
        """Build a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        metadata: ResultMetadata | None = None,
    ) -> "AdapterResult[Any]":
        """Build a failed result."""
        return cls(
            success=False,
            error=AdapterErrorInfo(code=code, message=message, details=details),
            metadata=metadata,
        )


class PaginationInfo(WireModel):
    """Pagination block of a PaginatedResult."""

    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "PaginationInfo":
        """
        Derive the pagination block from page, limit and total count.

        Raises:
            ValueError: If limit is not positive.
        """
        if limit <= 0:
            raise ValueError("limit must be positive")
        total_pages = math.ceil(total_count / limit)
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class Page(BaseModel, Generic[T]):
    """What a paginated wrapped operation returns: one page of items plus pagination."""

    items: list[T]
    pagination: PaginationInfo


class PaginatedResult(AdapterResult[list[T]], Generic[T]):
    """AdapterResult over a list, with a pagination block on success."""

    pagination: PaginationInfo | None = None

    @classmethod
    def from_page_result(cls, result: AdapterResult[Any]) -> "PaginatedResult[Any]":
        """Lift an ``AdapterResult[Page[T]]`` into a ``PaginatedResult[T]``."""
        if not result.success:
            return cls(success=False, error=result.error, metadata=result.metadata)

        page = result.data
        if page is None:
            return cls(success=True, data=[], metadata=result.metadata)
        return cls(
            success=True,
            data=list(page.items),
            metadata=result.metadata,
            pagination=page.pagination,
        )


# ============================================================================
# Observability
# ============================================================================


class OperationMetrics(WireModel):
    """Aggregates over one operation's recent execution-time samples (ms)."""

    operation_count: int
    average_time: int
    min_time: int
    max_time: int
    last_execution_time: int


class HealthStatus(WireModel):
    """Health snapshot of one adapter instance."""

    status: HealthState
    adapter_name: str
    version: str
    uptime: float = Field(..., description="Seconds since the adapter was constructed")
    operation_count: int
    average_response_time: int
    error_rate: float = Field(..., ge=0.0, le=1.0)


__all__ = [
    "AdapterConfig",
    "AdapterContext",
    "AdapterErrorInfo",
    "AdapterResult",
    "HealthState",
    "HealthStatus",
    "OperationMetrics",
    "Page",
    "PaginatedResult",
    "PaginationInfo",
    "ResultMetadata",
    "WireModel",
    "generate_request_id",
]
