"""
engagehub.api.v1.schemas.adapters - Adapter API Schemas

Request and response bodies for adapter observability, rollout
administration and the demo routes. Serialized with camelCase aliases
like the adapter result envelope.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from engagehub.adapters.factory import AdapterRolloutConfig, AdapterType, MigrationStrategy
from engagehub.adapters.types import (
    AdapterErrorInfo,
    HealthStatus,
    OperationMetrics,
    PaginationInfo,
    ResultMetadata,
    WireModel,
)

# ============================================================================
# Observability
# ============================================================================


class AdapterHealthResponse(WireModel):
    """Health of every adapter."""

    adapters: dict[str, HealthStatus]
    timestamp: datetime
    system_uptime: float = Field(..., description="Seconds since the API process started")


class AdapterMetricsResponse(WireModel):
    """Per-operation metrics of one adapter."""

    adapter_type: AdapterType
    metrics: dict[str, OperationMetrics]
    timestamp: datetime


# ============================================================================
# Rollout administration
# ============================================================================


class EnableAdapterRequest(WireModel):
    adapter_type: AdapterType
    rollout_percentage: int = Field(default=100, ge=0, le=100)


class DisableAdapterRequest(WireModel):
    adapter_type: AdapterType


class ConfigureAdaptersRequest(WireModel):
    """Desired state per adapter type; omitted types are left unchanged."""

    adapters: dict[AdapterType, AdapterRolloutConfig]


class MigrateAdaptersRequest(WireModel):
    strategy: MigrationStrategy
    rollout_percentage: int = Field(default=10, ge=0, le=100)


class RolloutResponse(WireModel):
    success: bool = True
    organization_id: int
    message: str


# ============================================================================
# Demo routes
# ============================================================================


class DemoResponse(WireModel):
    """
    Demo route body.

    ``adapter_used`` is False when the adapter was disabled by its feature
    flag and the route fell back to an empty result.
    """

    success: bool
    adapter_used: bool
    message: str | None = None
    data: Any = None
    pagination: PaginationInfo | None = None
    error: AdapterErrorInfo | None = None
    metadata: ResultMetadata | None = None
