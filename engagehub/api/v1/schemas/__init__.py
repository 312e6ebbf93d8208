"""
engagehub.api.v1.schemas - API Request/Response Schemas
"""

from engagehub.api.v1.schemas.adapters import (
    AdapterHealthResponse,
    AdapterMetricsResponse,
    ConfigureAdaptersRequest,
    DemoResponse,
    DisableAdapterRequest,
    EnableAdapterRequest,
    MigrateAdaptersRequest,
    RolloutResponse,
)

__all__ = [
    "AdapterHealthResponse",
    "AdapterMetricsResponse",
    "ConfigureAdaptersRequest",
    "DemoResponse",
    "DisableAdapterRequest",
    "EnableAdapterRequest",
    "MigrateAdaptersRequest",
    "RolloutResponse",
]
