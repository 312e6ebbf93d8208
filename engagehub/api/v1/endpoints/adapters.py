"""
engagehub.api.v1.endpoints.adapters - Adapter Observability and Rollout Endpoints

- GET  /adapters/health: health snapshot of every adapter
- GET  /adapters/{adapter_type}/metrics: per-operation metrics
- POST /adapters/organizations/{organization_id}/enable|disable|configure|migrate:
  organization rollout administration (admin only)
"""

import logging
import time
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status

from engagehub.adapters.factory import AdapterType
from engagehub.api.deps import Factory, RequireAdmin
from engagehub.api.v1.schemas.adapters import (
    AdapterHealthResponse,
    AdapterMetricsResponse,
    ConfigureAdaptersRequest,
    DisableAdapterRequest,
    EnableAdapterRequest,
    MigrateAdaptersRequest,
    RolloutResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_PROCESS_STARTED = time.monotonic()


def _rollout_failed(action: str, organization_id: int, error: Exception) -> HTTPException:
    logger.error(
        f"Adapter {action} failed for organization {organization_id}: {error}",
        extra={"organization_id": organization_id},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action} adapters for organization {organization_id}",
    )


@router.get("/health", response_model=AdapterHealthResponse)
async def get_adapter_health(factory: Factory) -> AdapterHealthResponse:
    """Health status of all adapters."""
    return AdapterHealthResponse(
        adapters=factory.get_all_adapter_health(),
        timestamp=datetime.now(UTC),
        system_uptime=time.monotonic() - _PROCESS_STARTED,
    )


@router.get("/{adapter_type}/metrics", response_model=AdapterMetricsResponse)
async def get_adapter_metrics(
    adapter_type: AdapterType,
    factory: Factory,
) -> AdapterMetricsResponse:
    """Performance metrics for one adapter."""
    metrics = factory.get_adapter_metrics(adapter_type)
    if metrics is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Adapter not found",
        )
    return AdapterMetricsResponse(
        adapter_type=adapter_type,
        metrics=metrics,
        timestamp=datetime.now(UTC),
    )


@router.post("/organizations/{organization_id}/enable", response_model=RolloutResponse)
async def enable_adapter(
    organization_id: int,
    body: EnableAdapterRequest,
    admin: RequireAdmin,
    factory: Factory,
) -> RolloutResponse:
    """Enable one adapter for an organization at a rollout percentage."""
    try:
        await factory.enable_adapter_for_organization(
            body.adapter_type, organization_id, body.rollout_percentage, admin.user_id
        )
    except Exception as e:
        raise _rollout_failed("enable", organization_id, e) from e

    return RolloutResponse(
        organization_id=organization_id,
        message=f"{body.adapter_type} adapter enabled at {body.rollout_percentage}% rollout",
    )


@router.post("/organizations/{organization_id}/disable", response_model=RolloutResponse)
async def disable_adapter(
    organization_id: int,
    body: DisableAdapterRequest,
    admin: RequireAdmin,
    factory: Factory,
) -> RolloutResponse:
    """Disable one adapter for an organization."""
    try:
        await factory.disable_adapter_for_organization(
            body.adapter_type, organization_id, admin.user_id
        )
    except Exception as e:
        raise _rollout_failed("disable", organization_id, e) from e

    return RolloutResponse(
        organization_id=organization_id,
        message=f"{body.adapter_type} adapter disabled",
    )


@router.post("/organizations/{organization_id}/configure", response_model=RolloutResponse)
async def configure_adapters(
    organization_id: int,
    body: ConfigureAdaptersRequest,
    admin: RequireAdmin,
    factory: Factory,
) -> RolloutResponse:
    """Enable or disable several adapters for an organization at once."""
    try:
        await factory.configure_organization_adapters(
            organization_id,
            {kind.value: settings for kind, settings in body.adapters.items()},
            admin.user_id,
        )
    except Exception as e:
        raise _rollout_failed("configure", organization_id, e) from e

    return RolloutResponse(
        organization_id=organization_id,
        message=f"Configured {len(body.adapters)} adapter(s)",
    )


@router.post("/organizations/{organization_id}/migrate", response_model=RolloutResponse)
async def migrate_adapters(
    organization_id: int,
    body: MigrateAdaptersRequest,
    admin: RequireAdmin,
    factory: Factory,
) -> RolloutResponse:
    """Migrate an organization onto the selected adapters at a starting rollout."""
    try:
        await factory.migrate_organization_to_adapters(
            organization_id, body.strategy, body.rollout_percentage, admin.user_id
        )
    except Exception as e:
        raise _rollout_failed("migrate", organization_id, e) from e

    return RolloutResponse(
        organization_id=organization_id,
        message=f"Migration started at {body.rollout_percentage}% rollout",
    )
