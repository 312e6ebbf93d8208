"""
engagehub.api.v1.endpoints.demo - Adapter Demo Endpoints

Routes that go through the adapter factory the way product routes do.
When an adapter's feature flag is off for the caller, the route answers
200 with an empty result and ``adapterUsed: false``.
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from engagehub.api.deps import Context, Factory
from engagehub.api.v1.schemas.adapters import DemoResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _disabled(label: str, data: list | None) -> DemoResponse:
    return DemoResponse(
        success=True,
        adapter_used=False,
        message=f"{label} adapter is disabled via feature flag - using fallback",
        data=data,
    )


@router.get("/employees", response_model=DemoResponse)
async def demo_employees(context: Context, factory: Factory) -> DemoResponse | JSONResponse:
    """First page of employees through the employee adapter."""
    adapter = await factory.get_employee_adapter(context)
    if adapter is None:
        return _disabled("Employee", [])

    result = await adapter.get_employees({"page": 1, "limit": 10}, None, context)
    if not result.success:
        body = DemoResponse(success=False, adapter_used=True, error=result.error)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    return DemoResponse(
        success=True,
        adapter_used=True,
        data=result.data,
        pagination=result.pagination,
        metadata=result.metadata,
    )


@router.get("/recognition/settings", response_model=DemoResponse)
async def demo_recognition_settings(context: Context, factory: Factory) -> DemoResponse:
    """The caller's organization recognition settings."""
    adapter = await factory.get_recognition_adapter(context)
    if adapter is None:
        return _disabled("Recognition", None)

    result = await adapter.get_recognition_settings(context)
    return DemoResponse(
        success=result.success,
        adapter_used=True,
        data=result.data,
        error=result.error,
        metadata=result.metadata,
    )


@router.get("/social/feed", response_model=DemoResponse)
async def demo_social_feed(context: Context, factory: Factory) -> DemoResponse:
    """First five posts of the caller's organization feed."""
    adapter = await factory.get_social_adapter(context)
    if adapter is None:
        return _disabled("Social", [])

    result = await adapter.get_feed_posts({"page": 1, "limit": 5}, context)
    return DemoResponse(
        success=result.success,
        adapter_used=True,
        data=result.data,
        pagination=result.pagination,
        error=result.error,
        metadata=result.metadata,
    )
