"""
engagehub.api.deps - FastAPI Dependencies

Provides reusable dependencies for API endpoints:
- get_adapter_factory: The AdapterFactory built at startup
- get_adapter_context: Request identity as an AdapterContext
- require_admin: Admin-only guard for rollout administration
"""

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from engagehub.adapters.factory import AdapterFactory
from engagehub.adapters.types import AdapterContext

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"admin", "corporate_admin"})


def get_adapter_factory(request: Request) -> AdapterFactory:
    """
    Get the adapter factory from app state.

    Raises:
        HTTPException: If the factory is not initialized
    """
    factory = getattr(request.app.state, "adapter_factory", None)
    if factory is None:
        logger.error("Adapter factory not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Adapters not available",
        )
    return factory


# Type alias for factory dependency
Factory = Annotated[AdapterFactory, Depends(get_adapter_factory)]


def get_adapter_context(
    request: Request,
    x_user_id: Annotated[int | None, Header()] = None,
    x_organization_id: Annotated[int | None, Header()] = None,
    x_request_id: Annotated[str | None, Header()] = None,
) -> AdapterContext:
    """
    Build the AdapterContext for this request.

    ==========================================================================
    SECURITY WARNING: Development-only identity headers
    ==========================================================================
    X-User-Id / X-Organization-Id are trusted as sent. Put a real
    authentication layer in front of this API before exposing it.
    ==========================================================================
    """
    return AdapterContext(
        user_id=x_user_id,
        organization_id=x_organization_id,
        request_id=x_request_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# Type alias for context dependency
Context = Annotated[AdapterContext, Depends(get_adapter_context)]


def require_admin(
    context: Context,
    x_user_role: Annotated[str | None, Header()] = None,
) -> AdapterContext:
    """
    Require an admin role for the calling user.

    Raises:
        HTTPException: 401 without a user, 403 for non-admin roles
    """
    if context.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    if x_user_role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return context


# Type alias for admin dependency
RequireAdmin = Annotated[AdapterContext, Depends(require_admin)]
