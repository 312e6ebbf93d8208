"""
engagehub.adapters - Feature-Flag Gated Data Adapters

Every data access path of the engagement backend goes through an adapter:

- BaseAdapter: execution engine (flag gate, timeout, metrics, error envelope)
- EmployeeAdapter / RecognitionAdapter / SocialAdapter: bounded contexts
- AdapterFactory: flag-gated access and per-organization staged rollout

Usage:
    >>> from engagehub.adapters import AdapterContext, create_adapter_factory
    >>> factory = create_adapter_factory(sessionmaker, flag_service)
    >>> adapter = await factory.get_employee_adapter(AdapterContext(organization_id=42))
    >>> result = await adapter.get_employee_stats(AdapterContext(organization_id=42))
    >>> result.success
    True
"""

from engagehub.adapters.base import BaseAdapter, require_organization
from engagehub.adapters.employee import EmployeeAdapter
from engagehub.adapters.exceptions import (
    ADAPTER_ERROR,
    AdapterDisabledError,
    AdapterError,
    AdapterNotFoundError,
    AdapterTimeoutError,
    AdapterValidationError,
    RateLimitedError,
)
from engagehub.adapters.factory import (
    AdapterFactory,
    AdapterRegistry,
    AdapterRolloutConfig,
    AdapterType,
    MigrationStrategy,
    create_adapter_factory,
)
from engagehub.adapters.flags import (
    FeatureFlagEvaluator,
    FlagContext,
    FlagEvaluation,
    OrganizationFlagConfig,
    adapter_flag_key,
)
from engagehub.adapters.recognition import RecognitionAdapter
from engagehub.adapters.social import SocialAdapter
from engagehub.adapters.types import (
    AdapterConfig,
    AdapterContext,
    AdapterResult,
    HealthStatus,
    OperationMetrics,
    Page,
    PaginatedResult,
    PaginationInfo,
    ResultMetadata,
)
from engagehub.adapters.validation import AdapterValidator, PaginationOptions

__all__ = [
    "ADAPTER_ERROR",
    "AdapterConfig",
    "AdapterContext",
    "AdapterDisabledError",
    "AdapterError",
    "AdapterFactory",
    "AdapterNotFoundError",
    "AdapterRegistry",
    "AdapterResult",
    "AdapterRolloutConfig",
    "AdapterTimeoutError",
    "AdapterType",
    "AdapterValidationError",
    "AdapterValidator",
    "BaseAdapter",
    "EmployeeAdapter",
    "FeatureFlagEvaluator",
    "FlagContext",
    "FlagEvaluation",
    "HealthStatus",
    "MigrationStrategy",
    "OperationMetrics",
    "OrganizationFlagConfig",
    "Page",
    "PaginatedResult",
    "PaginationInfo",
    "PaginationOptions",
    "RateLimitedError",
    "RecognitionAdapter",
    "ResultMetadata",
    "SocialAdapter",
    "adapter_flag_key",
    "create_adapter_factory",
    "require_organization",
]
