"""
engagehub.adapters.factory - Adapter Registry, Factory and Rollout Administration

The factory hands out adapters behind their ``<type>_adapter_enabled``
feature flag and writes organization-scoped flag overrides for staged
rollout. There is no module-level instance: build one with
``create_adapter_factory()`` at application startup and pass it around
(the API keeps it on ``app.state.adapter_factory``).

Example:
    >>> factory = create_adapter_factory(sessionmaker, flag_service, settings)
    >>> employees = await factory.get_employee_adapter(context)
    >>> if employees is None:
    ...     ...  # adapter disabled for this organization, use the legacy path
"""

import asyncio
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.adapters.base import BaseAdapter
from engagehub.adapters.employee import EmployeeAdapter
from engagehub.adapters.flags import (
    FeatureFlagEvaluator,
    FlagContext,
    OrganizationFlagConfig,
    adapter_flag_key,
)
from engagehub.adapters.recognition import RecognitionAdapter
from engagehub.adapters.social import SocialAdapter
from engagehub.adapters.types import AdapterContext, HealthStatus, OperationMetrics
from engagehub.settings import EngageSettings, get_settings

logger = logging.getLogger(__name__)


class AdapterType(StrEnum):
    EMPLOYEE = "employee"
    RECOGNITION = "recognition"
    SOCIAL = "social"


@dataclass(frozen=True)
class AdapterRegistry:
    """One adapter instance per adapter type, fixed for the process lifetime."""

    employee: EmployeeAdapter
    recognition: RecognitionAdapter
    social: SocialAdapter

    def get(self, adapter_type: AdapterType | str) -> BaseAdapter | None:
        """Return the adapter for ``adapter_type``, or None if the type is unknown."""
        try:
            kind = AdapterType(adapter_type)
        except ValueError:
            return None

        if kind is AdapterType.EMPLOYEE:
            return self.employee
        if kind is AdapterType.RECOGNITION:
            return self.recognition
        return self.social

    def items(self) -> Iterator[tuple[AdapterType, BaseAdapter]]:
        for kind in AdapterType:
            adapter = self.get(kind)
            if adapter is not None:
                yield kind, adapter


class AdapterRolloutConfig(BaseModel):
    """Desired state of one adapter for an organization."""

    enabled: bool
    rollout_percentage: int | None = Field(default=None, ge=0, le=100)


class MigrationStrategy(BaseModel):
    """Which adapters an organization should be migrated onto."""

    employee: bool = False
    recognition: bool = False
    social: bool = False


class AdapterFactory:
    """
    Flag-gated access to adapters plus organization rollout administration.

    Args:
        registry: The adapter instances
        flag_evaluator: Feature-flag collaborator
        environment: Deployment environment used for evaluation and overrides
        fail_open_environments: Environments where an evaluator failure is
            treated as "enabled"; everywhere else it disables the adapter
        force_enable: Skip flag evaluation entirely (local development only)
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        flag_evaluator: FeatureFlagEvaluator,
        *,
        environment: str = "development",
        fail_open_environments: frozenset[str] | set[str] = frozenset({"development"}),
        force_enable: bool = False,
    ) -> None:
        self.registry = registry
        self.flag_evaluator = flag_evaluator
        self.environment = environment
        self.fail_open_environments = frozenset(fail_open_environments)
        self.force_enable = force_enable

        logger.info(
            "Adapter factory initialized",
            extra={
                "adapters": [kind.value for kind, _ in registry.items()],
                "environment": environment,
            },
        )

    # ========================================================================
    # Flag-gated access
    # ========================================================================

    async def get_adapter(
        self,
        adapter_type: AdapterType | str,
        context: AdapterContext,
        environment: str | None = None,
    ) -> BaseAdapter | None:
        """
        Return the adapter for ``adapter_type`` if its flag is on for ``context``.

        Never raises: unknown types, disabled flags and unexpected errors all
        yield None.
        """
        try:
            adapter = self.registry.get(adapter_type)
            if adapter is None:
                logger.error(f"Adapter not found: {adapter_type}")
                return None

            if not await self.is_adapter_enabled(adapter_type, context, environment):
                logger.warning(
                    f"Adapter disabled via feature flag: {adapter_type}",
                    extra={
                        "organization_id": context.organization_id,
                        "user_id": context.user_id,
                        "request_id": context.request_id,
                    },
                )
                return None

            logger.debug(
                f"Adapter enabled and ready: {adapter_type}",
                extra={"organization_id": context.organization_id, "version": adapter.version},
            )
            return adapter

        except Exception as e:
            logger.error(f"Failed to get adapter {adapter_type}: {e}", exc_info=True)
            return None

    async def is_adapter_enabled(
        self,
        adapter_type: AdapterType | str,
        context: AdapterContext,
        environment: str | None = None,
    ) -> bool:
        """
        Evaluate ``<type>_adapter_enabled`` for ``context``.

        An evaluator failure resolves to True only in the fail-open
        environments (development by default).
        """
        if self.force_enable:
            return True

        env = environment or self.environment
        flag_key = adapter_flag_key(str(adapter_type))
        try:
            evaluation = await self.flag_evaluator.evaluate_flag(
                flag_key,
                FlagContext(
                    user_id=context.user_id,
                    organization_id=context.organization_id,
                    environment=env,
                ),
            )
            return bool(evaluation.value)
        except Exception as e:
            default_enabled = env in self.fail_open_environments
            logger.error(
                f"Failed to evaluate feature flag for {adapter_type} adapter: {e}",
                extra={"flag_key": flag_key, "environment": env},
            )
            logger.warning(f"Using default enabled state for {adapter_type}: {default_enabled}")
            return default_enabled

    async def get_employee_adapter(
        self, context: AdapterContext, environment: str | None = None
    ) -> EmployeeAdapter | None:
        if await self.get_adapter(AdapterType.EMPLOYEE, context, environment) is None:
            return None
        return self.registry.employee

    async def get_recognition_adapter(
        self, context: AdapterContext, environment: str | None = None
    ) -> RecognitionAdapter | None:
        if await self.get_adapter(AdapterType.RECOGNITION, context, environment) is None:
            return None
        return self.registry.recognition

    async def get_social_adapter(
        self, context: AdapterContext, environment: str | None = None
    ) -> SocialAdapter | None:
        if await self.get_adapter(AdapterType.SOCIAL, context, environment) is None:
            return None
        return self.registry.social

    # ========================================================================
    # Observability
    # ========================================================================

    def get_all_adapter_health(self) -> dict[str, HealthStatus]:
        """Health snapshot of every registered adapter, keyed by adapter type."""
        return {kind.value: adapter.get_health_status() for kind, adapter in self.registry.items()}

    def get_adapter_metrics(
        self, adapter_type: AdapterType | str
    ) -> dict[str, OperationMetrics] | None:
        """Per-operation metrics of one adapter, or None for an unknown type."""
        adapter = self.registry.get(adapter_type)
        if adapter is None:
            return None
        return adapter.get_performance_metrics()

    # ========================================================================
    # Rollout administration
    # ========================================================================

    async def enable_adapter_for_organization(
        self,
        adapter_type: AdapterType | str,
        organization_id: int,
        rollout_percentage: int = 100,
        enabled_by: int | None = None,
    ) -> None:
        """Enable an adapter for an organization at ``rollout_percentage``."""
        logger.info(
            f"Enabling {adapter_type} adapter for organization {organization_id} "
            f"at {rollout_percentage}% rollout"
        )
        try:
            await self.flag_evaluator.set_organization_flag(
                adapter_flag_key(AdapterType(adapter_type).value),
                organization_id,
                OrganizationFlagConfig(
                    is_enabled=True,
                    rollout_percentage=rollout_percentage,
                    rollout_strategy="percentage",
                    environment=self.environment,
                    enabled_by=enabled_by,
                ),
            )
        except Exception as e:
            logger.error(
                f"Failed to enable {adapter_type} adapter for organization {organization_id}: {e}",
                extra={"organization_id": organization_id, "enabled_by": enabled_by},
            )
            raise

        logger.info(f"{adapter_type} adapter enabled for organization {organization_id}")

    async def disable_adapter_for_organization(
        self,
        adapter_type: AdapterType | str,
        organization_id: int,
        disabled_by: int | None = None,
    ) -> None:
        """Disable an adapter for an organization (0% rollout)."""
        logger.info(f"Disabling {adapter_type} adapter for organization {organization_id}")
        try:
            await self.flag_evaluator.set_organization_flag(
                adapter_flag_key(AdapterType(adapter_type).value),
                organization_id,
                OrganizationFlagConfig(
                    is_enabled=False,
                    rollout_percentage=0,
                    rollout_strategy="percentage",
                    environment=self.environment,
                    enabled_by=disabled_by,
                ),
            )
        except Exception as e:
            logger.error(
                f"Failed to disable {adapter_type} adapter for organization {organization_id}: {e}",
                extra={"organization_id": organization_id, "disabled_by": disabled_by},
            )
            raise

        logger.info(f"{adapter_type} adapter disabled for organization {organization_id}")

    async def configure_organization_adapters(
        self,
        organization_id: int,
        config: Mapping[str, AdapterRolloutConfig | Mapping[str, Any]],
        configured_by: int | None = None,
    ) -> None:
        """
        Apply enable/disable entries for several adapters concurrently.

        An enabled entry without a rollout percentage (or with 0) rolls out to 100%.
        """
        calls = []
        for adapter_type, raw_settings in config.items():
            settings = AdapterRolloutConfig.model_validate(raw_settings)
            if settings.enabled:
                calls.append(
                    self.enable_adapter_for_organization(
                        adapter_type,
                        organization_id,
                        settings.rollout_percentage or 100,
                        configured_by,
                    )
                )
            else:
                calls.append(
                    self.disable_adapter_for_organization(
                        adapter_type, organization_id, configured_by
                    )
                )

        await asyncio.gather(*calls)

        logger.info(
            f"Adapter configuration completed for organization {organization_id}",
            extra={"organization_id": organization_id, "configured_by": configured_by},
        )

    async def migrate_organization_to_adapters(
        self,
        organization_id: int,
        strategy: MigrationStrategy | Mapping[str, bool],
        rollout_percentage: int = 10,
        migrated_by: int | None = None,
    ) -> None:
        """Move an organization onto the selected adapters at a starting rollout."""
        migration = MigrationStrategy.model_validate(strategy)
        logger.info(
            f"Starting adapter migration for organization {organization_id}",
            extra={
                "organization_id": organization_id,
                "strategy": migration.model_dump(),
                "rollout_percentage": rollout_percentage,
                "migrated_by": migrated_by,
            },
        )

        config = {
            kind.value: AdapterRolloutConfig(
                enabled=getattr(migration, kind.value),
                rollout_percentage=rollout_percentage if getattr(migration, kind.value) else 0,
            )
            for kind in AdapterType
        }
        await self.configure_organization_adapters(organization_id, config, migrated_by)

        logger.info(f"Adapter migration completed for organization {organization_id}")


def create_adapter_factory(
    session_factory: async_sessionmaker[AsyncSession],
    flag_evaluator: FeatureFlagEvaluator,
    settings: EngageSettings | None = None,
) -> AdapterFactory:
    """Build the adapters and the factory from settings."""
    settings = settings or get_settings()
    adapter_options: dict[str, Any] = {
        "environment": settings.env,
        "force_enable": settings.adapter_force_enable,
        "operation_timeout": settings.adapter_operation_timeout_seconds,
    }

    registry = AdapterRegistry(
        employee=EmployeeAdapter(session_factory, flag_evaluator, **adapter_options),
        recognition=RecognitionAdapter(session_factory, flag_evaluator, **adapter_options),
        social=SocialAdapter(session_factory, flag_evaluator, **adapter_options),
    )
    return AdapterFactory(
        registry,
        flag_evaluator,
        environment=settings.env,
        fail_open_environments=frozenset(settings.adapter_fail_open_environments),
        force_enable=settings.adapter_force_enable,
    )
