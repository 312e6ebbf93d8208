"""
engagehub.services.feature_flags - Feature Flag Service

Database-backed implementation of the adapter layer's FeatureFlagEvaluator.

Evaluation order for a flag:
1. Flag missing -> False ("disabled")
2. Flag inactive -> parsed default ("disabled")
3. Unexpired user override -> override value ("override")
4. Organization flag enabled and rollout passes -> True ("rollout")
5. Otherwise -> parsed default ("default")

Any internal failure resolves to False ("default") with the error recorded in
the evaluation metadata; evaluate_flag() never raises.

Usage:
    >>> service = FeatureFlagService(sessionmaker, settings)
    >>> await service.is_enabled("employee_adapter_enabled", FlagContext(organization_id=42))
    True
"""

import asyncio
import logging
import struct
import time
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.adapters.factory import AdapterType
from engagehub.adapters.flags import (
    EvaluationReason,
    FlagContext,
    FlagEvaluation,
    OrganizationFlagConfig,
    adapter_flag_key,
)
from engagehub.models.feature_flag import (
    FeatureFlag,
    FeatureFlagEvaluation,
    OrganizationFeatureFlag,
    UserFeatureFlagOverride,
)
from engagehub.settings import EngageSettings, get_settings

logger = logging.getLogger(__name__)

FlagValue = bool | int | float | str

ADAPTER_FLAGS: dict[AdapterType, tuple[str, str]] = {
    AdapterType.EMPLOYEE: (
        "Employee Management Adapter",
        "Use adapter layer for employee management operations",
    ),
    AdapterType.RECOGNITION: (
        "Recognition System Adapter",
        "Use adapter layer for recognition system operations",
    ),
    AdapterType.SOCIAL: (
        "Social Features Adapter",
        "Use adapter layer for social features operations",
    ),
}


class FeatureFlagError(Exception):
    """Raised when a flag definition or override cannot be written."""


class FlagDefinition(BaseModel):
    """Cached snapshot of a feature_flags row."""

    model_config = ConfigDict(from_attributes=True)

    flag_key: str
    name: str
    description: str | None = None
    flag_type: str = "boolean"
    default_value: str = "false"
    is_active: bool = True


class FlagUpsert(BaseModel):
    """Fields accepted when creating or updating a flag definition."""

    flag_key: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    flag_type: str = Field(default="boolean", pattern="^(boolean|string|number)$")
    default_value: str = "false"
    is_active: bool = True


# ============================================================================
# Pure helpers
# ============================================================================


def hash_string(value: str) -> int:
    """
    Deterministic non-negative 32-bit string hash.

    Computes ``h = h * 31 + unit`` over the UTF-16 code units of ``value``
    with signed 32-bit wraparound, then takes the absolute value. Rollout
    buckets derived from it are stable across processes and releases.
    """
    h = 0
    for (unit,) in struct.iter_unpack("<H", value.encode("utf-16-le")):
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def parse_value(value: str, flag_type: str) -> FlagValue:
    """Parse a stored flag value according to the flag's type."""
    if flag_type == "boolean":
        return value.lower() == "true"
    if flag_type == "number":
        try:
            number = float(value)
        except ValueError:
            return 0
        return int(number) if number.is_integer() else number
    return value


def rollout_bucket(flag_key: str, context: FlagContext) -> int:
    """Bucket 0..99 for percentage rollout, keyed by user, then IP, then anonymous."""
    identifier: str
    if context.user_id:
        identifier = str(context.user_id)
    else:
        identifier = (context.request_context or {}).get("ip") or "anonymous"
    return hash_string(f"{flag_key}:{identifier}") % 100


def evaluate_rollout(org_flag: OrganizationFeatureFlag, context: FlagContext) -> bool:
    """Decide whether an enabled organization flag applies to ``context``."""
    strategy = org_flag.rollout_strategy
    if strategy == "all":
        return True
    if strategy == "whitelist":
        user_ids = (org_flag.rollout_config or {}).get("user_ids") or []
        return context.user_id is not None and context.user_id in user_ids
    return rollout_bucket(org_flag.flag_key, context) < org_flag.rollout_percentage


# ============================================================================
# Service
# ============================================================================


class FeatureFlagService:
    """
    Feature flag evaluation and administration.

    Flag definitions are cached in-process for
    ``settings.feature_flag_cache_ttl_seconds``; writes to a definition
    clear the cache.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: EngageSettings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self._cache: dict[str, tuple[float, FlagDefinition]] = {}

    # ------------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------------

    async def evaluate_flag(self, flag_key: str, context: FlagContext) -> FlagEvaluation:
        """Evaluate ``flag_key`` for ``context``."""
        try:
            async with self.session_factory() as session:
                flag = await self._get_flag(session, flag_key)
                if flag is None:
                    return FlagEvaluation(
                        value=False,
                        reason="disabled",
                        metadata={"override_reason": "Flag not found"},
                    )

                if not flag.is_active:
                    return FlagEvaluation(
                        value=parse_value(flag.default_value, flag.flag_type),
                        reason="disabled",
                        metadata={"override_reason": "Flag is disabled"},
                    )

                if context.user_id:
                    override = await self._get_user_override(session, flag_key, context.user_id)
                    if override is not None:
                        result = FlagEvaluation(
                            value=parse_value(override.override_value, flag.flag_type),
                            reason="override",
                            metadata={"override_reason": override.reason or "User override"},
                        )
                        await self._log_evaluation(session, flag_key, context, result)
                        return result

                if context.organization_id:
                    org_flag = await self._get_organization_flag(
                        session, flag_key, context.organization_id
                    )
                    if org_flag is not None and org_flag.is_enabled and evaluate_rollout(
                        org_flag, context
                    ):
                        result = FlagEvaluation(
                            value=parse_value("true", flag.flag_type),
                            reason="rollout",
                            metadata={
                                "rollout_percentage": org_flag.rollout_percentage,
                                "strategy": org_flag.rollout_strategy,
                            },
                        )
                        await self._log_evaluation(session, flag_key, context, result)
                        return result

                result = FlagEvaluation(
                    value=parse_value(flag.default_value, flag.flag_type),
                    reason="default",
                )
                await self._log_evaluation(session, flag_key, context, result)
                return result

        except Exception as e:
            logger.error(
                f"Feature flag evaluation error for {flag_key}: {e}",
                extra={"flag_key": flag_key, "organization_id": context.organization_id},
            )
            return FlagEvaluation(
                value=False,
                reason="default",
                metadata={"override_reason": f"Error: {e}"},
            )

    async def is_enabled(self, flag_key: str, context: FlagContext) -> bool:
        """Convenience wrapper for boolean flags."""
        result = await self.evaluate_flag(flag_key, context)
        return bool(result.value)

    async def get_string_value(
        self, flag_key: str, context: FlagContext, default: str = ""
    ) -> str:
        result = await self.evaluate_flag(flag_key, context)
        return str(result.value or default)

    async def get_numeric_value(
        self, flag_key: str, context: FlagContext, default: float = 0
    ) -> float:
        result = await self.evaluate_flag(flag_key, context)
        if isinstance(result.value, bool):
            return float(result.value)
        try:
            return float(result.value)
        except ValueError:
            return default

    async def evaluate_flags(
        self, flag_keys: list[str], context: FlagContext
    ) -> dict[str, FlagEvaluation]:
        """Evaluate several flags concurrently."""
        results = await asyncio.gather(*(self.evaluate_flag(key, context) for key in flag_keys))
        return dict(zip(flag_keys, results, strict=True))

    # ------------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------------

    async def upsert_flag(self, flag: FlagUpsert | dict[str, Any]) -> FlagDefinition:
        """Create or update a flag definition."""
        data = FlagUpsert.model_validate(flag)
        try:
            async with self.session_factory() as session:
                stmt = select(FeatureFlag).where(FeatureFlag.flag_key == data.flag_key)
                row = (await session.execute(stmt)).scalar_one_or_none()
                if row is None:
                    row = FeatureFlag(**data.model_dump())
                    session.add(row)
                else:
                    for field, value in data.model_dump().items():
                        setattr(row, field, value)
                await session.commit()
                await session.refresh(row)
        except Exception as e:
            raise FeatureFlagError(f"Failed to upsert feature flag: {e}") from e

        self.invalidate_cache()
        logger.info(f"Upserted feature flag {data.flag_key}", extra={"flag_key": data.flag_key})
        return FlagDefinition.model_validate(row)

    async def seed_adapter_flags(self) -> list[str]:
        """
        Create or refresh the ``<type>_adapter_enabled`` flag definitions.

        The flags default to off; organizations are enabled through
        set_organization_flag(). A definition that cannot be written is
        logged and skipped.

        Returns:
            Keys of the definitions that were written
        """
        seeded = []
        for kind, (name, description) in ADAPTER_FLAGS.items():
            flag_key = adapter_flag_key(kind.value)
            try:
                await self.upsert_flag(
                    FlagUpsert(
                        flag_key=flag_key,
                        name=name,
                        description=description,
                        default_value="false",
                        is_active=True,
                    )
                )
            except FeatureFlagError as e:
                logger.error(
                    f"Failed to seed adapter flag {flag_key}: {e}",
                    extra={"flag_key": flag_key},
                )
                continue
            seeded.append(flag_key)
        return seeded

    async def set_organization_flag(
        self,
        flag_key: str,
        organization_id: int,
        config: OrganizationFlagConfig,
    ) -> OrganizationFeatureFlag:
        """Create or replace the organization-scoped override for ``flag_key``."""
        values = {
            "is_enabled": config.is_enabled,
            "rollout_percentage": config.rollout_percentage,
            "rollout_strategy": config.rollout_strategy,
            "rollout_config": config.rollout_config,
            "environment": config.environment,
            "enabled_by": config.enabled_by,
            "enabled_at": datetime.now(UTC) if config.is_enabled else None,
        }
        try:
            async with self.session_factory() as session:
                org_flag = await self._get_organization_flag(session, flag_key, organization_id)
                if org_flag is None:
                    org_flag = OrganizationFeatureFlag(
                        organization_id=organization_id, flag_key=flag_key, **values
                    )
                    session.add(org_flag)
                else:
                    for field, value in values.items():
                        setattr(org_flag, field, value)
                await session.commit()
                await session.refresh(org_flag)
        except Exception as e:
            raise FeatureFlagError(f"Failed to set organization feature flag: {e}") from e

        logger.info(
            f"Organization flag {flag_key} set for organization {organization_id}",
            extra={
                "flag_key": flag_key,
                "organization_id": organization_id,
                "is_enabled": config.is_enabled,
                "rollout_percentage": config.rollout_percentage,
            },
        )
        return org_flag

    async def set_user_override(
        self,
        flag_key: str,
        user_id: int,
        override_value: str,
        reason: str | None = None,
        expires_at: datetime | None = None,
        created_by: int | None = None,
    ) -> UserFeatureFlagOverride:
        """Create or replace a per-user override."""
        values = {
            "override_value": override_value,
            "reason": reason or "Manual override",
            "expires_at": expires_at,
            "created_by": created_by,
        }
        try:
            async with self.session_factory() as session:
                stmt = select(UserFeatureFlagOverride).where(
                    and_(
                        UserFeatureFlagOverride.flag_key == flag_key,
                        UserFeatureFlagOverride.user_id == user_id,
                    )
                )
                override = (await session.execute(stmt)).scalar_one_or_none()
                if override is None:
                    override = UserFeatureFlagOverride(user_id=user_id, flag_key=flag_key, **values)
                    session.add(override)
                else:
                    for field, value in values.items():
                        setattr(override, field, value)
                    override.created_at = datetime.now(UTC)
                await session.commit()
                await session.refresh(override)
        except Exception as e:
            raise FeatureFlagError(f"Failed to set user override: {e}") from e

        return override

    def invalidate_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------

    async def _get_flag(self, session: AsyncSession, flag_key: str) -> FlagDefinition | None:
        now = time.monotonic()
        cached = self._cache.get(flag_key)
        if cached is not None and now - cached[0] < self.settings.feature_flag_cache_ttl_seconds:
            return cached[1]

        stmt = select(FeatureFlag).where(FeatureFlag.flag_key == flag_key)
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None

        flag = FlagDefinition.model_validate(row)
        self._cache[flag_key] = (now, flag)
        return flag

    async def _get_user_override(
        self, session: AsyncSession, flag_key: str, user_id: int
    ) -> UserFeatureFlagOverride | None:
        match_override = and_(
            UserFeatureFlagOverride.flag_key == flag_key,
            UserFeatureFlagOverride.user_id == user_id,
        )
        stmt = select(UserFeatureFlagOverride).where(match_override)
        override = (await session.execute(stmt)).scalar_one_or_none()

        if override is not None and override.expires_at and override.expires_at < datetime.now(UTC):
            await session.execute(delete(UserFeatureFlagOverride).where(match_override))
            await session.commit()
            logger.debug(
                f"Removed expired override of {flag_key} for user {user_id}",
                extra={"flag_key": flag_key, "user_id": user_id},
            )
            return None

        return override

    @staticmethod
    async def _get_organization_flag(
        session: AsyncSession, flag_key: str, organization_id: int
    ) -> OrganizationFeatureFlag | None:
        stmt = select(OrganizationFeatureFlag).where(
            and_(
                OrganizationFeatureFlag.flag_key == flag_key,
                OrganizationFeatureFlag.organization_id == organization_id,
            )
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _log_evaluation(
        self,
        session: AsyncSession,
        flag_key: str,
        context: FlagContext,
        result: FlagEvaluation,
    ) -> None:
        if not self.settings.should_log_flag_evaluations():
            return

        reason: EvaluationReason = result.reason
        value = result.value
        evaluated_value = str(value).lower() if isinstance(value, bool) else str(value)
        try:
            session.add(
                FeatureFlagEvaluation(
                    flag_key=flag_key,
                    user_id=context.user_id,
                    organization_id=context.organization_id,
                    evaluated_value=evaluated_value,
                    evaluation_reason=reason,
                    request_context=context.request_context,
                )
            )
            await session.commit()
        except Exception as e:
            logger.warning(
                f"Error logging feature flag evaluation for {flag_key}: {e}",
                extra={"flag_key": flag_key},
            )
