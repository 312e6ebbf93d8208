"""
engagehub.adapters.recognition - Recognition System Adapter

Standardized interface for the recognition program: per-organization
settings, peer recognitions, received/given listings and statistics.
Point budgets and approval workflows live elsewhere; this adapter only
records recognitions with the status the organization's settings imply.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.adapters.base import BaseAdapter, require_organization
from engagehub.adapters.exceptions import (
    AdapterError,
    AdapterNotFoundError,
    AdapterValidationError,
)
from engagehub.adapters.flags import FeatureFlagEvaluator, adapter_flag_key
from engagehub.adapters.types import (
    AdapterConfig,
    AdapterContext,
    AdapterResult,
    Page,
    PaginatedResult,
    PaginationInfo,
    WireModel,
)
from engagehub.adapters.validation import (
    AdapterValidator,
    OrganizationId,
    PaginationOptions,
    PositiveId,
    UserId,
)
from engagehub.models.organization import User as UserModel
from engagehub.models.recognition import (
    Recognition as RecognitionModel,
    RecognitionSettings as RecognitionSettingsModel,
)

logger = logging.getLogger(__name__)

RecognitionStatus = Literal["pending", "approved", "rejected"]
StatsPeriod = Literal["week", "month", "quarter", "year"]

PERIOD_DAYS: dict[str, int] = {"week": 7, "month": 30, "quarter": 90, "year": 365}

TOP_USERS_LIMIT = 5


# ============================================================================
# Schemas
# ============================================================================


class RecognitionSettingsUpdate(BaseModel):
    cost_per_point: float | None = Field(default=None, ge=0)
    peer_enabled: bool | None = None
    peer_requires_approval: bool | None = None
    peer_points_per_recognition: int | None = Field(default=None, ge=1)
    peer_max_recognitions_per_month: int | None = Field(default=None, ge=1)
    manager_enabled: bool | None = None
    manager_requires_approval: bool | None = None


class RecognitionSettings(BaseModel):
    """An organization's recognition program configuration."""

    model_config = ConfigDict(from_attributes=True)

    id: PositiveId
    organization_id: OrganizationId
    cost_per_point: float = Field(default=0.1, ge=0)
    peer_enabled: bool = True
    peer_requires_approval: bool = False
    peer_points_per_recognition: int = Field(default=10, ge=1)
    peer_max_recognitions_per_month: int = Field(default=5, ge=1)
    manager_enabled: bool = True
    manager_requires_approval: bool = False
    created_at: datetime
    updated_at: datetime


# Defaults written when an organization has no settings row yet
DEFAULT_SETTINGS: dict[str, Any] = {
    "cost_per_point": 0.1,
    "peer_enabled": True,
    "peer_requires_approval": False,
    "peer_points_per_recognition": 10,
    "peer_max_recognitions_per_month": 5,
    "manager_enabled": True,
    "manager_requires_approval": False,
}


class RecognitionCreate(BaseModel):
    giver_id: UserId
    recipient_id: UserId
    badge_type: Annotated[str, StringConstraints(min_length=1, max_length=50)]
    message: Annotated[str, StringConstraints(min_length=1, max_length=1000)]
    points: int = Field(..., ge=1)


class Recognition(RecognitionCreate):
    """A recognition as returned by the adapter."""

    model_config = ConfigDict(from_attributes=True)

    id: PositiveId
    organization_id: OrganizationId
    status: RecognitionStatus = "pending"
    created_at: datetime
    updated_at: datetime


class RankedUser(WireModel):
    user_id: int
    name: str
    count: int


class RecognitionStats(WireModel):
    """Approved-recognition statistics for one period."""

    total_given: int
    total_received: int
    top_givers: list[RankedUser]
    top_recipients: list[RankedUser]
    badge_breakdown: dict[str, int]
    points_distributed: int


# ============================================================================
# Adapter
# ============================================================================


class RecognitionAdapter(BaseAdapter):
    """Adapter for recognition settings and peer recognitions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        flag_evaluator: FeatureFlagEvaluator,
        *,
        operation_timeout: float | None = 30.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            AdapterConfig(
                adapter_name="recognition-adapter",
                version="1.0.0",
                feature_flag=adapter_flag_key("recognition"),
                cache_enabled=True,
                cache_ttl=180,
                fallback_enabled=True,
                operation_timeout=operation_timeout,
            ),
            flag_evaluator,
            **kwargs,
        )
        self.session_factory = session_factory

    async def get_recognition_settings(
        self, context: AdapterContext
    ) -> AdapterResult[RecognitionSettings]:
        """Return the organization's settings, creating the defaults on first access."""

        async def _op() -> RecognitionSettings:
            organization_id = require_organization(context)
            async with self.session_factory() as session:
                settings = await self._load_or_create_settings(session, organization_id, context)
            return AdapterValidator.validate(RecognitionSettings, settings)

        return await self.execute_operation("get_recognition_settings", _op, context)

    async def update_recognition_settings(
        self,
        update_data: RecognitionSettingsUpdate | dict[str, Any],
        context: AdapterContext,
    ) -> AdapterResult[RecognitionSettings]:
        """Apply a partial update, creating the settings row if it does not exist."""

        async def _op() -> RecognitionSettings:
            organization_id = require_organization(context)
            data = AdapterValidator.validate(RecognitionSettingsUpdate, update_data)
            changes = data.model_dump(exclude_unset=True)

            async with self.session_factory() as session:
                settings = await self._find_settings(session, organization_id)
                if settings is None:
                    settings = RecognitionSettingsModel(
                        **{**DEFAULT_SETTINGS, **changes},
                        organization_id=organization_id,
                        created_by=context.user_id,
                    )
                    session.add(settings)
                else:
                    for field, value in changes.items():
                        setattr(settings, field, value)
                    settings.updated_by = context.user_id
                await session.commit()
                await session.refresh(settings)

            return AdapterValidator.validate(RecognitionSettings, settings)

        return await self.execute_operation("update_recognition_settings", _op, context)

    async def create_peer_recognition(
        self,
        recognition_data: RecognitionCreate | dict[str, Any],
        context: AdapterContext,
    ) -> AdapterResult[Recognition]:
        """
        Record a peer recognition.

        The recipient must belong to the context's organization, a user cannot
        recognize themselves, and peer recognition must be enabled. The status
        is ``pending`` when the organization requires approval, else ``approved``.
        """

        async def _op() -> Recognition:
            data = AdapterValidator.validate(RecognitionCreate, recognition_data)
            organization_id = require_organization(context)

            async with self.session_factory() as session:
                recipient_stmt = select(UserModel.id).where(
                    and_(
                        UserModel.id == data.recipient_id,
                        UserModel.organization_id == organization_id,
                    )
                )
                recipient = (await session.execute(recipient_stmt)).scalar_one_or_none()
                if recipient is None:
                    raise AdapterNotFoundError("Recipient not found in organization")

                if data.giver_id == data.recipient_id:
                    raise AdapterValidationError("Cannot recognize yourself")

                settings = await self._load_or_create_settings(session, organization_id, context)
                if not settings.peer_enabled:
                    raise AdapterError("Peer-to-peer recognition is not enabled")

                recognition = RecognitionModel(
                    **data.model_dump(),
                    organization_id=organization_id,
                    status="pending" if settings.peer_requires_approval else "approved",
                )
                session.add(recognition)
                await session.commit()
                await session.refresh(recognition)

            logger.info(
                f"Recognition {recognition.id} created with status {recognition.status}",
                extra={
                    "recognition_id": recognition.id,
                    "organization_id": organization_id,
                    "request_id": context.request_id,
                },
            )
            return AdapterValidator.validate(Recognition, recognition)

        return await self.execute_operation("create_peer_recognition", _op, context)

    async def get_recognitions_received(
        self,
        user_id: int,
        pagination: PaginationOptions | dict[str, Any] | None,
        context: AdapterContext,
    ) -> PaginatedResult[Recognition]:
        """Recognitions where ``user_id`` is the recipient, newest first."""

        async def _op() -> Page[Recognition]:
            return await self._list_recognitions(
                RecognitionModel.recipient_id, user_id, pagination, context
            )

        return PaginatedResult.from_page_result(
            await self.execute_operation("get_recognitions_received", _op, context)
        )

    async def get_recognitions_given(
        self,
        user_id: int,
        pagination: PaginationOptions | dict[str, Any] | None,
        context: AdapterContext,
    ) -> PaginatedResult[Recognition]:
        """Recognitions where ``user_id`` is the giver, newest first."""

        async def _op() -> Page[Recognition]:
            return await self._list_recognitions(
                RecognitionModel.giver_id, user_id, pagination, context
            )

        return PaginatedResult.from_page_result(
            await self.execute_operation("get_recognitions_given", _op, context)
        )

    async def get_recognition_stats(
        self, context: AdapterContext, period: StatsPeriod = "month"
    ) -> AdapterResult[RecognitionStats]:
        """Statistics over approved recognitions created within ``period``."""

        async def _op() -> RecognitionStats:
            organization_id = require_organization(context)
            days = PERIOD_DAYS[AdapterValidator.validate(StatsPeriod, period)]
            period_start = datetime.now(UTC) - timedelta(days=days)

            where = and_(
                RecognitionModel.organization_id == organization_id,
                RecognitionModel.created_at >= period_start,
                RecognitionModel.status == "approved",
            )
            count = func.count().label("count")

            async with self.session_factory() as session:
                totals = (
                    await session.execute(
                        select(
                            func.count(func.distinct(RecognitionModel.giver_id)),
                            func.count(func.distinct(RecognitionModel.recipient_id)),
                        ).where(where)
                    )
                ).one()
                top_givers = (
                    await session.execute(
                        select(RecognitionModel.giver_id, count)
                        .where(where)
                        .group_by(RecognitionModel.giver_id)
                        .order_by(count.desc())
                        .limit(TOP_USERS_LIMIT)
                    )
                ).all()
                top_recipients = (
                    await session.execute(
                        select(RecognitionModel.recipient_id, count)
                        .where(where)
                        .group_by(RecognitionModel.recipient_id)
                        .order_by(count.desc())
                        .limit(TOP_USERS_LIMIT)
                    )
                ).all()
                badges = (
                    await session.execute(
                        select(RecognitionModel.badge_type, func.count())
                        .where(where)
                        .group_by(RecognitionModel.badge_type)
                    )
                ).all()
                points = (
                    await session.execute(
                        select(func.coalesce(func.sum(RecognitionModel.points), 0)).where(where)
                    )
                ).scalar_one()

                user_ids = {uid for uid, _ in top_givers} | {uid for uid, _ in top_recipients}
                names: dict[int, str] = {}
                if user_ids:
                    rows = (
                        await session.execute(
                            select(UserModel.id, UserModel.name, UserModel.surname).where(
                                UserModel.id.in_(user_ids)
                            )
                        )
                    ).all()
                    names = {uid: f"{name} {surname or ''}".strip() for uid, name, surname in rows}

            def ranked(rows: Any) -> list[RankedUser]:
                return [
                    RankedUser(user_id=uid, name=names.get(uid, "Unknown User"), count=n)
                    for uid, n in rows
                ]

            return RecognitionStats(
                total_given=totals[0],
                total_received=totals[1],
                top_givers=ranked(top_givers),
                top_recipients=ranked(top_recipients),
                badge_breakdown={badge: n for badge, n in badges},
                points_distributed=points or 0,
            )

        return await self.execute_operation("get_recognition_stats", _op, context)

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    async def _find_settings(
        session: AsyncSession, organization_id: int
    ) -> RecognitionSettingsModel | None:
        stmt = select(RecognitionSettingsModel).where(
            RecognitionSettingsModel.organization_id == organization_id
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _load_or_create_settings(
        self, session: AsyncSession, organization_id: int, context: AdapterContext
    ) -> RecognitionSettingsModel:
        settings = await self._find_settings(session, organization_id)
        if settings is not None:
            return settings

        settings = RecognitionSettingsModel(
            **DEFAULT_SETTINGS,
            organization_id=organization_id,
            created_by=context.user_id,
        )
        session.add(settings)
        await session.commit()
        await session.refresh(settings)

        logger.info(
            f"Created default recognition settings for organization {organization_id}",
            extra={"organization_id": organization_id, "request_id": context.request_id},
        )
        return settings

    async def _list_recognitions(
        self,
        column: Any,
        user_id: int,
        pagination: PaginationOptions | dict[str, Any] | None,
        context: AdapterContext,
    ) -> Page[Recognition]:
        options = AdapterValidator.validate(PaginationOptions, pagination or {})
        validated_user = AdapterValidator.validate(UserId, user_id)

        conditions = [column == validated_user]
        if context.organization_id:
            conditions.append(RecognitionModel.organization_id == context.organization_id)
        where = and_(*conditions)

        stmt = (
            select(RecognitionModel)
            .where(where)
            .order_by(RecognitionModel.created_at.desc())
            .limit(options.limit)
            .offset(options.offset)
        )
        count_stmt = select(func.count()).select_from(RecognitionModel).where(where)

        async with self.session_factory() as session:
            recognitions = (await session.execute(stmt)).scalars().all()
            total_count = (await session.execute(count_stmt)).scalar_one()

        return Page[Recognition](
            items=[AdapterValidator.validate(Recognition, r) for r in recognitions],
            pagination=PaginationInfo.build(options.page, options.limit, total_count),
        )
