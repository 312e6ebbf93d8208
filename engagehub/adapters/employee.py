"""
engagehub.adapters.employee - Employee Management Adapter

Standardized interface for employee (user account) operations:
lookup, listing with filters and pagination, create/update, soft
deactivation, text search and dashboard statistics.

Example:
    >>> adapter = EmployeeAdapter(sessionmaker, flag_service)
    >>> context = adapter.create_context(user_id=7, organization_id=42)
    >>> result = await adapter.get_employees(PaginationOptions(page=2), None, context)
    >>> result.pagination.has_prev
    True
"""

import logging
from datetime import UTC, date, datetime, timedelta
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.adapters.base import BaseAdapter
from engagehub.adapters.exceptions import AdapterError, AdapterNotFoundError
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
    Email,
    Name,
    OrganizationId,
    PaginationOptions,
    PositiveId,
)
from engagehub.models.organization import User as UserModel

logger = logging.getLogger(__name__)

RoleType = Literal["employee", "manager", "admin", "corporate_admin"]
EmployeeStatus = Literal["active", "inactive"]

SearchLimit = Annotated[int, Field(ge=1, le=100)]

# Columns callers may sort employee listings by
SORTABLE_COLUMNS = frozenset(
    {"name", "surname", "email", "department", "job_title", "hire_date", "created_at"}
)

RECENT_HIRE_DAYS = 30


# ============================================================================
# Schemas
# ============================================================================


class EmployeeCreate(BaseModel):
    """Fields accepted when creating an employee."""

    username: Annotated[str, StringConstraints(min_length=1, max_length=50)]
    email: Email
    name: Name
    surname: Annotated[str, StringConstraints(max_length=50)] | None = None
    phone_number: Annotated[str, StringConstraints(max_length=20)] | None = None
    job_title: Annotated[str, StringConstraints(max_length=100)] | None = None
    department: Annotated[str, StringConstraints(max_length=50)] | None = None
    location: Annotated[str, StringConstraints(max_length=100)] | None = None
    hire_date: date | None = None
    avatar_url: Annotated[str, StringConstraints(max_length=500)] | None = None
    role_type: RoleType = "employee"
    is_admin: bool = False


class EmployeeUpdate(BaseModel):
    """Partial update; only fields explicitly provided are written."""

    username: Annotated[str, StringConstraints(min_length=1, max_length=50)] | None = None
    email: Email | None = None
    name: Name | None = None
    surname: Annotated[str, StringConstraints(max_length=50)] | None = None
    phone_number: Annotated[str, StringConstraints(max_length=20)] | None = None
    job_title: Annotated[str, StringConstraints(max_length=100)] | None = None
    department: Annotated[str, StringConstraints(max_length=50)] | None = None
    location: Annotated[str, StringConstraints(max_length=100)] | None = None
    hire_date: date | None = None
    avatar_url: Annotated[str, StringConstraints(max_length=500)] | None = None
    role_type: RoleType | None = None
    is_admin: bool | None = None


class Employee(EmployeeCreate):
    """Employee as returned by the adapter."""

    model_config = ConfigDict(from_attributes=True)

    id: PositiveId
    organization_id: OrganizationId
    status: EmployeeStatus = "active"
    created_at: datetime
    updated_at: datetime


class EmployeeFilters(BaseModel):
    department: str | None = None
    job_title: str | None = None
    role_type: str | None = None
    location: str | None = None
    is_active: bool | None = None


class EmployeeStats(WireModel):
    """Dashboard statistics for an organization's workforce."""

    total_employees: int
    active_employees: int
    department_breakdown: dict[str, int]
    role_breakdown: dict[str, int]
    recent_hires: int


# ============================================================================
# Adapter
# ============================================================================


class EmployeeAdapter(BaseAdapter):
    """
    Adapter for employee records.

    Args:
        session_factory: Async session factory; one session per operation
        flag_evaluator: Feature-flag collaborator
        operation_timeout: Per-operation timeout in seconds (None disables it)
        **kwargs: Forwarded to BaseAdapter (environment, force_enable, clock)
    """

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
                adapter_name="employee-adapter",
                version="1.0.0",
                feature_flag=adapter_flag_key("employee"),
                cache_enabled=True,
                cache_ttl=300,
                fallback_enabled=True,
                operation_timeout=operation_timeout,
            ),
            flag_evaluator,
            **kwargs,
        )
        self.session_factory = session_factory

    async def get_employee_by_id(
        self, employee_id: int, context: AdapterContext
    ) -> AdapterResult[Employee | None]:
        """Fetch one employee; ``data`` is None when no such employee is visible."""

        async def _op() -> Employee | None:
            validated_id = AdapterValidator.validate(PositiveId, employee_id)
            async with self.session_factory() as session:
                stmt = select(UserModel).where(
                    and_(*self._scope(context), UserModel.id == validated_id)
                )
                employee = (await session.execute(stmt)).scalar_one_or_none()

            if employee is None:
                return None
            return AdapterValidator.validate(Employee, employee)

        return await self.execute_operation("get_employee_by_id", _op, context)

    async def get_employees(
        self,
        pagination: PaginationOptions | dict[str, Any] | None,
        filters: EmployeeFilters | dict[str, Any] | None,
        context: AdapterContext,
    ) -> PaginatedResult[Employee]:
        """List employees with optional filters, search and sorting."""

        async def _op() -> Page[Employee]:
            options = AdapterValidator.validate(PaginationOptions, pagination or {})
            validated_filters = AdapterValidator.optional(EmployeeFilters, filters)

            conditions = self._scope(context)
            if validated_filters is not None:
                conditions.extend(self._filter_conditions(validated_filters))
            if options.search:
                pattern = f"%{options.search}%"
                conditions.append(
                    or_(
                        UserModel.name.ilike(pattern),
                        UserModel.surname.ilike(pattern),
                        UserModel.email.ilike(pattern),
                        UserModel.department.ilike(pattern),
                    )
                )

            sort_column = getattr(
                UserModel,
                options.sort_by if options.sort_by in SORTABLE_COLUMNS else "created_at",
            )
            order = sort_column.asc() if options.sort_order == "asc" else sort_column.desc()

            stmt = select(UserModel).order_by(order).limit(options.limit).offset(options.offset)
            count_stmt = select(func.count()).select_from(UserModel)
            if conditions:
                stmt = stmt.where(and_(*conditions))
                count_stmt = count_stmt.where(and_(*conditions))

            async with self.session_factory() as session:
                employees = (await session.execute(stmt)).scalars().all()
                total_count = (await session.execute(count_stmt)).scalar_one()

            return Page[Employee](
                items=[AdapterValidator.validate(Employee, e) for e in employees],
                pagination=PaginationInfo.build(options.page, options.limit, total_count),
            )

        return PaginatedResult.from_page_result(
            await self.execute_operation("get_employees", _op, context)
        )

    async def create_employee(
        self, employee_data: EmployeeCreate | dict[str, Any], context: AdapterContext
    ) -> AdapterResult[Employee]:
        """Create an employee in the context's organization."""

        async def _op() -> Employee:
            data = AdapterValidator.validate(EmployeeCreate, employee_data)
            if not context.organization_id:
                raise AdapterError("Organization ID is required")

            employee = UserModel(
                **data.model_dump(),
                organization_id=context.organization_id,
                status="active",
            )
            async with self.session_factory() as session:
                session.add(employee)
                await session.commit()
                await session.refresh(employee)

            logger.info(
                f"Created employee {employee.id}",
                extra={
                    "employee_id": employee.id,
                    "organization_id": context.organization_id,
                    "request_id": context.request_id,
                },
            )
            return AdapterValidator.validate(Employee, employee)

        return await self.execute_operation("create_employee", _op, context)

    async def update_employee(
        self,
        employee_id: int,
        update_data: EmployeeUpdate | dict[str, Any],
        context: AdapterContext,
    ) -> AdapterResult[Employee]:
        """Apply a partial update to an employee visible in the context."""

        async def _op() -> Employee:
            data = AdapterValidator.validate(EmployeeUpdate, update_data)

            async with self.session_factory() as session:
                employee = await self._get_visible(session, employee_id, context)
                for field, value in data.model_dump(exclude_unset=True).items():
                    setattr(employee, field, value)
                await session.commit()
                await session.refresh(employee)

            return AdapterValidator.validate(Employee, employee)

        return await self.execute_operation("update_employee", _op, context)

    async def deactivate_employee(
        self, employee_id: int, reason: str, context: AdapterContext
    ) -> AdapterResult[bool]:
        """Soft-delete an employee, recording the reason."""

        async def _op() -> bool:
            async with self.session_factory() as session:
                employee = await self._get_visible(session, employee_id, context)
                employee.status = "inactive"
                employee.deactivation_reason = reason
                employee.deactivated_at = datetime.now(UTC)
                await session.commit()

            logger.info(
                f"Deactivated employee {employee_id}",
                extra={
                    "employee_id": employee_id,
                    "reason": reason,
                    "request_id": context.request_id,
                },
            )
            return True

        return await self.execute_operation("deactivate_employee", _op, context)

    async def search_employees(
        self, query: str, context: AdapterContext, limit: int = 10
    ) -> AdapterResult[list[Employee]]:
        """Case-insensitive search over name, surname, email, department and job title."""

        async def _op() -> list[Employee]:
            if not query.strip():
                return []
            validated_limit = AdapterValidator.validate(SearchLimit, limit)

            pattern = f"%{query}%"
            conditions = self._scope(context)
            conditions.append(
                or_(
                    UserModel.name.ilike(pattern),
                    UserModel.surname.ilike(pattern),
                    UserModel.email.ilike(pattern),
                    UserModel.department.ilike(pattern),
                    UserModel.job_title.ilike(pattern),
                )
            )
            stmt = (
                select(UserModel)
                .where(and_(*conditions))
                .order_by(UserModel.name, UserModel.surname)
                .limit(validated_limit)
            )

            async with self.session_factory() as session:
                employees = (await session.execute(stmt)).scalars().all()

            return [AdapterValidator.validate(Employee, e) for e in employees]

        return await self.execute_operation("search_employees", _op, context)

    async def get_employee_stats(self, context: AdapterContext) -> AdapterResult[EmployeeStats]:
        """Headcount, active count, department/role breakdowns and recent hires."""

        async def _op() -> EmployeeStats:
            scope = self._scope(context)
            recent_cutoff = datetime.now(UTC) - timedelta(days=RECENT_HIRE_DAYS)

            def count_where(*conditions: Any) -> Any:
                stmt = select(func.count()).select_from(UserModel)
                clauses = [*scope, *conditions]
                if clauses:
                    stmt = stmt.where(and_(*clauses))
                return stmt

            def breakdown(column: Any) -> Any:
                stmt = select(column, func.count()).group_by(column)
                if scope:
                    stmt = stmt.where(and_(*scope))
                return stmt

            async with self.session_factory() as session:
                total = (await session.execute(count_where())).scalar_one()
                active = (
                    await session.execute(count_where(UserModel.status == "active"))
                ).scalar_one()
                departments = (await session.execute(breakdown(UserModel.department))).all()
                roles = (await session.execute(breakdown(UserModel.role_type))).all()
                recent = (
                    await session.execute(count_where(UserModel.created_at >= recent_cutoff))
                ).scalar_one()

            return EmployeeStats(
                total_employees=total,
                active_employees=active,
                department_breakdown={dept: n for dept, n in departments if dept},
                role_breakdown={role: n for role, n in roles},
                recent_hires=recent,
            )

        return await self.execute_operation("get_employee_stats", _op, context)

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _scope(context: AdapterContext) -> list[Any]:
        if context.organization_id:
            return [UserModel.organization_id == context.organization_id]
        return []

    @staticmethod
    def _filter_conditions(filters: EmployeeFilters) -> list[Any]:
        conditions: list[Any] = []
        if filters.department:
            conditions.append(UserModel.department == filters.department)
        if filters.job_title:
            conditions.append(UserModel.job_title == filters.job_title)
        if filters.role_type:
            conditions.append(UserModel.role_type == filters.role_type)
        if filters.location:
            conditions.append(UserModel.location == filters.location)
        if filters.is_active is not None:
            conditions.append(
                UserModel.status == ("active" if filters.is_active else "inactive")
            )
        return conditions

    async def _get_visible(
        self, session: AsyncSession, employee_id: int, context: AdapterContext
    ) -> UserModel:
        stmt = select(UserModel).where(
            and_(*self._scope(context), UserModel.id == employee_id)
        )
        employee = (await session.execute(stmt)).scalar_one_or_none()
        if employee is None:
            raise AdapterNotFoundError("Employee not found or access denied")
        return employee
