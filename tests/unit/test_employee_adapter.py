"""
Unit tests for EmployeeAdapter.

Tests cover:
- Lookup scoped to the caller's organization
- Listing with pagination, filters and sorting
- Create / update / soft deactivation
- Search and dashboard statistics
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from engagehub.adapters.employee import Employee, EmployeeAdapter, EmployeeStats
from engagehub.adapters.flags import FlagEvaluation
from engagehub.adapters.types import AdapterContext
from engagehub.models.organization import User as UserModel

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

# =============================================================================
# Fixtures
# =============================================================================


def make_user(**overrides):
    values = {
        "id": 1,
        "organization_id": 42,
        "username": "jchen",
        "email": "jordan.chen@acme.com",
        "name": "Jordan",
        "surname": "Chen",
        "department": "Sales",
        "job_title": "Account Executive",
        "role_type": "employee",
        "is_admin": False,
        "status": "active",
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return UserModel(**values)


def query_result(scalar=None, scalars=None, rows=None):
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.all.return_value = rows or []
    return result


@pytest.fixture
def mock_session():
    """Create a mock async database session."""
    session = AsyncMock()
    session.add = MagicMock()

    async def _assign_identity(obj):
        obj.id = obj.id or 101
        obj.created_at = NOW
        obj.updated_at = NOW

    session.refresh.side_effect = _assign_identity
    return session


@pytest.fixture
def session_factory(mock_session):
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    factory.return_value.__aexit__.return_value = False
    return factory


@pytest.fixture
def flag_evaluator():
    evaluator = MagicMock()
    evaluator.evaluate_flag = AsyncMock(return_value=FlagEvaluation(value=True, reason="rollout"))
    return evaluator


@pytest.fixture
def adapter(session_factory, flag_evaluator):
    return EmployeeAdapter(session_factory, flag_evaluator)


@pytest.fixture
def context():
    return AdapterContext(user_id=7, organization_id=42)


def executed_sql(mock_session, index=0):
    return str(mock_session.execute.await_args_list[index].args[0])


# =============================================================================
# Configuration
# =============================================================================


def test_adapter_config(adapter):
    assert adapter.adapter_name == "employee-adapter"
    assert adapter.version == "1.0.0"
    assert adapter.config.feature_flag == "employee_adapter_enabled"
    assert adapter.config.cache_ttl == 300
    assert adapter.config.fallback_enabled is True


# =============================================================================
# Lookup
# =============================================================================


class TestGetEmployeeById:
    @pytest.mark.asyncio
    async def test_found(self, adapter, mock_session, context):
        mock_session.execute.return_value = query_result(scalar=make_user())

        result = await adapter.get_employee_by_id(1, context)

        assert result.success is True
        assert isinstance(result.data, Employee)
        assert result.data.id == 1
        assert result.data.email == "jordan.chen@acme.com"
        assert "users.organization_id" in executed_sql(mock_session)

    @pytest.mark.asyncio
    async def test_not_found_is_success_with_none(self, adapter, mock_session, context):
        mock_session.execute.return_value = query_result(scalar=None)

        result = await adapter.get_employee_by_id(999, context)

        assert result.success is True
        assert result.data is None

    @pytest.mark.asyncio
    async def test_invalid_id(self, adapter, mock_session, context):
        result = await adapter.get_employee_by_id(0, context)

        assert result.success is False
        assert result.error.code == "ADAPTER_ERROR"
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_adapter_disabled(self, adapter, flag_evaluator, session_factory, context):
        flag_evaluator.evaluate_flag.return_value = FlagEvaluation(value=False)

        result = await adapter.get_employee_by_id(1, context)

        assert result.error.code == "ADAPTER_ERROR"
        session_factory.assert_not_called()


# =============================================================================
# Listing
# =============================================================================


class TestGetEmployees:
    @pytest.mark.asyncio
    async def test_paginates(self, adapter, mock_session, context):
        mock_session.execute.side_effect = [
            query_result(scalars=[make_user(id=11), make_user(id=12, email="sam@acme.com")]),
            query_result(scalar=25),
        ]

        result = await adapter.get_employees({"page": 2, "limit": 10}, None, context)

        assert result.success is True
        assert [e.id for e in result.data] == [11, 12]
        assert result.pagination.current_page == 2
        assert result.pagination.total_pages == 3
        assert result.pagination.total_count == 25
        assert result.pagination.has_next is True
        assert result.pagination.has_prev is True

    @pytest.mark.asyncio
    async def test_unknown_sort_column_falls_back(self, adapter, mock_session, context):
        mock_session.execute.side_effect = [query_result(), query_result(scalar=0)]

        await adapter.get_employees({"sort_by": "password"}, None, context)

        assert "ORDER BY users.created_at DESC" in executed_sql(mock_session)

    @pytest.mark.asyncio
    async def test_sort_ascending(self, adapter, mock_session, context):
        mock_session.execute.side_effect = [query_result(), query_result(scalar=0)]

        await adapter.get_employees({"sort_by": "surname", "sort_order": "asc"}, None, context)

        assert "ORDER BY users.surname ASC" in executed_sql(mock_session)

    @pytest.mark.asyncio
    async def test_filters_and_search(self, adapter, mock_session, context):
        mock_session.execute.side_effect = [query_result(), query_result(scalar=0)]

        result = await adapter.get_employees(
            {"search": "chen"},
            {"department": "Sales", "is_active": False},
            context,
        )

        assert result.success is True
        assert result.data == []
        assert result.pagination.total_pages == 0
        sql = executed_sql(mock_session)
        assert "users.department" in sql
        assert "users.status" in sql
        assert "lower(users.email) LIKE lower(" in sql

    @pytest.mark.asyncio
    async def test_invalid_pagination(self, adapter, mock_session, context):
        result = await adapter.get_employees({"limit": 500}, None, context)

        assert result.success is False
        assert result.error.code == "ADAPTER_ERROR"
        assert result.pagination is None
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled(self, adapter, flag_evaluator, context):
        flag_evaluator.evaluate_flag.return_value = FlagEvaluation(value=False)

        result = await adapter.get_employees(None, None, context)

        assert result.success is False
        assert result.error.code == "ADAPTER_ERROR"


# =============================================================================
# Mutations
# =============================================================================


class TestCreateEmployee:
    @pytest.mark.asyncio
    async def test_creates_in_context_organization(self, adapter, mock_session, context):
        result = await adapter.create_employee(
            {"username": "asmith", "email": "alex.smith@acme.com", "name": "Alex"},
            context,
        )

        assert result.success is True
        assert result.data.id == 101
        assert result.data.organization_id == 42
        assert result.data.status == "active"

        added = mock_session.add.call_args.args[0]
        assert isinstance(added, UserModel)
        assert added.organization_id == 42
        assert added.role_type == "employee"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_requires_organization(self, adapter, mock_session):
        context = AdapterContext(user_id=7)

        result = await adapter.create_employee(
            {"username": "asmith", "email": "alex.smith@acme.com", "name": "Alex"},
            context,
        )

        assert result.error.code == "ADAPTER_ERROR"
        assert result.error.message == "Organization ID is required"
        mock_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_email(self, adapter, mock_session, context):
        result = await adapter.create_employee(
            {"username": "asmith", "email": "not-an-email", "name": "Alex"}, context
        )

        assert result.error.code == "ADAPTER_ERROR"
        assert result.error.message.startswith("Validation failed: ")
        mock_session.add.assert_not_called()


class TestUpdateEmployee:
    @pytest.mark.asyncio
    async def test_partial_update(self, adapter, mock_session, context):
        user = make_user()
        mock_session.execute.return_value = query_result(scalar=user)

        result = await adapter.update_employee(1, {"job_title": "Senior AE"}, context)

        assert result.success is True
        assert result.data.job_title == "Senior AE"
        assert result.data.department == "Sales"
        assert user.job_title == "Senior AE"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_found(self, adapter, mock_session, context):
        mock_session.execute.return_value = query_result(scalar=None)

        result = await adapter.update_employee(1, {"job_title": "Senior AE"}, context)

        assert result.success is False
        assert result.error.code == "NOT_FOUND"
        assert result.error.message == "Employee not found or access denied"
        mock_session.commit.assert_not_awaited()


class TestDeactivateEmployee:
    @pytest.mark.asyncio
    async def test_soft_deletes(self, adapter, mock_session, context):
        user = make_user()
        mock_session.execute.return_value = query_result(scalar=user)

        result = await adapter.deactivate_employee(1, "Left the company", context)

        assert result.success is True
        assert result.data is True
        assert user.status == "inactive"
        assert user.deactivation_reason == "Left the company"
        assert user.deactivated_at is not None
        mock_session.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_found(self, adapter, mock_session, context):
        mock_session.execute.return_value = query_result(scalar=None)

        result = await adapter.deactivate_employee(1, "Left the company", context)

        assert result.error.code == "NOT_FOUND"


# =============================================================================
# Search and statistics
# =============================================================================


class TestSearchEmployees:
    @pytest.mark.asyncio
    async def test_blank_query(self, adapter, session_factory, context):
        result = await adapter.search_employees("   ", context)

        assert result.success is True
        assert result.data == []
        session_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_matches(self, adapter, mock_session, context):
        mock_session.execute.return_value = query_result(scalars=[make_user()])

        result = await adapter.search_employees("jor", context, limit=5)

        assert [e.name for e in result.data] == ["Jordan"]
        sql = executed_sql(mock_session)
        assert "users.job_title" in sql
        assert "LIMIT" in sql

    @pytest.mark.asyncio
    async def test_limit_validated(self, adapter, context):
        result = await adapter.search_employees("jor", context, limit=0)

        assert result.error.code == "ADAPTER_ERROR"


class TestEmployeeStats:
    @pytest.mark.asyncio
    async def test_stats(self, adapter, mock_session, context):
        mock_session.execute.side_effect = [
            query_result(scalar=10),
            query_result(scalar=8),
            query_result(rows=[("Sales", 5), ("Engineering", 3), (None, 2)]),
            query_result(rows=[("employee", 8), ("manager", 2)]),
            query_result(scalar=1),
        ]

        result = await adapter.get_employee_stats(context)

        assert result.data == EmployeeStats(
            total_employees=10,
            active_employees=8,
            department_breakdown={"Sales": 5, "Engineering": 3},
            role_breakdown={"employee": 8, "manager": 2},
            recent_hires=1,
        )

    @pytest.mark.asyncio
    async def test_stats_serialize_camel_case(self, adapter, mock_session, context):
        mock_session.execute.side_effect = [
            query_result(scalar=0),
            query_result(scalar=0),
            query_result(),
            query_result(),
            query_result(scalar=0),
        ]

        result = await adapter.get_employee_stats(context)

        assert set(result.data.model_dump(by_alias=True)) == {
            "totalEmployees",
            "activeEmployees",
            "departmentBreakdown",
            "roleBreakdown",
            "recentHires",
        }
