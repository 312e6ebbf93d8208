"""
Unit tests for the adapter API endpoints.

Tests cover:
- Health and metrics observability routes
- Admin guard and request validation on rollout administration
- Demo routes with the adapter enabled, disabled and failing
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from engagehub.adapters.factory import AdapterFactory, AdapterRolloutConfig, AdapterType
from engagehub.adapters.types import (
    AdapterResult,
    HealthStatus,
    OperationMetrics,
    PaginatedResult,
    PaginationInfo,
    ResultMetadata,
)
from engagehub.api.main import create_app
from engagehub.settings import EngageSettings

ADMIN_HEADERS = {"X-User-Id": "7", "X-Organization-Id": "42", "X-User-Role": "admin"}
USER_HEADERS = {"X-User-Id": "7", "X-Organization-Id": "42"}

# =============================================================================
# Fixtures
# =============================================================================


def health(name):
    return HealthStatus(
        status="healthy",
        adapter_name=name,
        version="1.0.0",
        uptime=12.5,
        operation_count=3,
        average_response_time=40,
        error_rate=0.0,
    )


@pytest.fixture
def factory():
    factory = MagicMock(spec=AdapterFactory)
    factory.get_all_adapter_health.return_value = {
        "employee": health("employee-adapter"),
        "recognition": health("recognition-adapter"),
        "social": health("social-adapter"),
    }
    factory.get_adapter_metrics.return_value = {}
    factory.enable_adapter_for_organization = AsyncMock()
    factory.disable_adapter_for_organization = AsyncMock()
    factory.configure_organization_adapters = AsyncMock()
    factory.migrate_organization_to_adapters = AsyncMock()
    factory.get_employee_adapter = AsyncMock(return_value=None)
    factory.get_recognition_adapter = AsyncMock(return_value=None)
    factory.get_social_adapter = AsyncMock(return_value=None)
    return factory


@pytest.fixture
def app(factory):
    app = create_app(EngageSettings(_env_file=None))
    app.state.adapter_factory = factory
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_lifespan_seeds_adapter_flags():
    engine = MagicMock()
    engine.dispose = AsyncMock()
    flag_service = MagicMock()
    flag_service.seed_adapter_flags = AsyncMock(return_value=[])
    app = create_app(EngageSettings(_env_file=None))

    with (
        patch("engagehub.api.main.get_engine", return_value=engine),
        patch("engagehub.api.main.get_sessionmaker", return_value=MagicMock()),
        patch("engagehub.api.main.FeatureFlagService", return_value=flag_service),
        TestClient(app),
    ):
        flag_service.seed_adapter_flags.assert_awaited_once()
        assert app.state.adapter_factory is not None

    engine.dispose.assert_awaited_once()


def test_factory_not_initialized():
    client = TestClient(create_app(EngageSettings(_env_file=None)))

    response = client.get("/api/v1/adapters/health")

    assert response.status_code == 503


# =============================================================================
# Observability
# =============================================================================


class TestObservabilityEndpoints:
    def test_adapter_health(self, client):
        response = client.get("/api/v1/adapters/health")

        assert response.status_code == 200
        body = response.json()
        assert set(body["adapters"]) == {"employee", "recognition", "social"}
        assert body["adapters"]["employee"]["adapterName"] == "employee-adapter"
        assert body["adapters"]["employee"]["averageResponseTime"] == 40
        assert body["systemUptime"] >= 0
        assert "timestamp" in body

    def test_adapter_metrics(self, client, factory):
        factory.get_adapter_metrics.return_value = {
            "employee-adapter.get_employees": OperationMetrics(
                operation_count=2,
                average_time=230,
                min_time=120,
                max_time=340,
                last_execution_time=340,
            )
        }

        response = client.get("/api/v1/adapters/employee/metrics")

        assert response.status_code == 200
        body = response.json()
        assert body["adapterType"] == "employee"
        assert body["metrics"]["employee-adapter.get_employees"]["averageTime"] == 230
        factory.get_adapter_metrics.assert_called_once_with(AdapterType.EMPLOYEE)

    def test_unknown_adapter_type(self, client):
        response = client.get("/api/v1/adapters/payroll/metrics")
        assert response.status_code == 422

    def test_metrics_not_found(self, client, factory):
        factory.get_adapter_metrics.return_value = None

        response = client.get("/api/v1/adapters/social/metrics")

        assert response.status_code == 404


# =============================================================================
# Rollout administration
# =============================================================================


class TestRolloutEndpoints:
    def test_requires_user(self, client):
        response = client.post(
            "/api/v1/adapters/organizations/42/enable",
            json={"adapterType": "employee"},
        )
        assert response.status_code == 401

    def test_requires_admin_role(self, client, factory):
        response = client.post(
            "/api/v1/adapters/organizations/42/enable",
            json={"adapterType": "employee"},
            headers={**USER_HEADERS, "X-User-Role": "employee"},
        )

        assert response.status_code == 403
        factory.enable_adapter_for_organization.assert_not_awaited()

    def test_enable(self, client, factory):
        response = client.post(
            "/api/v1/adapters/organizations/42/enable",
            json={"adapterType": "employee", "rolloutPercentage": 10},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["organizationId"] == 42
        factory.enable_adapter_for_organization.assert_awaited_once_with(
            AdapterType.EMPLOYEE, 42, 10, 7
        )

    def test_enable_rejects_bad_percentage(self, client):
        response = client.post(
            "/api/v1/adapters/organizations/42/enable",
            json={"adapterType": "employee", "rolloutPercentage": 150},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 422

    def test_enable_failure(self, client, factory):
        factory.enable_adapter_for_organization.side_effect = RuntimeError("db down")

        response = client.post(
            "/api/v1/adapters/organizations/42/enable",
            json={"adapterType": "employee"},
            headers={**ADMIN_HEADERS, "X-User-Role": "corporate_admin"},
        )

        assert response.status_code == 500

    def test_disable(self, client, factory):
        response = client.post(
            "/api/v1/adapters/organizations/42/disable",
            json={"adapterType": "social"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        factory.disable_adapter_for_organization.assert_awaited_once_with(
            AdapterType.SOCIAL, 42, 7
        )

    def test_configure(self, client, factory):
        response = client.post(
            "/api/v1/adapters/organizations/42/configure",
            json={
                "adapters": {
                    "employee": {"enabled": True, "rollout_percentage": 10},
                    "social": {"enabled": False},
                }
            },
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        factory.configure_organization_adapters.assert_awaited_once_with(
            42,
            {
                "employee": AdapterRolloutConfig(enabled=True, rollout_percentage=10),
                "social": AdapterRolloutConfig(enabled=False),
            },
            7,
        )

    def test_migrate(self, client, factory):
        response = client.post(
            "/api/v1/adapters/organizations/42/migrate",
            json={"strategy": {"employee": True}},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        args = factory.migrate_organization_to_adapters.await_args.args
        assert args[0] == 42
        assert args[1].employee is True
        assert args[1].social is False
        assert args[2:] == (10, 7)


# =============================================================================
# Demo routes
# =============================================================================


class TestDemoEndpoints:
    def test_employees_adapter_disabled(self, client):
        response = client.get("/api/v1/demo/employees", headers=USER_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["adapterUsed"] is False
        assert body["data"] == []
        assert body["message"] == (
            "Employee adapter is disabled via feature flag - using fallback"
        )

    def test_employees_through_adapter(self, client, factory):
        adapter = MagicMock()
        adapter.get_employees = AsyncMock(
            return_value=PaginatedResult(
                success=True,
                data=[{"id": 1, "name": "Jordan"}],
                pagination=PaginationInfo.build(1, 10, 1),
                metadata=ResultMetadata(execution_time=12, adapter_version="1.0.0"),
            )
        )
        factory.get_employee_adapter.return_value = adapter

        response = client.get("/api/v1/demo/employees", headers=USER_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["adapterUsed"] is True
        assert body["data"] == [{"id": 1, "name": "Jordan"}]
        assert body["pagination"]["totalCount"] == 1
        assert body["metadata"]["executionTime"] == 12

        page, filters, context = adapter.get_employees.await_args.args
        assert page == {"page": 1, "limit": 10}
        assert filters is None
        assert context.organization_id == 42
        assert context.user_id == 7

    def test_employees_adapter_failure(self, client, factory):
        adapter = MagicMock()
        adapter.get_employees = AsyncMock(
            return_value=PaginatedResult(
                success=False,
                error={"code": "ADAPTER_ERROR", "message": "db down"},
            )
        )
        factory.get_employee_adapter.return_value = adapter

        response = client.get("/api/v1/demo/employees", headers=USER_HEADERS)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["adapterUsed"] is True
        assert body["error"]["code"] == "ADAPTER_ERROR"

    def test_request_id_header_propagated(self, client, factory):
        client.get("/api/v1/demo/employees", headers={**USER_HEADERS, "X-Request-Id": "req_abc"})

        context = factory.get_employee_adapter.await_args.args[0]
        assert context.request_id == "req_abc"

    def test_recognition_settings_disabled(self, client):
        response = client.get("/api/v1/demo/recognition/settings", headers=USER_HEADERS)

        assert response.status_code == 200
        assert response.json()["data"] is None
        assert response.json()["adapterUsed"] is False

    def test_recognition_settings(self, client, factory):
        adapter = MagicMock()
        adapter.get_recognition_settings = AsyncMock(
            return_value=AdapterResult.ok({"peerEnabled": True})
        )
        factory.get_recognition_adapter.return_value = adapter

        response = client.get("/api/v1/demo/recognition/settings", headers=USER_HEADERS)

        assert response.json()["data"] == {"peerEnabled": True}
        assert response.json()["adapterUsed"] is True

    def test_social_feed(self, client, factory):
        adapter = MagicMock()
        adapter.get_feed_posts = AsyncMock(
            return_value=PaginatedResult(
                success=True, data=[], pagination=PaginationInfo.build(1, 5, 0)
            )
        )
        factory.get_social_adapter.return_value = adapter

        response = client.get("/api/v1/demo/social/feed", headers=USER_HEADERS)

        assert response.status_code == 200
        assert response.json()["pagination"]["totalPages"] == 0
        assert adapter.get_feed_posts.await_args.args[0] == {"page": 1, "limit": 5}
