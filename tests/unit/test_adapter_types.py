"""
Unit tests for engagehub.adapters.types - Envelope, Context and Pagination Types.

Tests the AdapterResult success/failure shapes, AdapterContext defaults and
immutability, pagination arithmetic, and PaginatedResult lifting.
"""

import pytest
from pydantic import ValidationError

from engagehub.adapters.types import (
    AdapterConfig,
    AdapterContext,
    AdapterErrorInfo,
    AdapterResult,
    Page,
    PaginatedResult,
    PaginationInfo,
    ResultMetadata,
)

# ============================================================================
# AdapterContext
# ============================================================================


class TestAdapterContext:
    def test_generates_request_id(self):
        context = AdapterContext(user_id=7, organization_id=42)
        prefix, millis, suffix = context.request_id.split("_")
        assert prefix == "req"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_request_ids_are_unique(self):
        assert AdapterContext().request_id != AdapterContext().request_id

    def test_explicit_request_id_kept(self):
        context = AdapterContext(request_id="req_trace_1")
        assert context.request_id == "req_trace_1"

    def test_empty_request_id_replaced(self):
        assert AdapterContext(request_id="").request_id.startswith("req_")
        assert AdapterContext(request_id=None).request_id.startswith("req_")

    def test_is_immutable(self):
        context = AdapterContext(user_id=7)
        with pytest.raises(ValidationError):
            context.user_id = 8

    def test_accepts_camel_case(self):
        context = AdapterContext.model_validate({"userId": 7, "organizationId": 42})
        assert context.user_id == 7
        assert context.organization_id == 42


class TestAdapterConfig:
    def test_defaults(self):
        config = AdapterConfig(adapter_name="test-adapter", version="1.0.0")
        assert config.feature_flag is None
        assert config.cache_enabled is False
        assert config.fallback_enabled is False
        assert config.rate_limit_enabled is False
        assert config.operation_timeout == 30.0

    def test_requires_name(self):
        with pytest.raises(ValidationError):
            AdapterConfig(adapter_name="", version="1.0.0")


# ============================================================================
# AdapterResult
# ============================================================================


class TestAdapterResult:
    def test_ok(self):
        result = AdapterResult.ok({"id": 1})
        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error is None

    def test_ok_allows_none_data(self):
        result = AdapterResult.ok(None)
        assert result.success is True
        assert result.data is None

    def test_fail(self):
        result = AdapterResult.fail("NOT_FOUND", "Employee not found", {"id": 3})
        assert result.success is False
        assert result.data is None
        assert result.error == AdapterErrorInfo(
            code="NOT_FOUND", message="Employee not found", details={"id": 3}
        )

    def test_failure_requires_error(self):
        with pytest.raises(ValidationError):
            AdapterResult(success=False)

    def test_failure_rejects_data(self):
        with pytest.raises(ValidationError):
            AdapterResult(
                success=False,
                data=[1],
                error=AdapterErrorInfo(code="ADAPTER_ERROR", message="boom"),
            )

    def test_success_rejects_error(self):
        with pytest.raises(ValidationError):
            AdapterResult(
                success=True,
                error=AdapterErrorInfo(code="ADAPTER_ERROR", message="boom"),
            )

    def test_serializes_camel_case(self):
        result = AdapterResult.ok(
            [1], ResultMetadata(execution_time=12, adapter_version="1.0.0")
        )
        dumped = result.model_dump(by_alias=True)
        assert dumped["metadata"] == {
            "executionTime": 12,
            "cacheHit": False,
            "fallbackUsed": False,
            "adapterVersion": "1.0.0",
        }


# ============================================================================
# Pagination
# ============================================================================


class TestPaginationInfo:
    def test_middle_page(self):
        info = PaginationInfo.build(page=2, limit=10, total_count=25)
        assert info.total_pages == 3
        assert info.has_next is True
        assert info.has_prev is True

    def test_last_page(self):
        info = PaginationInfo.build(page=3, limit=10, total_count=30)
        assert info.total_pages == 3
        assert info.has_next is False
        assert info.has_prev is True

    def test_empty_result(self):
        info = PaginationInfo.build(page=1, limit=50, total_count=0)
        assert info.total_pages == 0
        assert info.has_next is False
        assert info.has_prev is False

    def test_page_past_the_end(self):
        info = PaginationInfo.build(page=5, limit=10, total_count=12)
        assert info.total_pages == 2
        assert info.has_next is False
        assert info.has_prev is True

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError, match="limit must be positive"):
            PaginationInfo.build(page=1, limit=0, total_count=10)

    def test_serializes_camel_case(self):
        dumped = PaginationInfo.build(1, 10, 11).model_dump(by_alias=True)
        assert dumped == {
            "currentPage": 1,
            "totalPages": 2,
            "totalCount": 11,
            "limit": 10,
            "hasNext": True,
            "hasPrev": False,
        }


class TestPaginatedResult:
    def test_lifts_page(self):
        pagination = PaginationInfo.build(1, 2, 5)
        page = Page[int](items=[1, 2], pagination=pagination)

        result = PaginatedResult.from_page_result(AdapterResult.ok(page))

        assert result.success is True
        assert result.data == [1, 2]
        assert result.pagination == pagination

    def test_keeps_failure(self):
        failed = AdapterResult.fail("ADAPTER_ERROR", "Adapter x is disabled")

        result = PaginatedResult.from_page_result(failed)

        assert result.success is False
        assert result.data is None
        assert result.pagination is None
        assert result.error.code == "ADAPTER_ERROR"

    def test_fallback_none_becomes_empty_list(self):
        result = PaginatedResult.from_page_result(AdapterResult.ok(None))
        assert result.success is True
        assert result.data == []
        assert result.pagination is None
