"""
Unit tests for engagehub.adapters.validation - AdapterValidator and constraints.
"""

import pytest
from pydantic import BaseModel

from engagehub.adapters.exceptions import AdapterValidationError
from engagehub.adapters.validation import (
    AdapterValidator,
    Email,
    Name,
    PaginationOptions,
    PositiveId,
)


class _Widget(BaseModel):
    name: Name
    quantity: int = 1


class TestValidate:
    def test_returns_parsed_model(self):
        widget = AdapterValidator.validate(_Widget, {"name": "Bolt"})
        assert widget == _Widget(name="Bolt", quantity=1)

    def test_applies_coercion(self):
        assert AdapterValidator.validate(PositiveId, "42") == 42

    def test_failure_message(self):
        with pytest.raises(AdapterValidationError, match="^Validation failed: ") as exc_info:
            AdapterValidator.validate(_Widget, {"name": ""})
        assert exc_info.value.code == "ADAPTER_ERROR"

    def test_rejects_non_positive_id(self):
        with pytest.raises(AdapterValidationError):
            AdapterValidator.validate(PositiveId, 0)

    def test_rejects_bad_email(self):
        with pytest.raises(AdapterValidationError):
            AdapterValidator.validate(Email, "not-an-email")

    def test_accepts_email(self):
        assert AdapterValidator.validate(Email, "jordan.chen@acme.com") == "jordan.chen@acme.com"

    def test_name_length_limit(self):
        with pytest.raises(AdapterValidationError):
            AdapterValidator.validate(Name, "x" * 101)


class TestOptional:
    def test_none_skips_schema(self):
        assert AdapterValidator.optional(_Widget, None) is None

    def test_value_is_validated(self):
        assert AdapterValidator.optional(_Widget, {"name": "Nut"}).name == "Nut"

    def test_invalid_value_raises(self):
        with pytest.raises(AdapterValidationError):
            AdapterValidator.optional(_Widget, {"quantity": 3})


class TestPaginationOptions:
    def test_defaults(self):
        options = AdapterValidator.validate(PaginationOptions, {})
        assert options.page == 1
        assert options.limit == 50
        assert options.sort_order == "desc"
        assert options.offset == 0

    def test_offset(self):
        assert PaginationOptions(page=3, limit=20).offset == 40

    @pytest.mark.parametrize(
        "payload",
        [{"page": 0}, {"limit": 0}, {"limit": 101}, {"sort_order": "sideways"}],
    )
    def test_rejects_out_of_range(self, payload):
        with pytest.raises(AdapterValidationError):
            AdapterValidator.validate(PaginationOptions, payload)
