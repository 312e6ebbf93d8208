"""
engagehub.adapters.validation - Schema Validation for Adapter Input/Output

Thin wrapper over pydantic that turns validation failures into
AdapterValidationError ("Validation failed: ..."), plus the reusable
constraints shared by the concrete adapters.

Usage:
    >>> from engagehub.adapters.validation import AdapterValidator, PaginationOptions
    >>> AdapterValidator.validate(PaginationOptions, {"page": 2})
    PaginationOptions(page=2, limit=50, sort_by=None, sort_order='desc', search=None, filters=None)
"""

from typing import Annotated, Any, Literal, TypeVar, overload

from pydantic import (
    BaseModel,
    EmailStr,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)

from engagehub.adapters.exceptions import AdapterValidationError

M = TypeVar("M", bound=BaseModel)

# ============================================================================
# Common constraints
# ============================================================================

PositiveId = Annotated[int, Field(gt=0)]
OrganizationId = PositiveId
UserId = PositiveId
Email = EmailStr
Name = Annotated[str, StringConstraints(min_length=1, max_length=100)]
Description = Annotated[str, StringConstraints(max_length=1000)]
SortOrder = Literal["asc", "desc"]


class PaginationOptions(BaseModel):
    """Pagination, sorting and free-text search for list operations."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
    sort_by: str | None = None
    sort_order: SortOrder = "desc"
    search: str | None = None
    filters: dict[str, Any] | None = None

    @property
    def offset(self) -> int:
        """Row offset of the first item on this page."""
        return (self.page - 1) * self.limit


# ============================================================================
# Validator
# ============================================================================


class AdapterValidator:
    """
    Schema validation helper used by every adapter operation.

    ``schema`` is either a pydantic model class or any type pydantic can build
    a TypeAdapter for (``list[Employee]``, ``PositiveId``, ...).
    """

    @overload
    @staticmethod
    def validate(schema: type[M], data: Any) -> M: ...

    @overload
    @staticmethod
    def validate(schema: Any, data: Any) -> Any: ...

    @staticmethod
    def validate(schema: Any, data: Any) -> Any:
        """
        Validate ``data`` against ``schema`` and return the parsed value.

        Defaults and coercion declared by the schema are applied.

        Raises:
            AdapterValidationError: With message ``"Validation failed: <details>"``.
        """
        try:
            if isinstance(schema, type) and issubclass(schema, BaseModel):
                return schema.model_validate(data)
            return TypeAdapter(schema).validate_python(data)
        except ValidationError as e:
            raise AdapterValidationError(f"Validation failed: {e}") from e

    @staticmethod
    def optional(schema: Any, data: Any) -> Any:
        """Return None for None input without invoking the schema; otherwise validate."""
        if data is None:
            return None
        return AdapterValidator.validate(schema, data)


__all__ = [
    "AdapterValidator",
    "Description",
    "Email",
    "Name",
    "OrganizationId",
    "PaginationOptions",
    "PositiveId",
    "SortOrder",
    "UserId",
]
