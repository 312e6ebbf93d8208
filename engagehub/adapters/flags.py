"""
engagehub.adapters.flags - Feature-Flag Evaluator Interface

The adapter layer never talks to flag storage directly. It consumes any
object satisfying the FeatureFlagEvaluator protocol; the default
implementation is engagehub.services.feature_flags.FeatureFlagService.
"""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

EvaluationReason = Literal["default", "rollout", "override", "disabled"]
RolloutStrategy = Literal["all", "whitelist", "percentage"]


def adapter_flag_key(adapter_type: str) -> str:
    """Flag key gating an adapter type, e.g. ``employee_adapter_enabled``."""
    return f"{adapter_type}_adapter_enabled"


class FlagContext(BaseModel):
    """Who a flag is being evaluated for."""

    user_id: int | None = None
    organization_id: int | None = None
    environment: str = "development"
    request_context: dict[str, Any] | None = None


class FlagEvaluation(BaseModel):
    """Outcome of a single flag evaluation."""

    value: bool | int | float | str
    reason: EvaluationReason = "default"
    metadata: dict[str, Any] = Field(default_factory=dict)


class OrganizationFlagConfig(BaseModel):
    """Organization-scoped flag override written by rollout administration."""

    is_enabled: bool
    rollout_percentage: int = Field(default=0, ge=0, le=100)
    rollout_strategy: RolloutStrategy = "percentage"
    rollout_config: dict[str, Any] | None = None
    environment: str = "production"
    enabled_by: int | None = None


class FeatureFlagEvaluator(Protocol):
    """
    Protocol for the feature-flag collaborator.

    Called on every adapter operation, so implementations should be cheap
    (cached) and safe to call concurrently.
    """

    async def evaluate_flag(self, flag_key: str, context: FlagContext) -> FlagEvaluation:
        """Evaluate ``flag_key`` for ``context``. May raise."""
        ...

    async def set_organization_flag(
        self,
        flag_key: str,
        organization_id: int,
        config: OrganizationFlagConfig,
    ) -> Any:
        """Write an organization-scoped override for ``flag_key``. May raise."""
        ...


__all__ = [
    "EvaluationReason",
    "FeatureFlagEvaluator",
    "FlagContext",
    "FlagEvaluation",
    "OrganizationFlagConfig",
    "RolloutStrategy",
    "adapter_flag_key",
]
