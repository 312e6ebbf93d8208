"""
engagehub.services - Application Services

- feature_flags: Database-backed feature flag evaluation and administration
"""

from engagehub.services.feature_flags import (
    FeatureFlagError,
    FeatureFlagService,
    FlagDefinition,
    FlagUpsert,
)

__all__ = [
    "FeatureFlagError",
    "FeatureFlagService",
    "FlagDefinition",
    "FlagUpsert",
]
