"""
engagehub.models - SQLAlchemy Database Models

Models are organized by domain:
- base: Base model classes with common functionality
- organization: Organization, User
- recognition: RecognitionSettings, Recognition
- social: Post, Comment, Reaction
- feature_flag: FeatureFlag, OrganizationFeatureFlag, UserFeatureFlagOverride,
  FeatureFlagEvaluation

Usage:
    >>> from engagehub.models import User
    >>> from engagehub.models.database import get_db
    >>>
    >>> async with get_db() as db:
    ...     users = (await db.execute(select(User))).scalars().all()
"""

from engagehub.models.base import Base
from engagehub.models.feature_flag import (
    FeatureFlag,
    FeatureFlagEvaluation,
    OrganizationFeatureFlag,
    UserFeatureFlagOverride,
)
from engagehub.models.organization import Organization, User
from engagehub.models.recognition import Recognition, RecognitionSettings
from engagehub.models.social import REACTION_TYPES, Comment, Post, Reaction

__all__ = [
    "REACTION_TYPES",
    "Base",
    "Comment",
    "FeatureFlag",
    "FeatureFlagEvaluation",
    "Organization",
    "OrganizationFeatureFlag",
    "Post",
    "Reaction",
    "Recognition",
    "RecognitionSettings",
    "User",
    "UserFeatureFlagOverride",
]
