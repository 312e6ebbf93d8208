"""
engagehub.models.social - Social Feed Models

- Post: Feed post authored by a user
- Comment: Comment on a post
- Reaction: Reaction to a post or a comment
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import Base, IntegerIdModel, TimestampedModel

REACTION_TYPES = ("like", "celebrate", "insightful", "love", "funny")


class Post(IntegerIdModel, TimestampedModel, Base):
    """Feed post. Organization scope comes from the author."""

    __tablename__ = "posts"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("''")
    )
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'standard'"),
        comment="Post type (standard, recognition, announcement, celebration)",
    )
    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    __table_args__ = (Index("idx_posts_created_at", "created_at"),)


class Comment(IntegerIdModel, TimestampedModel, Base):
    """Comment on a post."""

    __tablename__ = "comments"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)


class Reaction(IntegerIdModel, Base):
    """
    Reaction by a user. Exactly one of ``post_id`` / ``comment_id`` is set.
    """

    __tablename__ = "reactions"

    post_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    comment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=text("'like'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        CheckConstraint(
            "(post_id IS NULL) <> (comment_id IS NULL)",
            name="ck_reactions_single_target",
        ),
        Index("idx_reactions_post_user", "post_id", "user_id"),
        Index("idx_reactions_comment_user", "comment_id", "user_id"),
    )
