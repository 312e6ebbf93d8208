"""
engagehub.adapters.social - Social Features Adapter

Standardized interface for the social feed: posts, comments, reactions
and engagement statistics. Posts are scoped to an organization through
their author.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, StringConstraints
from sqlalchemy import and_, func, null, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.adapters.base import BaseAdapter, require_organization
from engagehub.adapters.exceptions import (
    AdapterError,
    AdapterNotFoundError,
    AdapterValidationError,
)
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
    PaginationOptions,
    PositiveId,
    UserId,
)
from engagehub.models.base import utcnow
from engagehub.models.organization import User as UserModel
from engagehub.models.social import (
    Comment as CommentModel,
    Post as PostModel,
    Reaction as ReactionModel,
)

logger = logging.getLogger(__name__)

PostType = Literal["standard", "recognition", "announcement", "celebration"]
ReactionType = Literal["like", "celebrate", "insightful", "love", "funny"]
ReactionAction = Literal["added", "updated", "removed"]
SocialStatsPeriod = Literal["week", "month", "quarter"]

PERIOD_DAYS: dict[str, int] = {"week": 7, "month": 30, "quarter": 90}

TOP_POSTERS_LIMIT = 5


# ============================================================================
# Schemas
# ============================================================================


class PostCreate(BaseModel):
    user_id: UserId
    content: Annotated[str, StringConstraints(max_length=2000)] | None = None
    image_url: Annotated[str, StringConstraints(max_length=500)] | None = None
    type: PostType = "standard"
    tags: list[str] | None = None


class Post(PostCreate):
    model_config = ConfigDict(from_attributes=True)

    id: PositiveId
    created_at: datetime
    updated_at: datetime


class CommentCreate(BaseModel):
    """New comment; ``user_id`` defaults to the acting user."""

    user_id: UserId | None = None
    content: Annotated[str, StringConstraints(min_length=1, max_length=1000)]


class Comment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: PositiveId
    post_id: PositiveId
    user_id: UserId
    content: Annotated[str, StringConstraints(min_length=1, max_length=1000)]
    created_at: datetime
    updated_at: datetime


class Reaction(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: PositiveId
    post_id: PositiveId | None = None
    comment_id: PositiveId | None = None
    user_id: UserId
    type: ReactionType = "like"
    created_at: datetime


class FeedAuthor(BaseModel):
    name: str
    avatar_url: str | None = None
    job_title: str | None = None


class FeedPost(Post):
    """Post with author details and engagement counts for the feed."""

    user: FeedAuthor
    reaction_count: int = 0
    comment_count: int = 0
    user_reaction: ReactionType | None = None


class FeedComment(Comment):
    user: FeedAuthor
    reaction_count: int = 0
    user_reaction: ReactionType | None = None


class ReactionToggle(BaseModel):
    """Outcome of toggling a reaction; ``reaction`` is None when removed."""

    action: ReactionAction
    reaction: Reaction | None = None


class TopPoster(WireModel):
    user_id: int
    name: str
    post_count: int


class SocialStats(WireModel):
    """Feed activity for one period. ``engagement_rate`` is interactions per 100 posts."""

    total_posts: int
    total_comments: int
    total_reactions: int
    active_users: int
    top_posters: list[TopPoster]
    engagement_rate: float


# ============================================================================
# Adapter
# ============================================================================


class SocialAdapter(BaseAdapter):
    """Adapter for the social feed."""

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
                adapter_name="social-adapter",
                version="1.0.0",
                feature_flag=adapter_flag_key("social"),
                cache_enabled=True,
                cache_ttl=60,
                fallback_enabled=True,
                operation_timeout=operation_timeout,
            ),
            flag_evaluator,
            **kwargs,
        )
        self.session_factory = session_factory

    async def get_feed_posts(
        self,
        pagination: PaginationOptions | dict[str, Any] | None,
        context: AdapterContext,
    ) -> PaginatedResult[FeedPost]:
        """Organization feed, newest first, with counts and the caller's own reaction."""

        async def _op() -> Page[FeedPost]:
            options = AdapterValidator.validate(PaginationOptions, pagination or {})
            organization_id = require_organization(context)

            reaction_count = (
                select(func.count(ReactionModel.id))
                .where(ReactionModel.post_id == PostModel.id)
                .correlate(PostModel)
                .scalar_subquery()
            )
            comment_count = (
                select(func.count(CommentModel.id))
                .where(CommentModel.post_id == PostModel.id)
                .correlate(PostModel)
                .scalar_subquery()
            )
            user_reaction = self._own_reaction(
                ReactionModel.post_id == PostModel.id, PostModel, context
            )

            stmt = (
                select(
                    PostModel.id,
                    PostModel.user_id,
                    PostModel.content,
                    PostModel.image_url,
                    PostModel.type,
                    PostModel.tags,
                    PostModel.created_at,
                    PostModel.updated_at,
                    UserModel.name.label("user_name"),
                    UserModel.avatar_url.label("user_avatar_url"),
                    UserModel.job_title.label("user_job_title"),
                    reaction_count.label("reaction_count"),
                    comment_count.label("comment_count"),
                    user_reaction.label("user_reaction"),
                )
                .join(UserModel, PostModel.user_id == UserModel.id)
                .where(UserModel.organization_id == organization_id)
                .order_by(PostModel.created_at.desc())
                .limit(options.limit)
                .offset(options.offset)
            )
            count_stmt = (
                select(func.count())
                .select_from(PostModel)
                .join(UserModel, PostModel.user_id == UserModel.id)
                .where(UserModel.organization_id == organization_id)
            )

            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).mappings().all()
                total_count = (await session.execute(count_stmt)).scalar_one()

            return Page[FeedPost](
                items=[FeedPost.model_validate({**row, "user": _author(row)}) for row in rows],
                pagination=PaginationInfo.build(options.page, options.limit, total_count),
            )

        return PaginatedResult.from_page_result(
            await self.execute_operation("get_feed_posts", _op, context)
        )

    async def create_post(
        self, post_data: PostCreate | dict[str, Any], context: AdapterContext
    ) -> AdapterResult[Post]:
        """Create a post. A post needs text content or an image."""

        async def _op() -> Post:
            data = AdapterValidator.validate(PostCreate, post_data)
            if not data.content and not data.image_url:
                raise AdapterValidationError("Post must have content or image")

            post = PostModel(
                user_id=data.user_id,
                content=data.content or "",
                image_url=data.image_url,
                type=data.type,
                tags=data.tags,
            )
            async with self.session_factory() as session:
                session.add(post)
                await session.commit()
                await session.refresh(post)

            return AdapterValidator.validate(Post, post)

        return await self.execute_operation("create_post", _op, context)

    async def get_post_comments(
        self,
        post_id: int,
        pagination: PaginationOptions | dict[str, Any] | None,
        context: AdapterContext,
    ) -> PaginatedResult[FeedComment]:
        """Comments on a post, oldest first."""

        async def _op() -> Page[FeedComment]:
            options = AdapterValidator.validate(PaginationOptions, pagination or {})
            validated_post = AdapterValidator.validate(PositiveId, post_id)

            reaction_count = (
                select(func.count(ReactionModel.id))
                .where(ReactionModel.comment_id == CommentModel.id)
                .correlate(CommentModel)
                .scalar_subquery()
            )
            user_reaction = self._own_reaction(
                ReactionModel.comment_id == CommentModel.id, CommentModel, context
            )

            stmt = (
                select(
                    CommentModel.id,
                    CommentModel.post_id,
                    CommentModel.user_id,
                    CommentModel.content,
                    CommentModel.created_at,
                    CommentModel.updated_at,
                    UserModel.name.label("user_name"),
                    UserModel.avatar_url.label("user_avatar_url"),
                    UserModel.job_title.label("user_job_title"),
                    reaction_count.label("reaction_count"),
                    user_reaction.label("user_reaction"),
                )
                .join(UserModel, CommentModel.user_id == UserModel.id)
                .where(CommentModel.post_id == validated_post)
                .order_by(CommentModel.created_at.asc())
                .limit(options.limit)
                .offset(options.offset)
            )
            count_stmt = (
                select(func.count())
                .select_from(CommentModel)
                .where(CommentModel.post_id == validated_post)
            )

            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).mappings().all()
                total_count = (await session.execute(count_stmt)).scalar_one()

            return Page[FeedComment](
                items=[FeedComment.model_validate({**row, "user": _author(row)}) for row in rows],
                pagination=PaginationInfo.build(options.page, options.limit, total_count),
            )

        return PaginatedResult.from_page_result(
            await self.execute_operation("get_post_comments", _op, context)
        )

    async def create_comment(
        self,
        post_id: int,
        comment_data: CommentCreate | dict[str, Any],
        context: AdapterContext,
    ) -> AdapterResult[Comment]:
        """Comment on a post visible in the context's organization."""

        async def _op() -> Comment:
            data = AdapterValidator.validate(CommentCreate, comment_data)
            user_id = data.user_id or context.user_id
            if not user_id:
                raise AdapterError("User ID is required")

            post_stmt = select(PostModel.id).where(PostModel.id == post_id)
            if context.organization_id:
                post_stmt = post_stmt.join(UserModel, PostModel.user_id == UserModel.id).where(
                    UserModel.organization_id == context.organization_id
                )

            async with self.session_factory() as session:
                if (await session.execute(post_stmt)).scalar_one_or_none() is None:
                    raise AdapterNotFoundError("Post not found")

                comment = CommentModel(post_id=post_id, user_id=user_id, content=data.content)
                session.add(comment)
                await session.commit()
                await session.refresh(comment)

            return AdapterValidator.validate(Comment, comment)

        return await self.execute_operation("create_comment", _op, context)

    async def toggle_post_reaction(
        self, post_id: int, reaction_type: str, context: AdapterContext
    ) -> AdapterResult[ReactionToggle]:
        """
        Toggle the acting user's reaction on a post.

        Same type as the existing reaction removes it, a different type
        replaces it, no existing reaction adds one.
        """

        async def _op() -> ReactionToggle:
            if not context.user_id:
                raise AdapterError("User ID is required")
            validated_type = AdapterValidator.validate(ReactionType, reaction_type)

            stmt = select(ReactionModel).where(
                and_(
                    ReactionModel.post_id == post_id,
                    ReactionModel.user_id == context.user_id,
                )
            )

            async with self.session_factory() as session:
                existing = (await session.execute(stmt)).scalar_one_or_none()

                if existing is not None and existing.type == validated_type:
                    await session.delete(existing)
                    await session.commit()
                    return ReactionToggle(action="removed")

                if existing is not None:
                    existing.type = validated_type
                    existing.created_at = utcnow()
                    reaction = existing
                    action: ReactionAction = "updated"
                else:
                    reaction = ReactionModel(
                        post_id=post_id, user_id=context.user_id, type=validated_type
                    )
                    session.add(reaction)
                    action = "added"

                await session.commit()
                await session.refresh(reaction)

            return ReactionToggle(
                action=action, reaction=AdapterValidator.validate(Reaction, reaction)
            )

        return await self.execute_operation("toggle_post_reaction", _op, context)

    async def get_social_stats(
        self, context: AdapterContext, period: SocialStatsPeriod = "month"
    ) -> AdapterResult[SocialStats]:
        """Posting and engagement activity within ``period``."""

        async def _op() -> SocialStats:
            organization_id = require_organization(context)
            days = PERIOD_DAYS[AdapterValidator.validate(SocialStatsPeriod, period)]
            period_start = datetime.now(UTC) - timedelta(days=days)

            in_org = UserModel.organization_id == organization_id
            post_author = PostModel.user_id == UserModel.id
            post_count = func.count().label("post_count")

            async with self.session_factory() as session:
                total_posts = (
                    await session.execute(
                        select(func.count())
                        .select_from(PostModel)
                        .join(UserModel, post_author)
                        .where(in_org, PostModel.created_at >= period_start)
                    )
                ).scalar_one()
                total_comments = (
                    await session.execute(
                        select(func.count())
                        .select_from(CommentModel)
                        .join(PostModel, CommentModel.post_id == PostModel.id)
                        .join(UserModel, post_author)
                        .where(in_org, CommentModel.created_at >= period_start)
                    )
                ).scalar_one()
                total_reactions = (
                    await session.execute(
                        select(func.count())
                        .select_from(ReactionModel)
                        .join(PostModel, ReactionModel.post_id == PostModel.id)
                        .join(UserModel, post_author)
                        .where(in_org, ReactionModel.created_at >= period_start)
                    )
                ).scalar_one()
                active_users = (
                    await session.execute(
                        select(func.count(func.distinct(PostModel.user_id)))
                        .join(UserModel, post_author)
                        .where(in_org, PostModel.created_at >= period_start)
                    )
                ).scalar_one()
                top_posters = (
                    await session.execute(
                        select(PostModel.user_id, UserModel.name, UserModel.surname, post_count)
                        .join(UserModel, post_author)
                        .where(in_org, PostModel.created_at >= period_start)
                        .group_by(PostModel.user_id, UserModel.name, UserModel.surname)
                        .order_by(post_count.desc())
                        .limit(TOP_POSTERS_LIMIT)
                    )
                ).all()

            engagement_rate = (
                (total_comments + total_reactions) / total_posts * 100 if total_posts else 0.0
            )

            return SocialStats(
                total_posts=total_posts,
                total_comments=total_comments,
                total_reactions=total_reactions,
                active_users=active_users,
                top_posters=[
                    TopPoster(
                        user_id=user_id,
                        name=f"{name} {surname or ''}".strip(),
                        post_count=count,
                    )
                    for user_id, name, surname, count in top_posters
                ],
                engagement_rate=round(engagement_rate, 2),
            )

        return await self.execute_operation("get_social_stats", _op, context)

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _own_reaction(target: Any, correlate_to: Any, context: AdapterContext) -> Any:
        """Scalar subquery selecting the acting user's reaction type on ``target``."""
        if not context.user_id:
            return null()
        return (
            select(ReactionModel.type)
            .where(target, ReactionModel.user_id == context.user_id)
            .correlate(correlate_to)
            .limit(1)
            .scalar_subquery()
        )


def _author(row: Any) -> dict[str, Any]:
    return {
        "name": row["user_name"],
        "avatar_url": row["user_avatar_url"],
        "job_title": row["user_job_title"],
    }
