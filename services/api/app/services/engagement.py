"""
Likes and comments on posts.

Post.likes_count / Post.comments_count are denormalised; every change is an
in-SQL increment so concurrent writers never overwrite each other's counts.
"""
import logging
from dataclasses import dataclass

from opentelemetry import trace
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LikeConflict, PostNotFound
from app.models import Comment, Like, Post
from app.services.validation import clean_content
from app.telemetry import COMMENTS_ADDED_TOTAL, LIKE_TOGGLES_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_COMMENT_LENGTH = 2000


@dataclass
class LikeToggle:
    is_liked: bool
    likes_count: int
    post: Post


class EngagementService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_post(self, post_id: int) -> Post:
        post = await self.db.get(Post, post_id)
        if post is None:
            raise PostNotFound()
        return post

    async def _adjust(self, column, post_id: int, delta: int) -> None:
        stmt = update(Post).where(Post.id == post_id)
        if delta < 0:
            stmt = stmt.where(column > 0)
        await self.db.execute(
            stmt.values({column: column + delta}).execution_options(
                synchronize_session=False
            )
        )

    async def toggle_like(self, user_id: int, post_id: int) -> LikeToggle:
        """
        Flip the caller's like on a post.

        The delete comes first: if it removed a row the post was liked and is
        now unliked. Otherwise a Like row is inserted; the (user_id, post_id)
        unique constraint turns a concurrent double-insert into LikeConflict.
        """
        with tracer.start_as_current_span("toggle_like") as span:
            span.set_attribute("post.id", post_id)
            span.set_attribute("user.id", user_id)

            post = await self._get_post(post_id)

            # "evaluate" also evicts a matching Like already in the session,
            # so a re-insert reusing its primary key does not collide
            removed = await self.db.execute(
                delete(Like)
                .where(Like.user_id == user_id, Like.post_id == post_id)
                .execution_options(synchronize_session="evaluate")
            )
            if removed.rowcount:
                await self._adjust(Post.likes_count, post_id, -1)
                is_liked = False
            else:
                self.db.add(Like(user_id=user_id, post_id=post_id))
                try:
                    await self.db.flush()
                except IntegrityError as exc:
                    await self.db.rollback()
                    raise LikeConflict() from exc
                await self._adjust(Post.likes_count, post_id, 1)
                is_liked = True

            await self.db.refresh(post)
            LIKE_TOGGLES_TOTAL.labels(action="like" if is_liked else "unlike").inc()
            logger.info(
                "User %s %s post %s (likes=%d)",
                user_id, "liked" if is_liked else "unliked", post_id, post.likes_count,
            )
            return LikeToggle(is_liked=is_liked, likes_count=post.likes_count, post=post)

    async def add_comment(self, user_id: int, post_id: int, content: str) -> Comment:
        with tracer.start_as_current_span("add_comment") as span:
            span.set_attribute("post.id", post_id)

            post = await self._get_post(post_id)
            text = clean_content(content, MAX_COMMENT_LENGTH, "Comment")

            comment = Comment(user_id=user_id, post_id=post_id, content=text)
            self.db.add(comment)
            await self.db.flush()
            await self._adjust(Post.comments_count, post_id, 1)
            await self.db.refresh(post)
            await self.db.refresh(comment, attribute_names=["user"])

            COMMENTS_ADDED_TOTAL.inc()
            logger.info("Comment %s added to post %s by user %s", comment.id, post_id, user_id)
            return comment

    async def list_comments(self, post_id: int) -> list[Comment]:
        """Comments oldest first, each with its author."""
        await self._get_post(post_id)
        rows = await self.db.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return list(rows.scalars().all())

    async def list_likes(self, post_id: int) -> list[Like]:
        """Likes newest first, each with the liker."""
        await self._get_post(post_id)
        rows = await self.db.execute(
            select(Like)
            .where(Like.post_id == post_id)
            .order_by(Like.created_at.desc(), Like.id.desc())
        )
        return list(rows.scalars().all())
