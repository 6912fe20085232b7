"""
Post creation and feed aggregation.

The feed is every post (or one author's posts) newest first, hydrated with
the author and, for a known viewer, whether the viewer liked each post.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidImageUrl, PostNotFound, UserNotFound
from app.models import Like, Post, User
from app.services.validation import clean_content, is_valid_url
from app.telemetry import FEED_LATENCY, POSTS_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_POST_LENGTH = 5000


@dataclass
class FeedItem:
    post: Post
    is_liked: bool = False


class FeedService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _liked_post_ids(self, viewer_id: int) -> set[int]:
        rows = await self.db.execute(select(Like.post_id).where(Like.user_id == viewer_id))
        return set(rows.scalars().all())

    async def create_post(
        self, user_id: int, content: str, image_url: Optional[str] = None
    ) -> Post:
        with tracer.start_as_current_span("create_post") as span:
            text = clean_content(content, MAX_POST_LENGTH, "Post")

            image_url = (image_url or "").strip() or None
            if image_url is not None and not is_valid_url(image_url):
                raise InvalidImageUrl()

            if await self.db.get(User, user_id) is None:
                raise UserNotFound("Author not found")

            post = Post(
                user_id=user_id,
                content=text,
                image_url=image_url,
                likes_count=0,
                comments_count=0,
            )
            self.db.add(post)
            await self.db.flush()     # materialise post id
            await self.db.refresh(post, attribute_names=["author"])

            span.set_attribute("post.id", post.id)
            span.set_attribute("post.user_id", post.user_id)
            POSTS_CREATED_TOTAL.inc()
            logger.info("Post created: %s by user %s", post.id, post.user_id)
            return post

    async def list_feed(
        self, viewer_id: Optional[int] = None, author_id: Optional[int] = None
    ) -> list[FeedItem]:
        start_time = time.time()

        with tracer.start_as_current_span("list_feed") as span:
            stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
            if author_id is not None:
                stmt = stmt.where(Post.user_id == author_id)
            rows = await self.db.execute(stmt)
            posts = rows.scalars().all()

            # One query for the viewer's likes, then set membership per post
            liked = await self._liked_post_ids(viewer_id) if viewer_id is not None else set()
            items = [FeedItem(post=p, is_liked=p.id in liked) for p in posts]

            span.set_attribute("feed.posts_returned", len(items))

        FEED_LATENCY.observe(time.time() - start_time)
        return items

    async def get_post(self, post_id: int, viewer_id: Optional[int] = None) -> FeedItem:
        post = await self.db.get(Post, post_id)
        if post is None:
            raise PostNotFound()

        is_liked = False
        if viewer_id is not None:
            result = await self.db.execute(
                select(Like.id).where(Like.user_id == viewer_id, Like.post_id == post_id)
            )
            is_liked = result.first() is not None
        return FeedItem(post=post, is_liked=is_liked)
