"""
Post endpoints:
  POST /posts                 — create a post
  GET  /posts/{id}            — fetch a single post
  POST /posts/{id}/like       — toggle the caller's like
  GET  /posts/{id}/likes      — who liked a post
  GET  /posts/{id}/comments   — comments, oldest first
  POST /posts/{id}/comments   — add a comment
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import Post
from app.schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    LikeListResponse,
    LikeResponse,
    LikeToggleResponse,
    PostCreate,
    PostResponse,
    UserSummary,
)
from app.security import TokenPayload, get_current_user, get_optional_user
from app.services.engagement import EngagementService
from app.services.feed import FeedService

logger = logging.getLogger(__name__)
router = APIRouter()


def build_post_response(post: Post, is_liked: bool = False) -> PostResponse:
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        content=post.content,
        image_url=post.image_url,
        likes_count=post.likes_count,
        comments_count=post.comments_count,
        created_at=post.created_at,
        is_liked=is_liked,
        author=UserSummary.model_validate(post.author) if post.author else None,
    )


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await FeedService(db).create_post(caller.user_id, body.content, body.image_url)
    return build_post_response(post)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    caller: Optional[TokenPayload] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    item = await FeedService(db).get_post(post_id, caller.user_id if caller else None)
    return build_post_response(item.post, item.is_liked)


@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: int,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Like the post if the caller has not, otherwise remove the like."""
    result = await EngagementService(db).toggle_like(caller.user_id, post_id)
    return LikeToggleResponse(
        is_liked=result.is_liked,
        likes_count=result.likes_count,
        post=build_post_response(result.post, result.is_liked),
    )


@router.get("/{post_id}/likes", response_model=LikeListResponse)
async def list_likes(post_id: int, db: AsyncSession = Depends(get_db)):
    likes = await EngagementService(db).list_likes(post_id)
    return LikeListResponse(
        likes=[LikeResponse.model_validate(like) for like in likes],
        count=len(likes),
    )


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(post_id: int, db: AsyncSession = Depends(get_db)):
    comments = await EngagementService(db).list_comments(post_id)
    return CommentListResponse(
        comments=[CommentResponse.model_validate(c) for c in comments],
        count=len(comments),
    )


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    body: CommentCreate,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await EngagementService(db).add_comment(caller.user_id, post_id, body.content)
    return CommentResponse.model_validate(comment)
