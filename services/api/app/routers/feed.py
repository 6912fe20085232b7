"""
Feed retrieval endpoint — GET /feed

Every post, newest first, hydrated with its author. With a valid bearer
token each post also says whether the caller liked it; anonymous callers
get is_liked=false throughout.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.routers.posts import build_post_response
from app.schemas import FeedResponse
from app.security import TokenPayload, get_optional_user
from app.services.feed import FeedService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=FeedResponse)
async def get_feed(
    caller: Optional[TokenPayload] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    items = await FeedService(db).list_feed(viewer_id=caller.user_id if caller else None)
    posts = [build_post_response(item.post, item.is_liked) for item in items]
    return FeedResponse(posts=posts, count=len(posts))
