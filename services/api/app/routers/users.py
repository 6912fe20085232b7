"""
User profile endpoints:
  PUT /users/profile — edit the caller's own profile
  GET /users/{id}    — public profile, the user's posts and, for a signed-in
                       viewer, how the viewer is connected to them
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.routers.posts import build_post_response
from app.schemas import PrivateProfile, ProfileUpdate, PublicProfileResponse, UserProfile
from app.security import TokenPayload, get_current_user, get_optional_user
from app.services.connections import ConnectionService
from app.services.feed import FeedService
from app.services.profiles import ProfileService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.put("/profile", response_model=PrivateProfile)
async def update_profile(
    body: ProfileUpdate,
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await ProfileService(db).update_profile(
        caller.user_id, body.model_dump(exclude_unset=True)
    )
    return PrivateProfile.model_validate(user)


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_profile(
    user_id: int,
    caller: Optional[TokenPayload] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = caller.user_id if caller else None
    profile = await ProfileService(db).get_public_profile(user_id, viewer_id)
    items = await FeedService(db).list_feed(viewer_id=viewer_id, author_id=user_id)
    connections_count = await ConnectionService(db).count_accepted(user_id)

    return PublicProfileResponse(
        **UserProfile.model_validate(profile.user).model_dump(),
        connection_status=profile.connection_status,
        connections_count=connections_count,
        posts=[build_post_response(item.post, item.is_liked) for item in items],
    )
