"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Content rules (trimming, length limits, URL checks) live in the services so
they apply to every caller, not just HTTP; request models only pin types.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.models import ConnectionStatus, RelationStatus


# ──────────────────────────── Users ───────────────────────────────────────

class UserSummary(BaseModel):
    """Public identity shown next to posts, comments, likes and connections."""
    id: int
    name: str
    headline: Optional[str] = None
    avatar: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfile(UserSummary):
    bio: Optional[str] = None
    created_at: datetime


class PrivateProfile(UserProfile):
    """The caller's own profile — includes email, never the password hash."""
    email: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None


# ──────────────────────────── Auth ────────────────────────────────────────

class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    user: PrivateProfile


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    content: str
    image_url: Optional[str] = None


class PostResponse(BaseModel):
    id: int
    user_id: int
    content: str
    image_url: Optional[str] = None
    likes_count: int
    comments_count: int
    created_at: datetime
    is_liked: bool = False
    author: Optional[UserSummary] = None


class FeedResponse(BaseModel):
    posts: list[PostResponse]
    count: int


class LikeToggleResponse(BaseModel):
    is_liked: bool
    likes_count: int
    post: PostResponse


class LikeResponse(BaseModel):
    id: int
    user_id: int
    post_id: int
    created_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class LikeListResponse(BaseModel):
    likes: list[LikeResponse]
    count: int


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    content: str


class CommentResponse(BaseModel):
    id: int
    user_id: int
    post_id: int
    content: str
    created_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    count: int


# ──────────────────────────── Connections ─────────────────────────────────

class ConnectionRequestBody(BaseModel):
    connected_user_id: int = Field(..., description="User to send the request to")


class ConnectionActionBody(BaseModel):
    connection_id: int


class ConnectionResponse(BaseModel):
    id: int
    user_id: int
    connected_user_id: int
    status: ConnectionStatus
    created_at: datetime

    class Config:
        from_attributes = True


class PendingRequestResponse(ConnectionResponse):
    requester: Optional[UserSummary] = None


class PendingRequestListResponse(BaseModel):
    requests: list[PendingRequestResponse]
    count: int


class AcceptedConnectionResponse(ConnectionResponse):
    connected_user: UserSummary


class ConnectionListResponse(BaseModel):
    connections: list[AcceptedConnectionResponse]
    count: int


class ConnectionStatusResponse(BaseModel):
    user_id: int
    status: RelationStatus


# ──────────────────────────── Profiles ────────────────────────────────────

class PublicProfileResponse(UserProfile):
    connection_status: Optional[RelationStatus] = None
    connections_count: int = 0
    posts: list[PostResponse] = []
