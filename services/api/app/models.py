"""
SQLAlchemy ORM models.

Tables:
  users       — account + public profile fields
  posts       — authored content with denormalised like/comment counters
  likes       — user × post engagement, one row per (user, post)
  comments    — append-only remarks on a post
  connections — directed connection requests (requester → receiver)
"""
import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

# MySQL/TiDB DATETIME drops fractional seconds unless fsp is given; ordering
# by created_at relies on microsecond precision.
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ConnectionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def pair_key(user_a: int, user_b: int) -> str:
    """Canonical key of the unordered pair {user_a, user_b}."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    headline: Mapped[Optional[str]] = mapped_column(String(120))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    avatar: Mapped[Optional[str]] = mapped_column(String(2048))
    location: Mapped[Optional[str]] = mapped_column(String(100))
    company: Mapped[Optional[str]] = mapped_column(String(100))
    position: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    likes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    author = relationship("User", lazy="joined")

    __table_args__ = (
        Index("idx_posts_user", "user_id"),
        Index("idx_posts_created", "created_at"),
    )


class Like(Base):
    __tablename__ = "likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    user = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),
        Index("idx_likes_post", "post_id"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    user = relationship("User", lazy="joined")

    __table_args__ = (Index("idx_comments_post", "post_id"),)


class Connection(Base):
    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Requester
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    # Receiver; only this party may accept or reject
    connected_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    status: Mapped[ConnectionStatus] = mapped_column(
        Enum(
            ConnectionStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ConnectionStatus.PENDING,
        nullable=False,
    )
    # pair_key() while pending/accepted, NULL once rejected. Unique, and NULLs
    # never collide, so at most one live row exists per unordered pair.
    active_pair: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("active_pair", name="uq_connections_active_pair"),
        Index("idx_connections_receiver", "connected_user_id", "status"),
        Index("idx_connections_requester", "user_id"),
    )

    def other_party(self, user_id: int) -> int:
        return self.connected_user_id if self.user_id == user_id else self.user_id


class RelationStatus(str, enum.Enum):
    """How a viewer relates to another user; derived, never persisted."""
    SELF = "self"
    CONNECTED = "connected"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    NONE = "none"
