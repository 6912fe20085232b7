"""Public profile lookup and self-service profile edits."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import UserNotFound, ValidationError
from app.models import RelationStatus, User
from app.services.connections import ConnectionService
from app.services.validation import MAX_NAME_LENGTH, is_valid_url

logger = logging.getLogger(__name__)

# Validation order; the first failing field is the one reported
PROFILE_FIELDS = ("name", "headline", "bio", "avatar", "location", "company", "position")

MAX_LENGTHS = {
    "headline": 120,
    "bio": 2000,
    "location": 100,
    "company": 100,
    "position": 100,
}


@dataclass
class PublicProfile:
    user: User
    connection_status: Optional[RelationStatus] = None


def _validate_field(field: str, raw: str) -> str:
    value = raw.strip()

    if field == "name":
        if len(value) < 1:
            raise ValidationError("Name must be at least 1 character", code="INVALID_NAME")
        if len(value) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Name must not exceed {MAX_NAME_LENGTH} characters", code="INVALID_NAME"
            )
    elif field == "avatar":
        if value and not is_valid_url(value):
            raise ValidationError("Avatar must be a valid URL", code="INVALID_AVATAR_URL")
    elif len(value) > MAX_LENGTHS[field]:
        raise ValidationError(
            f"{field.capitalize()} must not exceed {MAX_LENGTHS[field]} characters",
            code=f"INVALID_{field.upper()}",
        )
    return value


class ProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_public_profile(
        self, target_id: int, viewer_id: Optional[int] = None
    ) -> PublicProfile:
        user = await self.db.get(User, target_id)
        if user is None:
            raise UserNotFound()

        status = None
        if viewer_id is not None:
            status = await ConnectionService(self.db).get_status(viewer_id, target_id)
        return PublicProfile(user=user, connection_status=status)

    async def update_profile(self, user_id: int, fields: dict[str, Any]) -> User:
        """
        Apply a partial profile update.

        Every provided field is trimmed and validated before anything is
        written, so a call either applies all of its fields or none.
        """
        provided = {
            k: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not None
        }
        if not provided:
            raise ValidationError(
                "At least one field must be provided for update",
                code="NO_FIELDS_PROVIDED",
            )

        updates = {
            field: _validate_field(field, provided[field])
            for field in PROFILE_FIELDS
            if field in provided
        }

        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()

        for field, value in updates.items():
            setattr(user, field, value)
        await self.db.flush()

        logger.info("User %s updated profile fields: %s", user_id, ", ".join(updates))
        return user
