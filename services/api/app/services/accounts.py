"""Signup, login and the caller's own account."""
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    UserNotFound,
    ValidationError,
)
from app.models import User
from app.security import hash_password, issue_token, verify_password
from app.services.validation import MAX_NAME_LENGTH

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class AuthSession:
    user: User
    token: str


class AccountService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def signup(self, name: str, email: str, password: str) -> AuthSession:
        name = name.strip()
        email = email.strip().lower()
        if not name:
            raise ValidationError("Name is required", code="INVALID_NAME")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Name must not exceed {MAX_NAME_LENGTH} characters", code="INVALID_NAME"
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                code="INVALID_PASSWORD",
            )

        if await self._by_email(email) is not None:
            raise EmailAlreadyRegistered()

        user = User(name=name, email=email, password_hash=hash_password(password))
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise EmailAlreadyRegistered() from exc

        logger.info("Created user %s (id=%s)", user.email, user.id)
        return AuthSession(user=user, token=issue_token(user.id, user.email))

    async def login(self, email: str, password: str) -> AuthSession:
        user = await self._by_email(email.strip().lower())
        # Same error for unknown email and wrong password
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", email)
            raise InvalidCredentials()
        return AuthSession(user=user, token=issue_token(user.id, user.email))

    async def me(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user
