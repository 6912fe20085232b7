"""
Token codec, password hashing and FastAPI auth dependencies.

Tokens are HS256 JWTs carrying the caller's user id and email. Verification
never raises anything but InvalidToken, which the error handler turns into
a 401.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.errors import InvalidToken, MissingToken

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# auto_error=False so a missing header reaches our own MissingToken error
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    email: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def issue_token(
    user_id: int,
    email: str,
    secret: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed, time-bounded token for (user_id, email)."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    claims = {
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(
        claims, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def verify_token(token: str, secret: Optional[str] = None) -> TokenPayload:
    """Decode a token; raises InvalidToken when it is malformed, forged or expired."""
    try:
        payload = jwt.decode(
            token, secret or settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as exc:
        raise InvalidToken() from exc

    user_id = payload.get("userId")
    email = payload.get("email")
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not email:
        raise InvalidToken("Token missing required user information")

    return TokenPayload(user_id=user_id, email=email)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenPayload:
    """Dependency for endpoints that require an authenticated caller."""
    if credentials is None:
        raise MissingToken()
    return verify_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[TokenPayload]:
    """
    Dependency for endpoints that personalise output when a caller is known.

    No Authorization header means an anonymous caller. A header with a bad or
    expired token is still rejected so the client knows to sign in again.
    """
    if credentials is None:
        return None
    return verify_token(credentials.credentials)
