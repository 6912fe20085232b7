"""
Account endpoints:
  POST /auth/signup — register and receive a token
  POST /auth/login  — exchange credentials for a token
  GET  /auth/me     — the caller's own profile
  POST /auth/logout — tokens are stateless; the client drops its copy
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import AuthResponse, LoginRequest, PrivateProfile, SignupRequest
from app.security import TokenPayload, get_current_user
from app.services.accounts import AccountService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    session = await AccountService(db).signup(body.name, body.email, body.password)
    return AuthResponse(token=session.token, user=PrivateProfile.model_validate(session.user))


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    session = await AccountService(db).login(body.email, body.password)
    return AuthResponse(token=session.token, user=PrivateProfile.model_validate(session.user))


@router.get("/me", response_model=PrivateProfile)
async def me(
    caller: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return PrivateProfile.model_validate(await AccountService(db).me(caller.user_id))


@router.post("/logout")
async def logout():
    return {"message": "Logged out"}
