"""Auth API: login, current user, logout. Session start / end also starts / stops the user's scheduler."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.config import get_settings
from content_studio.db import get_db
from content_studio.dependencies import get_bearer_token, get_current_user, get_schedulers
from content_studio.models import User
from content_studio.schemas.auth import LoginRequest, LoginResponse, UserOut
from content_studio.schemas.common import MessageResponse
from content_studio.services import auth_service
from content_studio.services.scheduler_service import SessionSchedulers

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, name=user.name, email=user.email, avatar_url=getattr(user, "avatar_url", None))


@router.post("/login", response_model=LoginResponse)
async def post_login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    schedulers: SessionSchedulers = Depends(get_schedulers),
) -> LoginResponse:
    """Google ID token (or demo) login; returns a bearer token."""
    token, user = await auth_service.login(db, get_settings(), payload.credential)
    schedulers.ensure(str(user.id), auth_service.hash_token(token))
    return LoginResponse(token=token, user=_user_out(user))


@router.get("/me", response_model=UserOut)
async def get_me(
    token: str = Depends(get_bearer_token),
    user: User = Depends(get_current_user),
    schedulers: SessionSchedulers = Depends(get_schedulers),
) -> UserOut:
    """Current user; restarts the user's scheduler if it is not running (e.g. after a restart)."""
    schedulers.ensure(str(user.id), auth_service.hash_token(token))
    return _user_out(user)


@router.post("/logout", response_model=MessageResponse)
async def post_logout(
    token: str = Depends(get_bearer_token),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    schedulers: SessionSchedulers = Depends(get_schedulers),
) -> MessageResponse:
    """Revoke the session; the user's scheduler stops with their last session."""
    await auth_service.logout(db, token)
    schedulers.stop(str(user.id), auth_service.hash_token(token))
    return MessageResponse(message="Logged out")
