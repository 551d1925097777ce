"""Request dependencies: shared services from app.state, bearer session -> current user."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.db import get_db
from content_studio.errors import AuthError
from content_studio.models import User
from content_studio.services.auth_service import get_user_for_token
from content_studio.services.generation_service import GenerationService
from content_studio.services.item_store import ItemStore
from content_studio.services.lifecycle_controller import LifecycleController
from content_studio.services.media_storage import LocalMediaStorage
from content_studio.services.scheduler_service import SessionSchedulers

bearer_scheme = HTTPBearer(auto_error=False)


def get_item_store(request: Request) -> ItemStore:
    return request.app.state.item_store


def get_schedulers(request: Request) -> SessionSchedulers:
    return request.app.state.schedulers


def get_generation_service(request: Request) -> GenerationService:
    return request.app.state.generation


def get_media_storage(request: Request) -> LocalMediaStorage:
    return request.app.state.media


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthError("Missing Authorization header")
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """User of the bearer session; 401 when missing, revoked or expired."""
    user = await get_user_for_token(db, token)
    if user is None:
        raise AuthError("Invalid or expired session")
    return user


def get_controller(
    user: User = Depends(get_current_user),
    store: ItemStore = Depends(get_item_store),
) -> LifecycleController:
    """Lifecycle controller scoped to the current user."""
    return LifecycleController(store, str(user.id))
