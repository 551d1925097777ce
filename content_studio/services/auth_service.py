"""
Identity: Google ID token login (or demo login in local setups), opaque bearer sessions, logout.
Only the sha256 of a session token is stored.
"""
import asyncio
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.config import Settings
from content_studio.errors import AuthError
from content_studio.logging_config import get_logger
from content_studio.models import User, UserSession

logger = get_logger(__name__)

DEMO_USER_NAME = "Demo User"
DEMO_USER_EMAIL = "demo@example.com"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_google_credential(credential: str, client_id: str) -> Dict[str, Any]:
    """Verify a Google ID token (blocking: fetches Google certs). Returns its claims."""
    try:
        return id_token.verify_oauth2_token(credential, google_requests.Request(), client_id)
    except ValueError as e:
        raise AuthError("Invalid Google token") from e


async def _upsert_google_user(db: AsyncSession, claims: Dict[str, Any]) -> User:
    google_id = claims.get("sub")
    if not google_id:
        raise AuthError("Invalid Google token")
    email = claims.get("email") or ""
    name = claims.get("name") or email.split("@")[0] or "User"
    avatar_url = claims.get("picture")
    r = await db.execute(select(User).where(User.google_id == google_id))
    user = r.scalar_one_or_none()
    if user is None:
        user = User(google_id=google_id, email=email, name=name, avatar_url=avatar_url)
        db.add(user)
        await db.flush()
        logger.info("auth.user_created", user_id=str(user.id))
    elif user.name != name or user.avatar_url != avatar_url:
        user.name = name
        user.avatar_url = avatar_url
        await db.flush()
    return user


async def _demo_user(db: AsyncSession) -> User:
    r = await db.execute(select(User).where(User.email == DEMO_USER_EMAIL))
    user = r.scalar_one_or_none()
    if user is None:
        user = User(email=DEMO_USER_EMAIL, name=DEMO_USER_NAME)
        db.add(user)
        await db.flush()
        logger.info("auth.user_created", user_id=str(user.id), demo=True)
    return user


async def login(db: AsyncSession, settings: Settings, credential: Optional[str]) -> Tuple[str, User]:
    """
    Resolve the user and open a session. Returns (bearer token, user). Caller commits session.
    Without a credential the demo user is used, if DEMO_LOGIN_ENABLED.
    """
    if credential:
        if not settings.google_client_id:
            raise AuthError("Google login is not configured")
        claims = await asyncio.to_thread(verify_google_credential, credential, settings.google_client_id)
        user = await _upsert_google_user(db, claims)
    elif settings.demo_login_enabled:
        user = await _demo_user(db)
    else:
        raise AuthError("Missing credential")

    token = secrets.token_urlsafe(32)
    session = UserSession(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.session_ttl_minutes),
    )
    db.add(session)
    await db.flush()
    logger.info("auth.login", user_id=str(user.id), google=bool(credential))
    return token, user


async def get_user_for_token(db: AsyncSession, token: str) -> Optional[User]:
    """User owning an active (not revoked, not expired) session; None otherwise."""
    q = (
        select(User)
        .join(UserSession, UserSession.user_id == User.id)
        .where(
            UserSession.token_hash == hash_token(token),
            UserSession.revoked_at.is_(None),
            UserSession.expires_at > datetime.now(timezone.utc),
        )
    )
    r = await db.execute(q)
    return r.scalar_one_or_none()


async def logout(db: AsyncSession, token: str) -> bool:
    """Revoke the session. False when the token was unknown or already revoked. Caller commits session."""
    r = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.revoked_at.is_(None),
        )
    )
    session = r.scalar_one_or_none()
    if session is None:
        return False
    session.revoked_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("auth.logout", user_id=str(session.user_id))
    return True
