"""Login / current user schemas."""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Body for POST /api/auth/login. Without credential the demo user signs in (if enabled)."""

    credential: Optional[str] = Field(None, description="Google ID token")


class UserOut(BaseModel):
    """Signed-in user."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    name: str
    email: str
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")


class LoginResponse(BaseModel):
    """Bearer token + user."""

    token: str
    user: UserOut
