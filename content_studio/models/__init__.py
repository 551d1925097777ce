"""SQLAlchemy models for Content Studio."""
from content_studio.models.user import User
from content_studio.models.user_session import UserSession
from content_studio.models.brand_context import BrandContext
from content_studio.models.user_image import UserImage
from content_studio.models.content_item import ContentItemRecord

__all__ = [
    "User",
    "UserSession",
    "BrandContext",
    "UserImage",
    "ContentItemRecord",
]
