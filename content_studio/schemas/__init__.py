"""Pydantic request/response schemas."""
from content_studio.schemas.common import ErrorResponse, MessageResponse
from content_studio.schemas.auth import LoginRequest, LoginResponse, UserOut
from content_studio.schemas.content import (
    BrandContextIn,
    ContentItem,
    ContentStatus,
    ContentType,
    GenerateRequest,
    GenerateResponse,
    ScheduleRequest,
    StatusUpdateRequest,
)
from content_studio.schemas.images import ImageUploadRequest, UserImageOut
from content_studio.schemas.scheduler import SchedulerStatusResponse

__all__ = [
    "ErrorResponse",
    "MessageResponse",
    "LoginRequest",
    "LoginResponse",
    "UserOut",
    "BrandContextIn",
    "ContentItem",
    "ContentStatus",
    "ContentType",
    "GenerateRequest",
    "GenerateResponse",
    "ScheduleRequest",
    "StatusUpdateRequest",
    "ImageUploadRequest",
    "UserImageOut",
    "SchedulerStatusResponse",
]
