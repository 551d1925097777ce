"""Image library schemas."""
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ImageUploadRequest(BaseModel):
    """Body for POST /api/images: base64 payload (plain or data URL)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=512)
    content_type: str = Field(..., alias="contentType", description="image/jpeg | image/png | image/webp | image/gif")
    data_base64: str = Field(..., alias="dataBase64")


class UserImageOut(BaseModel):
    """Library image; url is a media reference readable via GET /api/media."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    url: str
