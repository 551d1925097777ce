"""Content item record and content API request/response schemas."""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ContentType(str, Enum):
    """Kind of generated payload."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class ContentStatus(str, Enum):
    """Lifecycle state of a content item."""

    GENERATING = "generating"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    ERROR = "error"


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ContentItem(BaseModel):
    """
    One unit of generated content moving through review and publication.
    Immutable: every change produces a new record, validated against the record invariants:
    schedule iff scheduled, errorMessage only while generating or on error, postedAt only once posted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    type: ContentType
    data: str = ""
    prompt: str
    status: ContentStatus
    schedule: Optional[datetime] = None
    error_message: Optional[str] = Field(None, alias="errorMessage")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    posted_at: Optional[datetime] = Field(None, alias="postedAt")

    @field_validator("schedule", "created_at", "posted_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_invariants(self) -> "ContentItem":
        if (self.status == ContentStatus.SCHEDULED) != (self.schedule is not None):
            raise ValueError("schedule must be set if and only if status is scheduled")
        if self.error_message is not None and self.status not in (ContentStatus.GENERATING, ContentStatus.ERROR):
            raise ValueError("errorMessage is only allowed while generating or on error")
        if self.posted_at is not None and self.status != ContentStatus.POSTED:
            raise ValueError("postedAt is only allowed on posted items")
        return self

    def is_due(self, now: datetime) -> bool:
        """Scheduled and the schedule time is at or before now."""
        return (
            self.status == ContentStatus.SCHEDULED
            and self.schedule is not None
            and self.schedule <= now
        )


# --- API ---


class BrandContextIn(BaseModel):
    """Notes / links the prompt is built from."""

    notes: str = Field("", description="Personal notes / brief")
    links: str = Field("", description="Reference articles or links, one per line")


class GenerateRequest(BaseModel):
    """Body for POST /api/content/generate."""

    model_config = ConfigDict(populate_by_name=True)

    type: ContentType
    count: int = Field(1, ge=1, description="Number of items to generate (cost guard: MAX_GENERATE_COUNT)")
    context: Optional[BrandContextIn] = Field(None, description="Overrides the stored brand context")
    start_image_id: Optional[str] = Field(None, alias="startImageId", description="Library image used as first video frame")


class GenerationErrorOut(BaseModel):
    """One failed item in a generate batch."""

    code: str
    message: str


class GenerateResponse(BaseModel):
    """Response for POST /api/content/generate (201)."""

    items: List[ContentItem]
    errors: List[GenerationErrorOut] = []


class StatusUpdateRequest(BaseModel):
    """Body for PATCH /api/content/{id}/status."""

    status: ContentStatus


class ScheduleRequest(BaseModel):
    """Body for PATCH /api/content/{id}/schedule."""

    schedule: datetime = Field(..., description="ISO datetime, must be in the future; naive values are UTC")


class SuccessResponse(BaseModel):
    """Acknowledgement for deletes."""

    success: bool = True
