"""Content API: list, generate, review (approve / reject), schedule, delete."""
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.db import get_db
from content_studio.dependencies import get_controller, get_generation_service, get_media_storage
from content_studio.schemas.content import (
    ContentItem,
    ContentType,
    GenerateRequest,
    GenerateResponse,
    GenerationErrorOut,
    ScheduleRequest,
    StatusUpdateRequest,
    SuccessResponse,
)
from content_studio.services.context_service import get_brand_context
from content_studio.services.generation_service import GenerationService, build_prompt
from content_studio.services.image_service import load_start_image
from content_studio.services.lifecycle_controller import LifecycleController
from content_studio.services.media_storage import LocalMediaStorage

router = APIRouter(prefix="/api/content", tags=["content"])


@router.get("", response_model=list[ContentItem])
async def list_content(
    controller: LifecycleController = Depends(get_controller),
) -> list[ContentItem]:
    """All items of the current user, oldest first."""
    return await controller.list()


@router.post("/generate", response_model=GenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_content(
    payload: GenerateRequest,
    controller: LifecycleController = Depends(get_controller),
    generation: GenerationService = Depends(get_generation_service),
    media: LocalMediaStorage = Depends(get_media_storage),
    db: AsyncSession = Depends(get_db),
) -> GenerateResponse:
    """
    Generate `count` items. Text / image: created pending (failures listed in `errors`).
    Video: generating placeholders returned immediately, finished in the background.
    """
    user_id = uuid.UUID(controller.user_id)
    if payload.context is not None:
        notes, links = payload.context.notes, payload.context.links
    else:
        notes, links = await get_brand_context(db, user_id)
    start_image = None
    if payload.type == ContentType.VIDEO:
        start_image = await load_start_image(db, media, user_id, payload.start_image_id)

    batch = await generation.generate(
        controller,
        payload.type,
        build_prompt(notes, links),
        count=payload.count,
        start_image=start_image,
    )
    if not batch.items and batch.errors:
        raise batch.errors[0]
    return GenerateResponse(
        items=batch.items,
        errors=[GenerationErrorOut(code=e.code, message=e.message) for e in batch.errors],
    )


@router.patch("/{item_id}/status", response_model=ContentItem)
async def update_status(
    item_id: str,
    payload: StatusUpdateRequest,
    controller: LifecycleController = Depends(get_controller),
) -> ContentItem:
    """Approve or reject a pending item."""
    return await controller.set_status(item_id, payload.status)


@router.patch("/{item_id}/schedule", response_model=ContentItem)
async def schedule_content(
    item_id: str,
    payload: ScheduleRequest,
    controller: LifecycleController = Depends(get_controller),
) -> ContentItem:
    """Schedule an approved item (or move a scheduled one) to a future time."""
    return await controller.schedule(item_id, payload.schedule)


@router.delete("/{item_id}", response_model=SuccessResponse)
async def delete_content(
    item_id: str,
    controller: LifecycleController = Depends(get_controller),
    media: LocalMediaStorage = Depends(get_media_storage),
) -> SuccessResponse:
    """Delete an item and its stored payload. Refused while generating or scheduled."""
    removed = await controller.delete(item_id)
    await media.delete(controller.user_id, removed.data)
    return SuccessResponse()
