"""Image library API + media download."""
import mimetypes

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.config import get_settings
from content_studio.db import get_db
from content_studio.dependencies import get_current_user, get_media_storage
from content_studio.errors import NotFound
from content_studio.models import User
from content_studio.schemas.content import SuccessResponse
from content_studio.schemas.images import ImageUploadRequest, UserImageOut
from content_studio.services.image_service import add_image, delete_image, list_images
from content_studio.services.media_storage import LocalMediaStorage

router = APIRouter(prefix="/api", tags=["images"])


@router.get("/images", response_model=list[UserImageOut])
async def get_images(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[UserImageOut]:
    images = await list_images(db, user.id)
    return [UserImageOut.model_validate(i) for i in images]


@router.post("/images", response_model=UserImageOut, status_code=status.HTTP_201_CREATED)
async def post_image(
    payload: ImageUploadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    media: LocalMediaStorage = Depends(get_media_storage),
) -> UserImageOut:
    """Upload one image (base64) into the library."""
    image = await add_image(
        db,
        media,
        user.id,
        name=payload.name,
        content_type=payload.content_type,
        data_base64=payload.data_base64,
        max_mb=get_settings().upload_max_image_mb,
    )
    return UserImageOut.model_validate(image)


@router.delete("/images/{image_id}", response_model=SuccessResponse)
async def remove_image(
    image_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    media: LocalMediaStorage = Depends(get_media_storage),
) -> SuccessResponse:
    await delete_image(db, media, user.id, image_id)
    return SuccessResponse()


@router.get("/media")
async def get_media(
    ref: str = Query(..., description="media:// reference from an item or image"),
    user: User = Depends(get_current_user),
    media: LocalMediaStorage = Depends(get_media_storage),
) -> Response:
    """Raw bytes of a stored payload owned by the caller."""
    content = await media.get(str(user.id), ref)
    if content is None:
        raise NotFound("Media not found", ref=ref)
    media_type = mimetypes.guess_type(ref)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
