"""
Image library service: user uploads stored in media storage, indexed in user_images.
The first library image (or an explicitly chosen one) is used as the start frame for video generation.
"""
import base64
import binascii
import mimetypes
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from content_studio.errors import ContentValidationError, NotFound
from content_studio.logging_config import get_logger
from content_studio.models import UserImage
from content_studio.services.media_storage import PREFIX_UPLOADS, LocalMediaStorage
from content_studio.services.provider_service import GeneratedMedia

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


def decode_upload(content_type: str, data_base64: str, max_mb: int) -> bytes:
    """Validate mime type and size of a base64 upload; data URLs are accepted."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ContentValidationError(f"Unsupported image type: {content_type}", content_type=content_type)
    if data_base64.startswith("data:") and "," in data_base64:
        data_base64 = data_base64.split(",", 1)[1]
    try:
        content = base64.b64decode(data_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ContentValidationError("Image data is not valid base64") from e
    if not content:
        raise ContentValidationError("Image data is empty")
    if len(content) > max_mb * 1024 * 1024:
        raise ContentValidationError(f"Image exceeds {max_mb} MB", size=len(content))
    return content


async def list_images(db: AsyncSession, user_id: UUID) -> List[UserImage]:
    """User's library, oldest first."""
    q = (
        select(UserImage)
        .where(UserImage.user_id == user_id)
        .order_by(UserImage.created_at.asc(), UserImage.id.asc())
    )
    r = await db.execute(q)
    return list(r.scalars().all())


async def add_image(
    db: AsyncSession,
    media: LocalMediaStorage,
    user_id: UUID,
    name: str,
    content_type: str,
    data_base64: str,
    max_mb: int,
) -> UserImage:
    """Store the upload and index it. Caller commits session."""
    content = decode_upload(content_type, data_base64, max_mb)
    ref = await media.put_bytes(str(user_id), PREFIX_UPLOADS, content, content_type)
    image = UserImage(user_id=user_id, name=name, url=ref)
    db.add(image)
    await db.flush()
    logger.info("images.added", user_id=str(user_id), image_id=str(image.id), size=len(content))
    return image


async def _get_image(db: AsyncSession, user_id: UUID, image_id: str) -> UserImage:
    try:
        iid = UUID(str(image_id))
    except ValueError:
        raise NotFound(f"Image {image_id} not found", image_id=image_id)
    r = await db.execute(select(UserImage).where(UserImage.id == iid, UserImage.user_id == user_id))
    image = r.scalar_one_or_none()
    if image is None:
        raise NotFound(f"Image {image_id} not found", image_id=image_id)
    return image


async def delete_image(db: AsyncSession, media: LocalMediaStorage, user_id: UUID, image_id: str) -> None:
    """Remove index row and stored bytes. Caller commits session."""
    image = await _get_image(db, user_id, image_id)
    await db.delete(image)
    await db.flush()
    await media.delete(str(user_id), image.url)
    logger.info("images.deleted", user_id=str(user_id), image_id=image_id)


async def load_start_image(
    db: AsyncSession,
    media: LocalMediaStorage,
    user_id: UUID,
    image_id: Optional[str] = None,
) -> Optional[GeneratedMedia]:
    """
    Start frame for video generation: the chosen image, else the first library image.
    None when the library is empty or the stored bytes are gone.
    """
    if image_id:
        image = await _get_image(db, user_id, image_id)
    else:
        images = await list_images(db, user_id)
        if not images:
            return None
        image = images[0]
    content = await media.get(str(user_id), image.url)
    if content is None:
        logger.warning("images.start_frame_missing", user_id=str(user_id), image_id=str(image.id))
        return None
    return GeneratedMedia(content, mime_from_ref(image.url))


def mime_from_ref(ref: str) -> str:
    return mimetypes.guess_type(ref)[0] or "image/jpeg"
