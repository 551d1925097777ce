"""
Media storage: generated payloads and uploaded images under LOCAL_MEDIA_DIR/<user_id>/<prefix>/.
Callers only see opaque references of the form media://<prefix>/<file>.
"""
import asyncio
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

from content_studio.errors import NotFound, StoreError
from content_studio.logging_config import get_logger

logger = get_logger(__name__)

MEDIA_SCHEME = "media://"

PREFIX_IMAGES = "generated/images"
PREFIX_VIDEOS = "generated/videos"
PREFIX_UPLOADS = "uploads"


def is_media_ref(ref: Optional[str]) -> bool:
    return bool(ref) and ref.startswith(MEDIA_SCHEME)


class LocalMediaStorage:
    """Filesystem-backed object storage; blocking IO runs in a worker thread."""

    def __init__(self, root_dir: str) -> None:
        self.root = Path(root_dir)

    def _path(self, user_id: str, ref: str) -> Path:
        relative = ref[len(MEDIA_SCHEME):]
        user_root = (self.root / user_id).resolve()
        path = (user_root / relative).resolve()
        if user_root not in path.parents:
            raise NotFound(f"Media not found: {ref}")
        return path

    async def put_bytes(self, user_id: str, prefix: str, content: bytes, mime_type: str) -> str:
        extension = mimetypes.guess_extension(mime_type) or ".bin"
        ref = f"{MEDIA_SCHEME}{prefix}/{uuid.uuid4()}{extension}"
        path = self._path(user_id, ref)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.warning("media.write_failed", user_id=user_id, ref=ref, error=str(e))
            raise StoreError("Media storage unavailable") from e
        logger.info("media.stored", user_id=user_id, ref=ref, size=len(content))
        return ref

    async def get(self, user_id: str, ref: str) -> Optional[bytes]:
        """Stored bytes, or None for unknown / non-media references."""
        if not is_media_ref(ref):
            return None
        path = self._path(user_id, ref)
        if not path.is_file():
            return None
        return await asyncio.to_thread(path.read_bytes)

    async def delete(self, user_id: str, ref: str) -> None:
        """Best effort: non-media references and missing files are ignored."""
        if not is_media_ref(ref):
            return
        path = self._path(user_id, ref)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            logger.warning("media.delete_failed", user_id=user_id, ref=ref, error=str(e))
