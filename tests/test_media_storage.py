"""Local media storage: opaque refs, per-user isolation, traversal guard, best-effort delete."""
from pathlib import Path

import pytest

from content_studio.errors import NotFound
from content_studio.services.media_storage import (
    PREFIX_UPLOADS,
    PREFIX_VIDEOS,
    LocalMediaStorage,
    is_media_ref,
)


@pytest.mark.asyncio
async def test_put_get_delete(tmp_path: Path) -> None:
    media = LocalMediaStorage(str(tmp_path))
    ref = await media.put_bytes("u1", PREFIX_VIDEOS, b"mp4", "video/mp4")
    assert is_media_ref(ref)
    assert ref.startswith("media://generated/videos/") and ref.endswith(".mp4")
    assert await media.get("u1", ref) == b"mp4"

    await media.delete("u1", ref)
    assert await media.get("u1", ref) is None
    await media.delete("u1", ref)


@pytest.mark.asyncio
async def test_refs_are_user_scoped(tmp_path: Path) -> None:
    media = LocalMediaStorage(str(tmp_path))
    ref = await media.put_bytes("u1", PREFIX_UPLOADS, b"img", "image/png")
    assert await media.get("u2", ref) is None


@pytest.mark.asyncio
async def test_plain_data_is_not_a_ref(tmp_path: Path) -> None:
    media = LocalMediaStorage(str(tmp_path))
    assert not is_media_ref("Just a text post")
    assert not is_media_ref(None)
    assert await media.get("u1", "Just a text post") is None
    await media.delete("u1", "Just a text post")


@pytest.mark.asyncio
async def test_traversal_rejected(tmp_path: Path) -> None:
    media = LocalMediaStorage(str(tmp_path / "media"))
    (tmp_path / "secret.txt").write_text("x")
    with pytest.raises(NotFound):
        await media.get("u1", "media://../../secret.txt")
    with pytest.raises(NotFound):
        await media.get("u1", "media://")
