"""OpenAI provider adapter with a mocked SDK client: responses mapped to payloads, failures to ProviderError."""
import base64
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from content_studio.config import Settings
from content_studio.errors import ApiKeyInvalid, ApiKeyRequired, ProviderError
from content_studio.services.provider_service import GeneratedMedia, OpenAIContentProvider


def _provider(api_key="sk-test") -> OpenAIContentProvider:
    settings = Settings(OPENAI_API_KEY=api_key, VIDEO_POLL_INTERVAL_SECONDS=0)
    provider = OpenAIContentProvider(settings)
    provider._client = MagicMock()
    return provider


def _chat(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.mark.asyncio
async def test_generate_text() -> None:
    provider = _provider()
    provider._client.chat.completions.create.return_value = _chat("  A great post  ")
    assert await provider.generate_text("notes") == "A great post"
    kwargs = provider._client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"][-1] == {"role": "user", "content": "notes"}


@pytest.mark.asyncio
async def test_generate_text_failures() -> None:
    provider = _provider()
    provider._client.chat.completions.create.return_value = _chat("")
    with pytest.raises(ProviderError):
        await provider.generate_text("notes")

    provider._client.chat.completions.create.side_effect = RuntimeError("boom")
    with pytest.raises(ProviderError) as exc:
        await provider.generate_text("notes")
    assert exc.value.message == "Failed to generate text content."


@pytest.mark.asyncio
async def test_missing_key_is_provider_error() -> None:
    provider = _provider(api_key=None)
    with pytest.raises(ProviderError):
        await provider.generate_text("notes")
    with pytest.raises(ApiKeyRequired):
        await provider.generate_video("notes")


@pytest.mark.asyncio
async def test_generate_image_b64() -> None:
    provider = _provider()
    payload = base64.b64encode(b"png-bytes").decode()
    provider._client.images.generate.return_value = SimpleNamespace(data=[SimpleNamespace(b64_json=payload, url=None)])
    media = await provider.generate_image("notes")
    assert media == GeneratedMedia(b"png-bytes", "image/png")
    assert "notes" in provider._client.images.generate.call_args.kwargs["prompt"]


@pytest.mark.asyncio
async def test_generate_image_without_payload() -> None:
    provider = _provider()
    provider._client.images.generate.return_value = SimpleNamespace(data=[SimpleNamespace(b64_json=None, url=None)])
    with pytest.raises(ProviderError):
        await provider.generate_image("notes")


@pytest.mark.asyncio
async def test_generate_video_polls_until_done() -> None:
    provider = _provider()
    videos = provider._client.videos
    videos.create.return_value = SimpleNamespace(id="vid_1", status="queued")
    videos.retrieve.side_effect = [
        SimpleNamespace(id="vid_1", status="in_progress"),
        SimpleNamespace(id="vid_1", status="completed"),
    ]
    videos.download_content.return_value = SimpleNamespace(read=lambda: b"mp4")

    start = GeneratedMedia(b"jpeg", "image/jpeg")
    media = await provider.generate_video("notes", start)
    assert media == GeneratedMedia(b"mp4", "video/mp4")
    assert videos.retrieve.call_count == 2
    assert videos.create.call_args.kwargs["input_reference"] == ("start_frame", b"jpeg", "image/jpeg")
    videos.download_content.assert_called_once_with("vid_1", variant="video")


@pytest.mark.asyncio
async def test_generate_video_failed_job() -> None:
    provider = _provider()
    provider._client.videos.create.return_value = SimpleNamespace(
        id="vid_1", status="failed", error=SimpleNamespace(message="moderation_blocked")
    )
    with pytest.raises(ProviderError) as exc:
        await provider.generate_video("notes")
    assert exc.value.message == "moderation_blocked"


@pytest.mark.asyncio
async def test_generate_video_rejected_key() -> None:
    provider = _provider()
    response = httpx.Response(401, request=httpx.Request("POST", "https://api.openai.com/v1/videos"))
    provider._client.videos.create.side_effect = openai.AuthenticationError("bad key", response=response, body=None)
    with pytest.raises(ApiKeyInvalid):
        await provider.generate_video("notes")
