"""
OpenAI generation provider: text (chat completions), image (images API), video (videos API).
All provider calls live in this module. Every failure surfaces as ProviderError
(video: ApiKeyRequired / ApiKeyInvalid for key problems).
"""
import asyncio
import base64
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx
import openai

from content_studio.config import Settings
from content_studio.errors import ApiKeyInvalid, ApiKeyRequired, ProviderError
from content_studio.logging_config import get_logger

logger = get_logger(__name__)

TEXT_SYSTEM_PROMPT = (
    "You are a brand ambassador and expert social media content creator. "
    "Generate concise, engaging, and professional content based on the user's notes."
)
IMAGE_PROMPT = "Create a vibrant, professional, and eye-catching image for a social media post. The theme is: {prompt}"
VIDEO_PROMPT = "Create a short, dynamic, and engaging video for social media. The theme is: {prompt}"

VIDEO_RUNNING_STATES = ("queued", "in_progress")


@dataclass(frozen=True)
class GeneratedMedia:
    """Binary payload returned by a provider."""

    content: bytes
    mime_type: str


class ContentProvider(Protocol):
    """Generation backend consumed by the generation pipeline."""

    async def generate_text(self, prompt: str) -> str:
        ...

    async def generate_image(self, prompt: str) -> GeneratedMedia:
        ...

    async def generate_video(self, prompt: str, start_image: Optional[GeneratedMedia] = None) -> GeneratedMedia:
        ...


class OpenAIContentProvider:
    """OpenAI-backed provider. Blocking SDK calls run in worker threads so the event loop stays free."""

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.image_model = settings.openai_image_model
        self.video_model = settings.openai_video_model
        self.timeout_seconds = settings.openai_timeout_seconds
        self.max_retries = settings.openai_max_retries
        self.temperature = settings.openai_temperature
        self.video_poll_interval = settings.video_poll_interval_seconds
        self.video_timeout_seconds = settings.video_timeout_seconds
        self._client: Any = None

    def _get_client(self):  # noqa: ANN201
        """Lazy init OpenAI client."""
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.api_key or "",
                timeout=float(self.timeout_seconds),
                max_retries=self.max_retries,
            )
        return self._client

    def _require_key(self) -> None:
        if not self.api_key:
            raise ProviderError("OpenAI is not configured (OPENAI_API_KEY missing).")

    async def generate_text(self, prompt: str) -> str:
        self._require_key()
        client = self._get_client()
        start = time.perf_counter()
        try:
            resp = await asyncio.to_thread(
                client.chat.completions.create,
                model=self.model,
                messages=[
                    {"role": "system", "content": TEXT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
            )
            text = (resp.choices[0].message.content or "").strip()
        except Exception as e:
            logger.warning("provider.text_failed", model=self.model, latency_ms=_ms_since(start), error=str(e))
            raise ProviderError("Failed to generate text content.") from e
        if not text:
            raise ProviderError("Failed to generate text content.")
        logger.info("provider.text_success", model=self.model, latency_ms=_ms_since(start), chars=len(text))
        return text

    async def generate_image(self, prompt: str) -> GeneratedMedia:
        self._require_key()
        client = self._get_client()
        start = time.perf_counter()
        try:
            resp = await asyncio.to_thread(
                client.images.generate,
                model=self.image_model,
                prompt=IMAGE_PROMPT.format(prompt=prompt),
                size="1024x1024",
                n=1,
            )
            image = resp.data[0]
            if getattr(image, "b64_json", None):
                media = GeneratedMedia(base64.b64decode(image.b64_json), "image/png")
            elif getattr(image, "url", None):
                media = await self._download(image.url)
            else:
                raise ProviderError("Image not found in provider response.")
        except ProviderError:
            raise
        except Exception as e:
            logger.warning("provider.image_failed", model=self.image_model, latency_ms=_ms_since(start), error=str(e))
            raise ProviderError("Failed to generate image content.") from e
        logger.info("provider.image_success", model=self.image_model, latency_ms=_ms_since(start), size=len(media.content))
        return media

    async def generate_video(self, prompt: str, start_image: Optional[GeneratedMedia] = None) -> GeneratedMedia:
        """Start a video job, poll until it finishes, download the mp4."""
        if not self.api_key:
            raise ApiKeyRequired()
        client = self._get_client()
        start = time.perf_counter()
        kwargs: dict = {
            "model": self.video_model,
            "prompt": VIDEO_PROMPT.format(prompt=prompt),
            "size": "720x1280",
        }
        if start_image is not None:
            kwargs["input_reference"] = ("start_frame", start_image.content, start_image.mime_type)
        try:
            video = await asyncio.to_thread(client.videos.create, **kwargs)
            deadline = time.monotonic() + self.video_timeout_seconds
            while video.status in VIDEO_RUNNING_STATES:
                if time.monotonic() > deadline:
                    raise ProviderError("Video generation timed out.")
                await asyncio.sleep(self.video_poll_interval)
                video = await asyncio.to_thread(client.videos.retrieve, video.id)
            if video.status != "completed":
                error = getattr(video, "error", None)
                raise ProviderError(getattr(error, "message", None) or "Video generation failed in operation.")
            content = await asyncio.to_thread(client.videos.download_content, video.id, variant="video")
            data = content.read()
        except ProviderError:
            raise
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.warning("provider.video_key_rejected", model=self.video_model, error=str(e))
            raise ApiKeyInvalid() from e
        except Exception as e:
            logger.warning("provider.video_failed", model=self.video_model, latency_ms=_ms_since(start), error=str(e))
            raise ProviderError(str(e) or "Failed to generate video content.") from e
        logger.info("provider.video_success", model=self.video_model, latency_ms=_ms_since(start), size=len(data))
        return GeneratedMedia(data, "video/mp4")

    async def _download(self, url: str) -> GeneratedMedia:
        async with httpx.AsyncClient(timeout=float(self.timeout_seconds)) as http:
            r = await http.get(url)
            r.raise_for_status()
            mime_type = r.headers.get("content-type", "image/png").split(";")[0]
            return GeneratedMedia(r.content, mime_type)


def _ms_since(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)
