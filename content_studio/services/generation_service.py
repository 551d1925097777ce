"""
Generation pipeline: prompt from brand context -> provider -> media storage -> lifecycle controller.
Text / image complete inside the request (failed items are reported, never created).
Video gets a generating placeholder and finishes in a tracked background task.
"""
import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from content_studio.errors import ContentValidationError, ProviderError, StoreError, StudioError
from content_studio.logging_config import get_logger
from content_studio.schemas.content import ContentItem, ContentType
from content_studio.services.lifecycle_controller import GenerationOutcome, LifecycleController
from content_studio.services.media_storage import PREFIX_IMAGES, PREFIX_VIDEOS, LocalMediaStorage
from content_studio.services.provider_service import ContentProvider, GeneratedMedia

logger = get_logger(__name__)

VIDEO_PROGRESS_STEPS = ("Warming up the cameras...", "Directing the scene...")


def build_prompt(notes: str, links: str = "") -> str:
    """Prompt sent to every provider, built from the user's notes and reference links."""
    prompt = f"**My Personal Notes:**\n{notes}\n\n"
    if links and links.strip():
        prompt += f"**Reference Articles/Links:**\n{links}\n\n"
    prompt += "Based on the information above, please generate a social media post."
    return prompt


@dataclass
class GenerationBatch:
    """Items created by one generate request plus the per-item failures."""

    items: List[ContentItem] = field(default_factory=list)
    errors: List[StudioError] = field(default_factory=list)


class GenerationService:
    """Runs generate requests; owns the background video tasks."""

    def __init__(
        self,
        provider: ContentProvider,
        media: LocalMediaStorage,
        max_count: int = 5,
        progress_steps: Sequence[str] = VIDEO_PROGRESS_STEPS,
        progress_delay_seconds: float = 2.0,
    ) -> None:
        self._provider = provider
        self._media = media
        self.max_count = max_count
        self._progress_steps = tuple(progress_steps)
        self._progress_delay = progress_delay_seconds
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def generate(
        self,
        controller: LifecycleController,
        content_type: ContentType,
        prompt: str,
        count: int = 1,
        start_image: Optional[GeneratedMedia] = None,
    ) -> GenerationBatch:
        if count < 1 or count > self.max_count:
            raise ContentValidationError(f"count must be between 1 and {self.max_count}", count=count)
        logger.info(
            "generation.requested",
            user_id=controller.user_id,
            type=content_type.value,
            count=count,
            start_image=start_image is not None,
        )
        if content_type == ContentType.VIDEO:
            return await self._start_videos(controller, prompt, count, start_image)

        results = await asyncio.gather(
            *[self._generate_one(controller, content_type, prompt) for _ in range(count)],
            return_exceptions=True,
        )
        batch = GenerationBatch()
        for result in results:
            if isinstance(result, StudioError):
                logger.warning(
                    "generation.item_failed",
                    user_id=controller.user_id,
                    type=content_type.value,
                    code=result.code,
                    error=result.message,
                )
                batch.errors.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                batch.items.append(result)
        logger.info(
            "generation.completed",
            user_id=controller.user_id,
            type=content_type.value,
            created=len(batch.items),
            failed=len(batch.errors),
        )
        return batch

    async def _generate_one(
        self,
        controller: LifecycleController,
        content_type: ContentType,
        prompt: str,
    ) -> ContentItem:
        if content_type == ContentType.TEXT:
            data = await self._provider.generate_text(prompt)
        else:
            image = await self._provider.generate_image(prompt)
            data = await self._media.put_bytes(controller.user_id, PREFIX_IMAGES, image.content, image.mime_type)
        try:
            return await controller.create_pending(content_type, prompt, data)
        except StudioError:
            await self._media.delete(controller.user_id, data)
            raise

    async def _start_videos(
        self,
        controller: LifecycleController,
        prompt: str,
        count: int,
        start_image: Optional[GeneratedMedia],
    ) -> GenerationBatch:
        batch = GenerationBatch()
        for _ in range(count):
            placeholder = await controller.start_generation(ContentType.VIDEO, prompt)
            batch.items.append(placeholder)
            task = asyncio.create_task(self._run_video(controller, placeholder.id, prompt, start_image))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return batch

    async def _run_video(
        self,
        controller: LifecycleController,
        item_id: str,
        prompt: str,
        start_image: Optional[GeneratedMedia],
    ) -> None:
        try:
            for message in self._progress_steps:
                await controller.report_progress(item_id, message)
                if self._progress_delay:
                    await asyncio.sleep(self._progress_delay)
            video = await self._provider.generate_video(prompt, start_image)
            ref = await self._media.put_bytes(controller.user_id, PREFIX_VIDEOS, video.content, video.mime_type)
            outcome = GenerationOutcome.success(ref)
        except (ProviderError, StoreError) as e:
            logger.warning("generation.video_failed", user_id=controller.user_id, item_id=item_id, code=e.code, error=e.message)
            outcome = GenerationOutcome.failure(e)
        except asyncio.CancelledError:
            await self._finalize(controller, item_id, GenerationOutcome.failure(ProviderError("Video generation was interrupted.")))
            raise
        except Exception as e:
            logger.warning("generation.video_crashed", user_id=controller.user_id, item_id=item_id, error=str(e))
            outcome = GenerationOutcome.failure(ProviderError(str(e) or None))
        await self._finalize(controller, item_id, outcome)

    async def _finalize(self, controller: LifecycleController, item_id: str, outcome: GenerationOutcome) -> None:
        try:
            await controller.finalize_generation(item_id, outcome)
        except StudioError as e:
            logger.warning("generation.finalize_failed", user_id=controller.user_id, item_id=item_id, code=e.code, error=e.message)

    async def drain(self) -> None:
        """Wait for all background generations to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background generations; their items end in error."""
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
