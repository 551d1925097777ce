"""
Lifecycle controller: the only entry point for user-driven and generation-driven transitions.
Each mutation reads the item, checks the transition table, then writes with a compare-and-set
on the status it read; on any failure nothing is written.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from content_studio.errors import (
    ContentValidationError,
    InvalidTransition,
    NotFound,
    StaleItem,
    StudioError,
)
from content_studio.logging_config import get_logger
from content_studio.schemas.content import ContentItem, ContentStatus, ContentType, ensure_utc
from content_studio.services.item_store import ItemStore
from content_studio.services.state_machine import ensure_deletable, ensure_transition

logger = get_logger(__name__)

Clock = Callable[[], datetime]

GENERATION_STARTED_MESSAGE = "Initializing video generation..."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of a background generation: payload reference on success, error on failure."""

    data: Optional[str] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, data: str) -> "GenerationOutcome":
        return cls(data=data)

    @classmethod
    def failure(cls, error: Exception) -> "GenerationOutcome":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        if isinstance(self.error, StudioError):
            return self.error.message
        return str(self.error) or "An unknown error occurred"


class LifecycleController:
    """Content lifecycle operations for one user scope."""

    def __init__(self, store: ItemStore, user_id: str, clock: Optional[Clock] = None) -> None:
        self._store = store
        self._user_id = user_id
        self._clock = clock or utcnow

    @property
    def user_id(self) -> str:
        return self._user_id

    async def list(self) -> List[ContentItem]:
        return await self._store.list(self._user_id)

    async def get(self, item_id: str) -> ContentItem:
        return await self._store.get(self._user_id, item_id)

    # --- Creation ---

    async def create_pending(self, content_type: ContentType, prompt: str, data: str) -> ContentItem:
        """New item straight in pending (generation already succeeded)."""
        ensure_transition(None, ContentStatus.PENDING)
        item = ContentItem(
            id=str(uuid.uuid4()),
            type=content_type,
            prompt=prompt,
            data=data,
            status=ContentStatus.PENDING,
            created_at=self._clock(),
        )
        created = await self._store.create(self._user_id, item)
        logger.info("lifecycle.created", user_id=self._user_id, item_id=created.id, type=content_type.value, status="pending")
        return created

    async def start_generation(
        self,
        content_type: ContentType,
        prompt: str,
        message: str = GENERATION_STARTED_MESSAGE,
    ) -> ContentItem:
        """Placeholder item in generating; finalized later by finalize_generation."""
        ensure_transition(None, ContentStatus.GENERATING)
        item = ContentItem(
            id=str(uuid.uuid4()),
            type=content_type,
            prompt=prompt,
            status=ContentStatus.GENERATING,
            error_message=message,
            created_at=self._clock(),
        )
        created = await self._store.create(self._user_id, item)
        logger.info("lifecycle.created", user_id=self._user_id, item_id=created.id, type=content_type.value, status="generating")
        return created

    async def report_progress(self, item_id: str, message: str) -> Optional[ContentItem]:
        """Update progress text of a generating item. Missing or already finalized items are ignored."""
        try:
            return await self._store.update(
                self._user_id,
                item_id,
                {"error_message": message},
                expect={"status": ContentStatus.GENERATING},
            )
        except (NotFound, StaleItem):
            logger.info("lifecycle.progress_dropped", user_id=self._user_id, item_id=item_id)
            return None

    async def finalize_generation(self, item_id: str, outcome: GenerationOutcome) -> Optional[ContentItem]:
        """
        generating -> pending (data set) or generating -> error (errorMessage set).
        NotFound is a benign race with a concurrent delete: logged, returns None.
        """
        target = ContentStatus.PENDING if outcome.ok else ContentStatus.ERROR
        try:
            current = await self._store.get(self._user_id, item_id)
        except NotFound:
            logger.info("lifecycle.finalize_missing", user_id=self._user_id, item_id=item_id, outcome=target.value)
            return None
        ensure_transition(current.status, target)
        if outcome.ok:
            patch = {"status": target, "data": outcome.data or "", "error_message": None}
        else:
            patch = {"status": target, "error_message": outcome.error_message}
        try:
            item = await self._store.update(self._user_id, item_id, patch, expect={"status": current.status})
        except NotFound:
            logger.info("lifecycle.finalize_missing", user_id=self._user_id, item_id=item_id, outcome=target.value)
            return None
        except StaleItem as e:
            raise InvalidTransition(current.status, target, message=e.message) from e
        logger.info("lifecycle.finalized", user_id=self._user_id, item_id=item_id, status=target.value)
        return item

    # --- User actions ---

    async def approve(self, item_id: str) -> ContentItem:
        return await self._transition(item_id, ContentStatus.APPROVED)

    async def reject(self, item_id: str) -> ContentItem:
        return await self._transition(item_id, ContentStatus.REJECTED)

    async def set_status(self, item_id: str, status: ContentStatus) -> ContentItem:
        """
        Generic status change requested by a user. Only approve / reject are user-settable;
        scheduled needs a time, the rest belong to the generation pipeline or the scheduler.
        """
        if status == ContentStatus.APPROVED:
            return await self.approve(item_id)
        if status == ContentStatus.REJECTED:
            return await self.reject(item_id)
        current = await self._store.get(self._user_id, item_id)
        raise InvalidTransition(
            current.status,
            status,
            message=f"Status {status.value} cannot be set directly",
        )

    async def schedule(self, item_id: str, when: datetime) -> ContentItem:
        """approved -> scheduled, or re-schedule a scheduled item. `when` must be strictly in the future."""
        when = ensure_utc(when)
        current = await self._store.get(self._user_id, item_id)
        ensure_transition(current.status, ContentStatus.SCHEDULED)
        now = self._clock()
        if when <= now:
            raise ContentValidationError(
                "Schedule time must be in the future",
                item_id=item_id,
                schedule=when.isoformat(),
            )
        item = await self._write(
            current,
            {"status": ContentStatus.SCHEDULED, "schedule": when},
            ContentStatus.SCHEDULED,
        )
        logger.info("lifecycle.scheduled", user_id=self._user_id, item_id=item_id, schedule=when.isoformat())
        return item

    async def delete(self, item_id: str) -> ContentItem:
        """Remove an item; not allowed while generating or scheduled. Returns the removed item."""
        current = await self._store.get(self._user_id, item_id)
        ensure_deletable(current.status)
        try:
            await self._store.delete(self._user_id, item_id, expect={"status": current.status})
        except StaleItem as e:
            raise InvalidTransition(current.status, "deleted", message=e.message) from e
        logger.info("lifecycle.deleted", user_id=self._user_id, item_id=item_id, status=current.status.value)
        return current

    # --- Internals ---

    async def _transition(self, item_id: str, target: ContentStatus) -> ContentItem:
        current = await self._store.get(self._user_id, item_id)
        ensure_transition(current.status, target)
        item = await self._write(current, {"status": target}, target)
        logger.info(f"lifecycle.{target.value}", user_id=self._user_id, item_id=item_id)
        return item

    async def _write(self, current: ContentItem, patch: dict, target: ContentStatus) -> ContentItem:
        expect = {"status": current.status}
        if current.status == ContentStatus.SCHEDULED:
            expect["schedule"] = current.schedule
        try:
            return await self._store.update(self._user_id, current.id, patch, expect=expect)
        except StaleItem as e:
            raise InvalidTransition(current.status, target, message=e.message) from e
