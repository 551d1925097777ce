"""
Lifecycle scheduler: promotes scheduled items to posted once their schedule time has passed.
Poll-based sweep (coarse interval), one scheduler per user session, no process-global timer state.
The sweep itself is pure: (snapshot, now) -> (updated snapshot, promoted items).
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set, Union

from content_studio.errors import NotFound, StaleItem
from content_studio.logging_config import get_logger
from content_studio.schemas.content import ContentItem, ContentStatus
from content_studio.services.item_store import ItemStore
from content_studio.services.lifecycle_controller import Clock, utcnow
from content_studio.services.state_machine import is_valid_transition

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 10

SnapshotSource = Callable[[], Awaitable[Sequence[ContentItem]]]


@dataclass
class SweepResult:
    """
    Outcome of one tick: the full updated collection, the items promoted in it,
    and those same items as they were read (`due`, index-aligned with `promoted`).
    """

    items: List[ContentItem]
    promoted: List[ContentItem] = field(default_factory=list)
    due: List[ContentItem] = field(default_factory=list)
    now: Optional[datetime] = None

    @property
    def changed(self) -> bool:
        return bool(self.promoted)


UpdateCallback = Callable[[SweepResult], Awaitable[None]]


def promote_due_items(items: Sequence[ContentItem], now: datetime) -> SweepResult:
    """Every due item (scheduled, schedule <= now) becomes posted; everything else is returned as is."""
    updated: List[ContentItem] = []
    promoted: List[ContentItem] = []
    due: List[ContentItem] = []
    for item in items:
        if item.is_due(now) and is_valid_transition(item.status, ContentStatus.POSTED):
            due.append(item)
            item = item.model_copy(
                update={"status": ContentStatus.POSTED, "schedule": None, "posted_at": now}
            )
            promoted.append(item)
        updated.append(item)
    return SweepResult(items=updated, promoted=promoted, due=due, now=now)


class LifecycleScheduler:
    """
    Recurring due-item sweep.
    start(snapshot, on_update): snapshot is a fixed list of items (the published collection is carried
    into the next tick) or an async callable re-read every tick. on_update is awaited only when a tick
    promoted at least one item. Failures inside a tick are logged and retried on the next interval.
    """

    def __init__(
        self,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Optional[Clock] = None,
        name: str = "default",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = float(interval_seconds)
        self.name = name
        self._clock = clock or utcnow
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._source: Optional[SnapshotSource] = None
        self._on_update: Optional[UpdateCallback] = None
        self._items: Optional[List[ContentItem]] = None
        self.last_tick_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._stop_event is not None and self._task is not None and not self._task.done()

    def start(
        self,
        snapshot: Union[Sequence[ContentItem], SnapshotSource],
        on_update: UpdateCallback,
    ) -> None:
        """Begin the recurring sweep. A previous run is stopped first, so only one timer is ever active."""
        self.stop()
        if callable(snapshot):
            self._items = None
            self._source = snapshot
        else:
            self._items = list(snapshot)
            self._source = self._fixed_snapshot
        self._on_update = on_update
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._loop(self._stop_event))
        logger.info("scheduler.started", scheduler=self.name, interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        """Cancel the recurring sweep. Safe when not started; a tick already running is allowed to finish."""
        if self._stop_event is None:
            return
        self._stop_event.set()
        self._stop_event = None
        logger.info("scheduler.stopped", scheduler=self.name)

    async def shutdown(self) -> None:
        """Stop and wait for the loop (and any in-flight tick) to finish."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _fixed_snapshot(self) -> Sequence[ContentItem]:
        return list(self._items or [])

    async def tick(self) -> Optional[SweepResult]:
        """One sweep. Never raises; returns None when the tick was abandoned."""
        source, on_update = self._source, self._on_update
        if source is None or on_update is None:
            logger.warning("scheduler.tick_not_started", scheduler=self.name)
            return None
        try:
            now = self._clock()
            self.last_tick_at = now
            snapshot = await source()
            result = promote_due_items(snapshot, now)
        except Exception as e:
            logger.warning("scheduler.snapshot_failed", scheduler=self.name, error=str(e))
            return None
        if not result.changed:
            return result
        try:
            await on_update(result)
        except Exception as e:
            logger.warning("scheduler.publish_failed", scheduler=self.name, promoted=len(result.promoted), error=str(e))
            return None
        if source == self._fixed_snapshot:
            self._items = result.items
        logger.info("scheduler.promoted", scheduler=self.name, count=len(result.promoted), item_ids=[i.id for i in result.promoted])
        return result

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                await self.tick()


class SessionSchedulers:
    """
    One LifecycleScheduler per signed-in user, shared by that user's live sessions and stopped when
    the last of them ends. Each scheduler re-reads the user's items from the
    store every tick and writes promotions back per item with a compare-and-set on (status, schedule),
    so an item changed since the snapshot is skipped rather than overwritten.
    """

    def __init__(
        self,
        store: ItemStore,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        enabled: bool = True,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self._clock = clock
        self._schedulers: Dict[str, LifecycleScheduler] = {}
        self._sessions: Dict[str, Set[Optional[str]]] = {}

    def get(self, user_id: str) -> Optional[LifecycleScheduler]:
        return self._schedulers.get(user_id)

    def sessions(self, user_id: str) -> Set[Optional[str]]:
        return set(self._sessions.get(user_id, ()))

    def ensure(self, user_id: str, session_id: Optional[str] = None) -> Optional[LifecycleScheduler]:
        """
        Register the session and start the user's scheduler unless it is already running.
        Repeated calls for the same session are idempotent. No-op when disabled.
        """
        if not self.enabled:
            return None
        self._sessions.setdefault(user_id, set()).add(session_id)
        scheduler = self._schedulers.get(user_id)
        if scheduler is not None and scheduler.running:
            return scheduler
        scheduler = scheduler or LifecycleScheduler(
            interval_seconds=self.interval_seconds,
            clock=self._clock,
            name=f"user:{user_id}",
        )
        self._schedulers[user_id] = scheduler
        scheduler.start(self.snapshot_source(user_id), self.persist_promotions(user_id))
        return scheduler

    def stop(self, user_id: str, session_id: Optional[str] = None) -> None:
        """End one session; the user's scheduler stops once no session of that user is left."""
        sessions = self._sessions.get(user_id)
        if sessions is not None:
            sessions.discard(session_id)
            if sessions:
                logger.info("scheduler.session_ended", user_id=user_id, remaining_sessions=len(sessions))
                return
            del self._sessions[user_id]
        scheduler = self._schedulers.pop(user_id, None)
        if scheduler is not None:
            scheduler.stop()

    async def shutdown(self) -> None:
        schedulers = list(self._schedulers.values())
        self._schedulers.clear()
        self._sessions.clear()
        for scheduler in schedulers:
            await scheduler.shutdown()

    def snapshot_source(self, user_id: str) -> SnapshotSource:
        async def load() -> Sequence[ContentItem]:
            return await self._store.list(user_id)

        return load

    def persist_promotions(self, user_id: str) -> UpdateCallback:
        async def persist(result: SweepResult) -> None:
            for read, promoted in zip(result.due, result.promoted):
                try:
                    await self._store.update(
                        user_id,
                        promoted.id,
                        {"status": ContentStatus.POSTED, "schedule": None, "posted_at": promoted.posted_at},
                        expect={"status": ContentStatus.SCHEDULED, "schedule": read.schedule},
                    )
                except (NotFound, StaleItem) as e:
                    logger.info("scheduler.promotion_skipped", user_id=user_id, item_id=promoted.id, reason=e.code)
                    continue
                logger.info("scheduler.posted", user_id=user_id, item_id=promoted.id)

        return persist
