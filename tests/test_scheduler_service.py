"""
Lifecycle scheduler: pure sweep, tick publishing rules, start/stop/restart, failure containment,
and per-session registry writing promotions back with compare-and-set.
"""
import asyncio
from datetime import timedelta
from typing import List

import pytest

from content_studio.schemas.content import ContentStatus
from content_studio.services.item_store import InMemoryItemStore
from content_studio.services.scheduler_service import (
    LifecycleScheduler,
    SessionSchedulers,
    SweepResult,
    promote_due_items,
)

from conftest import T0, FixedClock, make_item


def test_sweep_promotes_only_due_items() -> None:
    due = make_item(ContentStatus.SCHEDULED, schedule=T0 - timedelta(seconds=1))
    exactly_now = make_item(ContentStatus.SCHEDULED, schedule=T0)
    future = make_item(ContentStatus.SCHEDULED, schedule=T0 + timedelta(minutes=5))
    approved = make_item(ContentStatus.APPROVED)

    result = promote_due_items([due, exactly_now, future, approved], T0)

    assert [i.id for i in result.promoted] == [due.id, exactly_now.id]
    assert result.due == [due, exactly_now]
    by_id = {i.id: i for i in result.items}
    for item_id in (due.id, exactly_now.id):
        assert by_id[item_id].status == ContentStatus.POSTED
        assert by_id[item_id].schedule is None
        assert by_id[item_id].posted_at == T0
    assert by_id[future.id] == future
    assert by_id[approved.id] == approved
    assert [i.id for i in result.items] == [due.id, exactly_now.id, future.id, approved.id]


def test_sweep_nothing_due() -> None:
    items = [make_item(ContentStatus.SCHEDULED, schedule=T0 + timedelta(seconds=1))]
    result = promote_due_items(items, T0)
    assert not result.changed
    assert result.items == items


class Recorder:
    def __init__(self, fail_times: int = 0) -> None:
        self.calls: List[SweepResult] = []
        self.fail_times = fail_times

    async def __call__(self, result: SweepResult) -> None:
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("store down")
        self.calls.append(result)


@pytest.mark.asyncio
async def test_tick_publishes_only_on_change(clock: FixedClock) -> None:
    """Future items stay scheduled; once due, exactly one publish; a second tick publishes nothing."""
    item = make_item(ContentStatus.SCHEDULED, schedule=T0 + timedelta(seconds=20))
    recorder = Recorder()
    scheduler = LifecycleScheduler(interval_seconds=3600, clock=clock)
    scheduler.start([item], recorder)
    try:
        result = await scheduler.tick()
        assert not result.changed
        assert recorder.calls == []

        clock.advance(20)
        result = await scheduler.tick()
        assert result.changed
        assert len(recorder.calls) == 1
        assert recorder.calls[0].items[0].status == ContentStatus.POSTED

        clock.advance(10)
        result = await scheduler.tick()
        assert not result.changed
        assert len(recorder.calls) == 1
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_failed_publish_is_retried_next_tick(clock: FixedClock) -> None:
    """A tick whose publish fails is abandoned (never raises); the next tick retries it."""
    item = make_item(ContentStatus.SCHEDULED, schedule=T0)
    recorder = Recorder(fail_times=1)
    scheduler = LifecycleScheduler(interval_seconds=3600, clock=clock)
    scheduler.start([item], recorder)
    try:
        assert await scheduler.tick() is None
        result = await scheduler.tick()
        assert result.changed
        assert len(recorder.calls) == 1
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_failed_snapshot_never_raises(clock: FixedClock) -> None:
    async def broken() -> list:
        raise ConnectionError("db unreachable")

    scheduler = LifecycleScheduler(interval_seconds=3600, clock=clock)
    scheduler.start(broken, Recorder())
    try:
        assert await scheduler.tick() is None
        assert scheduler.last_tick_at == clock.now
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_failing_clock_keeps_loop_alive() -> None:
    def broken_clock():
        raise RuntimeError("clock unavailable")

    recorder = Recorder()
    scheduler = LifecycleScheduler(interval_seconds=0.01, clock=broken_clock)
    scheduler.start([make_item(ContentStatus.SCHEDULED, schedule=T0)], recorder)
    try:
        assert await scheduler.tick() is None
        await asyncio.sleep(0.05)
        assert scheduler.running
        assert recorder.calls == []
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_tick_before_start_is_noop() -> None:
    assert await LifecycleScheduler().tick() is None


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LifecycleScheduler(interval_seconds=0)


@pytest.mark.asyncio
async def test_loop_runs_on_interval_and_stops() -> None:
    """Real timer: due item posted by the loop itself; stop() is idempotent and halts further ticks."""
    item = make_item(ContentStatus.SCHEDULED, schedule=T0)
    recorder = Recorder()
    scheduler = LifecycleScheduler(interval_seconds=0.01)
    scheduler.start([item], recorder)
    assert scheduler.running
    for _ in range(200):
        if recorder.calls:
            break
        await asyncio.sleep(0.01)
    assert len(recorder.calls) == 1

    scheduler.stop()
    scheduler.stop()
    assert not scheduler.running
    await scheduler.shutdown()
    last = scheduler.last_tick_at
    await asyncio.sleep(0.05)
    assert scheduler.last_tick_at == last


@pytest.mark.asyncio
async def test_restart_keeps_single_timer() -> None:
    """start() while running replaces the previous run instead of adding a second one."""
    first, second = Recorder(), Recorder()
    scheduler = LifecycleScheduler(interval_seconds=0.01)
    scheduler.start([make_item(ContentStatus.SCHEDULED, schedule=T0)], first)
    old_task = scheduler._task
    scheduler.start([make_item(ContentStatus.SCHEDULED, schedule=T0)], second)
    try:
        await asyncio.wait_for(old_task, timeout=1)
        for _ in range(200):
            if second.calls:
                break
            await asyncio.sleep(0.01)
        assert len(second.calls) == 1
        assert first.calls == []
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_stop_without_start() -> None:
    scheduler = LifecycleScheduler()
    scheduler.stop()
    await scheduler.shutdown()
    assert not scheduler.running


# --- Session registry ---


@pytest.mark.asyncio
async def test_registry_persists_promotions(store: InMemoryItemStore, user_id: str, clock: FixedClock) -> None:
    due = await store.create(user_id, make_item(ContentStatus.SCHEDULED, schedule=T0))
    later = await store.create(user_id, make_item(ContentStatus.SCHEDULED, schedule=T0 + timedelta(hours=1)))
    registry = SessionSchedulers(store, interval_seconds=3600, clock=clock)
    scheduler = registry.ensure(user_id)
    try:
        assert registry.ensure(user_id) is scheduler
        result = await scheduler.tick()
        assert [i.id for i in result.promoted] == [due.id]
        stored = await store.get(user_id, due.id)
        assert stored.status == ContentStatus.POSTED
        assert stored.posted_at == T0
        assert await store.get(user_id, later.id) == later
    finally:
        await registry.shutdown()


@pytest.mark.asyncio
async def test_registry_skips_item_changed_since_snapshot(store: InMemoryItemStore, user_id: str, clock: FixedClock) -> None:
    """An item rescheduled between snapshot and write is not overwritten."""
    item = await store.create(user_id, make_item(ContentStatus.SCHEDULED, schedule=T0))
    registry = SessionSchedulers(store, interval_seconds=3600, clock=clock)
    snapshot = await registry.snapshot_source(user_id)()
    result = promote_due_items(snapshot, clock.now)

    moved = await store.update(
        user_id, item.id, {"schedule": T0 + timedelta(days=1)}, expect={"status": ContentStatus.SCHEDULED}
    )
    await registry.persist_promotions(user_id)(result)
    assert await store.get(user_id, item.id) == moved


@pytest.mark.asyncio
async def test_registry_skips_deleted_item(store: InMemoryItemStore, user_id: str, clock: FixedClock) -> None:
    item = await store.create(user_id, make_item(ContentStatus.SCHEDULED, schedule=T0))
    registry = SessionSchedulers(store, clock=clock)
    result = promote_due_items(await store.list(user_id), clock.now)
    await store.delete(user_id, item.id)
    await registry.persist_promotions(user_id)(result)
    assert await store.list(user_id) == []


@pytest.mark.asyncio
async def test_registry_stop_and_disabled(store: InMemoryItemStore, user_id: str) -> None:
    registry = SessionSchedulers(store, interval_seconds=3600)
    scheduler = registry.ensure(user_id)
    assert scheduler.running
    registry.stop(user_id)
    assert not scheduler.running
    await scheduler.shutdown()
    assert registry.get(user_id) is None
    registry.stop(user_id)

    disabled = SessionSchedulers(store, enabled=False)
    assert disabled.ensure(user_id) is None
    await registry.shutdown()


@pytest.mark.asyncio
async def test_registry_keeps_scheduler_until_last_session_ends(store: InMemoryItemStore, user_id: str) -> None:
    registry = SessionSchedulers(store, interval_seconds=3600)
    scheduler = registry.ensure(user_id, "session-a")
    try:
        assert registry.ensure(user_id, "session-b") is scheduler
        assert registry.ensure(user_id, "session-b") is scheduler
        assert registry.sessions(user_id) == {"session-a", "session-b"}

        registry.stop(user_id, "session-a")
        assert registry.get(user_id) is scheduler
        assert scheduler.running

        registry.stop(user_id, "session-b")
        assert registry.get(user_id) is None
        assert not scheduler.running
        assert registry.sessions(user_id) == set()
    finally:
        await scheduler.shutdown()
        await registry.shutdown()
