"""Shared fixtures: fixed clock, in-memory store, item factory."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from content_studio.schemas.content import ContentItem, ContentStatus, ContentType
from content_studio.services.item_store import InMemoryItemStore
from content_studio.services.lifecycle_controller import LifecycleController

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def make_item(
    status: ContentStatus = ContentStatus.PENDING,
    schedule: Optional[datetime] = None,
    content_type: ContentType = ContentType.TEXT,
    **kwargs,
) -> ContentItem:
    return ContentItem(
        id=kwargs.pop("id", str(uuid.uuid4())),
        type=content_type,
        prompt=kwargs.pop("prompt", "notes"),
        data=kwargs.pop("data", "hello"),
        status=status,
        schedule=schedule,
        created_at=kwargs.pop("created_at", T0),
        **kwargs,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryItemStore:
    return InMemoryItemStore()


@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def controller(store: InMemoryItemStore, user_id: str, clock: FixedClock) -> LifecycleController:
    return LifecycleController(store, user_id, clock=clock)
