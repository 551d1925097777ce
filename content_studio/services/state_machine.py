"""
Content lifecycle transition table.
Pure: consulted by every mutation path (controller, scheduler) before state is written.
"""
from typing import Optional

from content_studio.errors import InvalidTransition
from content_studio.schemas.content import ContentStatus

S = ContentStatus

# None = the item does not exist yet (creation).
ALLOWED_TRANSITIONS: dict[Optional[ContentStatus], frozenset[ContentStatus]] = {
    None: frozenset({S.GENERATING, S.PENDING}),
    S.GENERATING: frozenset({S.PENDING, S.ERROR}),
    S.PENDING: frozenset({S.APPROVED, S.REJECTED}),
    S.APPROVED: frozenset({S.SCHEDULED}),
    # Re-scheduling overwrites the target time.
    S.SCHEDULED: frozenset({S.SCHEDULED, S.POSTED}),
    S.REJECTED: frozenset(),
    S.POSTED: frozenset(),
    S.ERROR: frozenset(),
}

# Scheduled and generating items must reach another state before they can be removed.
DELETABLE_STATUSES: frozenset[ContentStatus] = frozenset(
    {S.REJECTED, S.ERROR, S.POSTED, S.PENDING, S.APPROVED}
)


def is_valid_transition(current: Optional[ContentStatus], target: ContentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: Optional[ContentStatus], target: ContentStatus) -> None:
    if not is_valid_transition(current, target):
        raise InvalidTransition(current, target)


def is_deletable(current: ContentStatus) -> bool:
    return current in DELETABLE_STATUSES


def ensure_deletable(current: ContentStatus) -> None:
    if not is_deletable(current):
        raise InvalidTransition(current, "deleted")
