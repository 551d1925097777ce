"""
Transition table: every listed pair is allowed, every other (from, to) pair raises InvalidTransition.
Deletion policy: generating and scheduled items cannot be deleted.
"""
import itertools

import pytest

from content_studio.errors import InvalidTransition
from content_studio.schemas.content import ContentStatus
from content_studio.services.state_machine import (
    ALLOWED_TRANSITIONS,
    ensure_deletable,
    ensure_transition,
    is_deletable,
    is_valid_transition,
)

S = ContentStatus

EXPECTED = {
    (None, S.GENERATING),
    (None, S.PENDING),
    (S.GENERATING, S.PENDING),
    (S.GENERATING, S.ERROR),
    (S.PENDING, S.APPROVED),
    (S.PENDING, S.REJECTED),
    (S.APPROVED, S.SCHEDULED),
    (S.SCHEDULED, S.SCHEDULED),
    (S.SCHEDULED, S.POSTED),
}

ALL_PAIRS = list(itertools.product([None, *ContentStatus], list(ContentStatus)))


def test_table_matches_lifecycle() -> None:
    """The table holds exactly the lifecycle edges."""
    pairs = {(src, dst) for src, targets in ALLOWED_TRANSITIONS.items() for dst in targets}
    assert pairs == EXPECTED


@pytest.mark.parametrize("src,dst", ALL_PAIRS)
def test_every_pair(src, dst) -> None:
    """Allowed pairs pass; every other pair raises InvalidTransition naming both ends."""
    if (src, dst) in EXPECTED:
        assert is_valid_transition(src, dst)
        ensure_transition(src, dst)
    else:
        assert not is_valid_transition(src, dst)
        with pytest.raises(InvalidTransition) as exc:
            ensure_transition(src, dst)
        assert exc.value.to_status == dst
        assert exc.value.code == "invalid_transition"


@pytest.mark.parametrize("status", [S.REJECTED, S.POSTED, S.ERROR])
def test_terminal_states_have_no_exit(status) -> None:
    assert not ALLOWED_TRANSITIONS[status]


@pytest.mark.parametrize("status", list(ContentStatus))
def test_deletion_policy(status) -> None:
    """Deletable unless generating or scheduled."""
    blocked = status in (S.GENERATING, S.SCHEDULED)
    assert is_deletable(status) is (not blocked)
    if blocked:
        with pytest.raises(InvalidTransition):
            ensure_deletable(status)
    else:
        ensure_deletable(status)
