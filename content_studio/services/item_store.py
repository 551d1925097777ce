"""
Item store: the persistence surface the lifecycle controller and scheduler read/write through.
Every call is scoped to one user; an item is visible and mutable only inside its owner's scope.
`expect` turns update/delete into a compare-and-set on the current record.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import ValidationError

from content_studio.errors import ContentValidationError, NotFound, StaleItem, StoreError
from content_studio.logging_config import get_logger
from content_studio.schemas.content import ContentItem

logger = get_logger(__name__)

# id / type / prompt / created_at are immutable after creation.
PATCHABLE_FIELDS = frozenset({"status", "data", "schedule", "error_message", "posted_at"})


class ItemStore(Protocol):
    """Persistence interface for content items."""

    async def list(self, user_id: str) -> List[ContentItem]:
        """All items of the user, oldest first."""
        ...

    async def get(self, user_id: str, item_id: str) -> ContentItem:
        """One item; NotFound if absent."""
        ...

    async def create(self, user_id: str, item: ContentItem) -> ContentItem:
        """Insert a new item."""
        ...

    async def update(
        self,
        user_id: str,
        item_id: str,
        patch: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> ContentItem:
        """Apply patch; NotFound if absent, StaleItem if `expect` does not match."""
        ...

    async def delete(
        self,
        user_id: str,
        item_id: str,
        expect: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Remove the item; NotFound if absent, StaleItem if `expect` does not match."""
        ...


def apply_patch(item: ContentItem, patch: Mapping[str, Any]) -> ContentItem:
    """New record with patch applied; the record invariants are re-validated."""
    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise StoreError(f"Fields cannot be changed: {', '.join(sorted(unknown))}")
    values = item.model_dump()
    values.update(patch)
    try:
        return ContentItem.model_validate(values)
    except ValidationError as e:
        raise ContentValidationError(f"Inconsistent item update: {e.errors()[0]['msg']}") from e


def check_expectation(item: ContentItem, expect: Optional[Mapping[str, Any]]) -> None:
    """Raise StaleItem when the stored record no longer matches what the caller read."""
    if not expect:
        return
    for field, expected in expect.items():
        actual = getattr(item, field)
        if actual != expected:
            raise StaleItem(
                f"Item {item.id} changed concurrently ({field})",
                item_id=item.id,
                field=field,
            )


class InMemoryItemStore:
    """
    Process-local store. Mutations do not await between read and write,
    so each call is atomic on a single event loop.
    """

    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, ContentItem]] = {}

    def _scope(self, user_id: str) -> Dict[str, ContentItem]:
        return self._items.setdefault(user_id, {})

    async def list(self, user_id: str) -> List[ContentItem]:
        return list(self._items.get(user_id, {}).values())

    async def get(self, user_id: str, item_id: str) -> ContentItem:
        item = self._items.get(user_id, {}).get(item_id)
        if item is None:
            raise NotFound(f"Content item {item_id} not found", item_id=item_id)
        return item

    async def create(self, user_id: str, item: ContentItem) -> ContentItem:
        scope = self._scope(user_id)
        if item.id in scope:
            raise StoreError(f"Content item {item.id} already exists", item_id=item.id)
        if item.created_at is None:
            item = item.model_copy(update={"created_at": datetime.now(timezone.utc)})
        scope[item.id] = item
        return item

    async def update(
        self,
        user_id: str,
        item_id: str,
        patch: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> ContentItem:
        current = await self.get(user_id, item_id)
        check_expectation(current, expect)
        updated = apply_patch(current, patch)
        self._scope(user_id)[item_id] = updated
        return updated

    async def delete(
        self,
        user_id: str,
        item_id: str,
        expect: Optional[Mapping[str, Any]] = None,
    ) -> None:
        current = await self.get(user_id, item_id)
        check_expectation(current, expect)
        del self._scope(user_id)[item_id]
