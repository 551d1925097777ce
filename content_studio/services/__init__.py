"""Business logic services."""
from content_studio.services.item_store import InMemoryItemStore, ItemStore
from content_studio.services.lifecycle_controller import GenerationOutcome, LifecycleController
from content_studio.services.scheduler_service import LifecycleScheduler, SessionSchedulers, promote_due_items

__all__ = [
    "InMemoryItemStore",
    "ItemStore",
    "GenerationOutcome",
    "LifecycleController",
    "LifecycleScheduler",
    "SessionSchedulers",
    "promote_due_items",
]
