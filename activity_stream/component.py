"""
Process-wide activity component: settings plus the registries and cache
that the rest of the package receives explicitly.
"""
from dataclasses import dataclass, field
from typing import Hashable, List, Optional

from .actions import ActionRegistry, register_default_actions
from .config import Settings, get_settings
from .hooks import HookRegistry
from .schemas.activity import ActivityItem

COMMENT_TYPE = "activity_comment"
UPDATE_TYPE = "activity_update"
COMPONENT_ID = "activity"


class FeedCache:
    """Single cached entry: the first unfiltered page of the sitewide feed."""

    def __init__(self):
        self._key: Optional[Hashable] = None
        self._items: Optional[List[ActivityItem]] = None
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[List[ActivityItem]]:
        if self._items is None or self._key != key:
            self.misses += 1
            return None
        self.hits += 1
        return [item.model_copy() for item in self._items]

    def set(self, key: Hashable, items: List[ActivityItem]) -> None:
        self._key = key
        self._items = [item.model_copy() for item in items]

    def clear(self) -> None:
        self._key = None
        self._items = None

    @property
    def is_empty(self) -> bool:
        return self._items is None


@dataclass
class ActivityComponent:
    settings: Settings
    hooks: HookRegistry = field(default_factory=HookRegistry)
    actions: ActionRegistry = field(default_factory=lambda: register_default_actions(ActionRegistry()))
    feed_cache: FeedCache = field(default_factory=FeedCache)


def create_component(settings: Optional[Settings] = None) -> ActivityComponent:
    """Build the component once at start-up and pass it to whoever needs it."""
    return ActivityComponent(settings=settings or get_settings())
