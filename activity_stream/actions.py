"""
Registry of activity actions per component, e.g. ("activity", "activity_update").
"""
from typing import Dict, List, Optional, Tuple

from .schemas.activity import ActivityAction


class ActionRegistry:
    """Maps (component, key) to a human readable action description."""

    def __init__(self):
        self._actions: Dict[Tuple[str, str], ActivityAction] = {}

    def set_action(self, component: str, key: str, value: str) -> bool:
        if not component or not key or not value:
            return False
        self._actions[(component, key)] = ActivityAction(component=component, key=key, value=value)
        return True

    def get_action(self, component: str, key: str) -> Optional[ActivityAction]:
        if not component or not key:
            return None
        return self._actions.get((component, key))

    def all(self, component: Optional[str] = None) -> List[ActivityAction]:
        return [
            action for (owner, _), action in self._actions.items()
            if component is None or owner == component
        ]


def register_default_actions(registry: ActionRegistry) -> ActionRegistry:
    registry.set_action("activity", "activity_update", "Posted an update")
    registry.set_action("activity", "activity_comment", "Replied to a status update")
    return registry
