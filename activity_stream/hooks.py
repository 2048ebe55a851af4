"""
Named extension points for activity events.

Observers (actions) are notified after something happens; filters receive
a value and return a possibly transformed one. Callbacks run in ascending
priority; equal priorities run in registration order.
"""
import itertools
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from .logging_config import get_logger

logger = get_logger("hooks")

DEFAULT_PRIORITY = 10


class ShortCircuit(Exception):
    """Raised by a callback to stop the chain and return ``value``."""

    def __init__(self, value: Any = None):
        self.value = value
        super().__init__(value)


@dataclass(order=True)
class _Registration:
    priority: int
    sequence: int
    callback: Callable = field(compare=False)


class HookRegistry:
    """Priority-ordered callbacks keyed by extension point name."""

    def __init__(self):
        self._actions: Dict[str, List[_Registration]] = defaultdict(list)
        self._filters: Dict[str, List[_Registration]] = defaultdict(list)
        self._sequence = itertools.count()

    def add_action(self, name: str, callback: Callable, priority: int = DEFAULT_PRIORITY) -> None:
        self._register(self._actions[name], callback, priority)

    def add_filter(self, name: str, callback: Callable, priority: int = DEFAULT_PRIORITY) -> None:
        self._register(self._filters[name], callback, priority)

    def remove(self, name: str, callback: Callable) -> bool:
        """Unregister ``callback`` from both actions and filters under ``name``."""
        removed = False
        for table in (self._actions, self._filters):
            before = len(table[name])
            table[name] = [r for r in table[name] if r.callback is not callback]
            removed = removed or len(table[name]) != before
        return removed

    def has(self, name: str) -> bool:
        return bool(self._actions.get(name) or self._filters.get(name))

    def do_action(self, name: str, *args, **kwargs) -> None:
        for registration in list(self._actions.get(name, ())):
            try:
                registration.callback(*args, **kwargs)
            except ShortCircuit:
                logger.debug("Action chain stopped", hook=name)
                return

    def apply_filters(self, name: str, value: Any, *args, **kwargs) -> Any:
        for registration in list(self._filters.get(name, ())):
            try:
                value = registration.callback(value, *args, **kwargs)
            except ShortCircuit as stop:
                logger.debug("Filter chain stopped", hook=name)
                return stop.value
        return value

    def _register(self, registrations: List[_Registration], callback: Callable, priority: int) -> None:
        registrations.append(_Registration(priority, next(self._sequence), callback))
        registrations.sort()
