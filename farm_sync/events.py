"""Listener registry used by the stores to notify consumers of changes."""

from collections import defaultdict
from collections.abc import Callable
from enum import Enum
import logging
from typing import Any, DefaultDict, Generic, TypeVar

__all__ = [
    "Listeners",
    "RecordEvent",
    "SessionEvent",
]

_LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class RecordEvent(str, Enum):
    """Events fired by the record store."""

    COLLECTION_UPDATED = "collection_updated"
    LOADING_CHANGED = "loading_changed"
    FETCH_FAILED = "fetch_failed"


class SessionEvent(str, Enum):
    """Events fired by the session store."""

    SESSION_CHANGED = "session_changed"


class Listeners(Generic[E]):
    """Callbacks registered per event.

    Callbacks are invoked synchronously in registration order. A failing
    callback is logged and does not affect the other callbacks or the
    operation that fired the event.
    """

    def __init__(self) -> None:
        """Initialize Listeners."""
        self._listeners: DefaultDict[E, list[Callable[..., None]]] = defaultdict(
            list
        )

    def add(self, event: E, callback: Callable[..., None]) -> Callable[[], None]:
        """Register a callback for an event.

        Returns a callable that removes the listener. Calling it more than
        once has no effect.
        """

        def remove() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        self._listeners[event].append(callback)
        return remove

    def fire(self, event: E, *args: Any) -> None:
        """Invoke every callback registered for the event."""
        for cb in list(self._listeners[event]):
            try:
                cb(*args)
            except Exception:
                _LOGGER.exception("Listener callback failed for event %s", event)

    def count(self, event: E) -> int:
        """Return the number of callbacks registered for the event."""
        return len(self._listeners[event])
