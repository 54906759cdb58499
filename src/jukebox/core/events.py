"""
Typed event channel between the core and its consumers.

The core emits one ``Event`` per observable change; consumers (console
output, the IPC layer, tests) subscribe a single handler and switch on
``event.kind``.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from loguru import logger


class EventKind(Enum):
    """Kinds of events emitted by the core."""

    MESSAGE = "message"  # Human-readable report for the user
    STATE_CHANGED = "state-changed"  # Playback state or incognito toggled
    POSITION_UPDATED = "position-updated"  # Periodic progress report
    NOTIFICATION = "notification"  # A new song started playing
    SONGS_CHANGED = "songs-changed"  # Previous/current/next trio changed
    STATS_UPDATED = "stats-updated"  # A song's statistics were modified


@dataclass(frozen=True)
class Event:
    """A single core event. Only the fields relevant to ``kind`` are set."""

    kind: EventKind
    message: Optional[str] = None
    songs: Tuple[Any, ...] = ()
    position: float = 0.0
    duration: float = 0.0
    state: Optional[str] = None


EventHandler = Callable[[Event], None]


class EventBus:
    """Fan-out of core events to subscribed handlers."""

    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler for all events.

        Args:
            handler: Callable receiving each emitted Event

        Returns:
            Callable that removes the handler again
        """
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Deliver ``event`` to every handler; a failing handler is logged and skipped."""
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event.kind.value}")

    def message(self, text: str) -> None:
        """Emit a MESSAGE event and log it."""
        logger.info(text)
        self.emit(Event(EventKind.MESSAGE, message=text))
