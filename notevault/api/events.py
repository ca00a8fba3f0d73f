"""
Change notifications for the UI.

Watcher callbacks run on timer threads and link maintenance runs as a
background task; both publish here, and the UI drains the feed through
``GET /events``.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from notevault.api.models.system import ChangeEvent

logger = logging.getLogger(__name__)

FILE_CHANGED = "file:changed"
FILE_EXTERNAL_CHANGE = "file:externalChange"
LINKS_UPDATED = "links:updated"


class EventFeed:
    """Bounded, thread-safe queue of change events."""

    def __init__(self, maxlen: int = 1000):
        self._events: deque[ChangeEvent] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def publish(self, event_type: str, path: Optional[str] = None, paths: Optional[list[str]] = None) -> None:
        event = ChangeEvent(
            type=event_type,
            path=path,
            paths=paths or [],
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            self._events.append(event)
        logger.debug("Event %s %s", event_type, path or "")

    def file_changed(self) -> None:
        self.publish(FILE_CHANGED)

    def external_change(self, path: str) -> None:
        self.publish(FILE_EXTERNAL_CHANGE, path=path)

    def drain(self) -> list[ChangeEvent]:
        """Return and forget all pending events, oldest first."""
        with self._lock:
            events = list(self._events)
            self._events.clear()
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
