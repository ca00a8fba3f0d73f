"""
System-level API models: health and change events.
"""

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    root_path: str
    watcher_running: bool


class RootResponse(BaseModel):
    """Location of the notes root."""
    root_path: str


class ChangeEvent(BaseModel):
    """A notification queued for the UI."""
    type: str  # "file:changed", "file:externalChange", "links:updated"
    path: Optional[str] = None
    paths: list[str] = []
    timestamp: str


class EventsResponse(BaseModel):
    """Drained notifications."""
    events: list[ChangeEvent]
    count: int
