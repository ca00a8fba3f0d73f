"""
Watch routes: /watch, /unwatch, /events
"""

from fastapi import APIRouter, Depends

from notevault.api.dependencies import get_events, get_watcher
from notevault.api.events import EventFeed
from notevault.api.models.files import FileResult
from notevault.api.models.system import EventsResponse
from notevault.watcher import VaultWatcher

router = APIRouter(tags=["Watch"])


@router.post("/watch", response_model=FileResult)
async def start_watching(watcher: VaultWatcher = Depends(get_watcher)):
    """Start reporting changes made to the root outside the backend."""
    return watcher.start()


@router.post("/unwatch", response_model=FileResult)
async def stop_watching(watcher: VaultWatcher = Depends(get_watcher)):
    return watcher.stop()


@router.get("/events", response_model=EventsResponse)
async def drain_events(events: EventFeed = Depends(get_events)):
    """Return the change events published since the last call."""
    pending = events.drain()
    return EventsResponse(events=pending, count=len(pending))
