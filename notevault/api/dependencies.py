"""
Common API dependencies: services owned by the application state.
"""

from fastapi import Request

from notevault.api.events import EventFeed
from notevault.services.asset_service import AssetService
from notevault.services.file_service import FileService
from notevault.services.link_service import LinkService
from notevault.services.search_service import SearchService
from notevault.watcher import VaultWatcher


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_link_service(request: Request) -> LinkService:
    return request.app.state.link_service


def get_asset_service(request: Request) -> AssetService:
    return request.app.state.asset_service


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_watcher(request: Request) -> VaultWatcher:
    return request.app.state.watcher


def get_events(request: Request) -> EventFeed:
    return request.app.state.events
