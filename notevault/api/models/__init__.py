"""
Pydantic models (schemas) for service results and API request types.

All models are re-exported here for convenience:
    from notevault.api.models import FileResult, SearchResult, ...
"""

from notevault.api.models.files import (
    FileEntry,
    FileResult,
    FileStat,
    WriteRequest,
    CreateRequest,
    RenameRequest,
    MoveRequest,
    PathRequest,
    ExistsResponse,
)
from notevault.api.models.search import (
    SearchMatch,
    FileSearchResult,
    SearchResult,
    SearchMode,
)
from notevault.api.models.assets import (
    AssetRecord,
    AssetsMetadata,
    CleanupResult,
    UploadRequest,
    Base64ImageRequest,
    HtmlExport,
)
from notevault.api.models.system import (
    HealthResponse,
    RootResponse,
    ChangeEvent,
    EventsResponse,
)

__all__ = [
    # Files
    "FileEntry",
    "FileResult",
    "FileStat",
    "WriteRequest",
    "CreateRequest",
    "RenameRequest",
    "MoveRequest",
    "PathRequest",
    "ExistsResponse",
    # Search
    "SearchMatch",
    "FileSearchResult",
    "SearchResult",
    "SearchMode",
    # Assets
    "AssetRecord",
    "AssetsMetadata",
    "CleanupResult",
    "UploadRequest",
    "Base64ImageRequest",
    "HtmlExport",
    # System
    "HealthResponse",
    "RootResponse",
    "ChangeEvent",
    "EventsResponse",
]
