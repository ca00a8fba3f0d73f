"""
Search-related API models: content and tag search.
"""

from typing import Literal, Optional

from pydantic import BaseModel


class SearchMatch(BaseModel):
    """A single match inside a document."""
    line_number: int  # Body-relative, 1-based; 0 for tag matches
    line_content: str
    match_start: int
    match_end: int


class FileSearchResult(BaseModel):
    """All matches found in one document."""
    file_path: str
    relative_path: str
    file_name: str
    matches: list[SearchMatch]


class SearchResult(BaseModel):
    """Search results response."""
    success: bool
    results: list[FileSearchResult] = []
    total_matches: int = 0
    truncated: bool = False
    error: Optional[str] = None


SearchMode = Literal["notes", "tags"]
