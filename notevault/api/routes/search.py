"""
Search routes: /search
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from notevault.api.dependencies import get_search_service
from notevault.api.models.search import SearchMode, SearchResult
from notevault.services.search_service import SearchService

router = APIRouter(tags=["Search"])


@router.get("/search", response_model=SearchResult)
async def search(
    query: str = Query(..., description="Text to look for"),
    mode: SearchMode = Query("notes", description="'notes' searches text, 'tags' searches frontmatter tags"),
    path: Optional[str] = Query(None, description="Folder to search below (defaults to the root)"),
    case_sensitive: bool = Query(False),
    search_service: SearchService = Depends(get_search_service),
):
    """
    Search documents under a folder.

    Text search matches the query literally, line by line, skipping the
    frontmatter block. Tag search matches tags that contain the query.
    """
    if mode == "tags":
        return await search_service.search_tags(query, path, case_sensitive)
    return await search_service.search_content(query, path, case_sensitive)
