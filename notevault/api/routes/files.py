"""
File routes: /files, /file, /folder, /file/rename, /file/move, ...
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from notevault.api.dependencies import get_events, get_file_service, get_link_service
from notevault.api.events import LINKS_UPDATED, EventFeed
from notevault.api.models.files import (
    CreateRequest,
    ExistsResponse,
    FileResult,
    MoveRequest,
    PathRequest,
    RenameRequest,
    WriteRequest,
)
from notevault.pathguard import normalize
from notevault.services.file_service import FileService
from notevault.services.link_service import LinkService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


async def maintain_links(links: LinkService, events: EventFeed, old_path: str, new_path: str) -> None:
    """Rewrite links after a rename or move and tell the UI which documents changed."""
    report = await links.update_links_after_move(old_path, new_path)
    if report.changed:
        events.publish(LINKS_UPDATED, path=new_path, paths=report.changed)


@router.get("/files", response_model=FileResult)
async def list_files(files: FileService = Depends(get_file_service)):
    """
    Get the tree of folders and documents under the root.

    Creates the root with a welcome document on first use.
    """
    return await files.list()


@router.get("/file", response_model=FileResult)
async def read_file(
    path: str = Query(..., description="Path of the document, absolute or root-relative"),
    files: FileService = Depends(get_file_service),
):
    return await files.read(path)


@router.put("/file", response_model=FileResult)
async def write_file(body: WriteRequest, files: FileService = Depends(get_file_service)):
    """Save a document; image references are reconciled afterwards."""
    return await files.write(body.path, body.content)


@router.post("/file", response_model=FileResult)
async def create_file(body: CreateRequest, files: FileService = Depends(get_file_service)):
    """Create a document seeded with a heading. Returns its path in ``content``."""
    return await files.create(body.name, body.dir)


@router.delete("/file", response_model=FileResult)
async def delete_file(
    path: str = Query(..., description="File or folder to delete"),
    files: FileService = Depends(get_file_service),
):
    return await files.delete(path)


@router.post("/folder", response_model=FileResult)
async def create_folder(body: CreateRequest, files: FileService = Depends(get_file_service)):
    return await files.create_folder(body.name, body.dir)


@router.post("/file/rename", response_model=FileResult)
async def rename_file(
    body: RenameRequest,
    background_tasks: BackgroundTasks,
    files: FileService = Depends(get_file_service),
    links: LinkService = Depends(get_link_service),
    events: EventFeed = Depends(get_events),
):
    """
    Rename a file or folder in place.

    Links pointing at it, and relative links inside it, are rewritten in
    the background once the response is sent.
    """
    result = await files.rename(body.path, body.new_name)
    if result.success:
        old_path = normalize(body.path, files.root)
        background_tasks.add_task(maintain_links, links, events, old_path, result.content)
    return result


@router.post("/file/move", response_model=FileResult)
async def move_file(
    body: MoveRequest,
    background_tasks: BackgroundTasks,
    files: FileService = Depends(get_file_service),
    links: LinkService = Depends(get_link_service),
    events: EventFeed = Depends(get_events),
):
    """Move a file or folder into another folder, then rewrite affected links."""
    result = await files.move(body.source_path, body.target_dir)
    if result.success:
        old_path = normalize(body.source_path, files.root)
        background_tasks.add_task(maintain_links, links, events, old_path, result.content)
    return result


@router.post("/file/duplicate", response_model=FileResult)
async def duplicate_file(body: PathRequest, files: FileService = Depends(get_file_service)):
    return await files.duplicate(body.path)


@router.get("/file/stat", response_model=FileResult)
async def stat_file(
    path: str = Query(...),
    files: FileService = Depends(get_file_service),
):
    """Creation time, modification time and size as a JSON string in ``content``."""
    return await files.stat(path)


@router.get("/file/exists", response_model=ExistsResponse)
async def file_exists(
    path: str = Query(...),
    files: FileService = Depends(get_file_service),
):
    return ExistsResponse(path=path, exists=await files.file_exists(path))
