"""
System routes: /health, /root
"""

from fastapi import APIRouter, Depends

from notevault import __version__
from notevault.api.dependencies import get_file_service, get_watcher
from notevault.api.models.system import HealthResponse, RootResponse
from notevault.services.file_service import FileService
from notevault.watcher import VaultWatcher

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    files: FileService = Depends(get_file_service),
    watcher: VaultWatcher = Depends(get_watcher),
):
    return HealthResponse(
        status="healthy",
        version=__version__,
        root_path=files.root,
        watcher_running=watcher.is_running,
    )


@router.get("/root", response_model=RootResponse)
async def get_root(files: FileService = Depends(get_file_service)):
    """Absolute path of the notes root."""
    return RootResponse(root_path=files.root)
