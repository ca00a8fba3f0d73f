"""
NoteVault - FastAPI Application
Local backend that stores notes as plain files under one root folder.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from notevault import __version__
from notevault.api.events import EventFeed
from notevault.api.middleware import register_middleware
from notevault.api.routes import all_routers
from notevault.config import config
from notevault.errors import NoteVaultError
from notevault.services.asset_service import AssetService
from notevault.services.file_service import FileService
from notevault.services.link_service import LinkService
from notevault.services.search_service import SearchService
from notevault.vault import ensure_root_directory
from notevault.watcher import VaultWatcher

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting NoteVault...")

    try:
        config.validate()
        ensure_root_directory(app.state.file_service.paths)
        logger.info(f"Notes root: {app.state.file_service.root}")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise
    except OSError as e:
        logger.error(f"Startup error: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down NoteVault...")

    app.state.watcher.stop()
    await app.state.asset_service.cleanup_on_quit()

    logger.info("NoteVault stopped")


def create_app(root: Optional[Path] = None) -> FastAPI:
    """Build the application with its services bound to *root*."""
    app = FastAPI(
        title="NoteVault API",
        description="Local API for storing, linking and searching plain-file notes",
        version=__version__,
        lifespan=lifespan,
    )

    events = EventFeed()
    asset_service = AssetService(root=root)
    app.state.asset_service = asset_service
    app.state.file_service = FileService(root=root, asset_service=asset_service)
    app.state.link_service = LinkService(root=root)
    app.state.search_service = SearchService(root=root)
    app.state.events = events
    app.state.watcher = VaultWatcher(
        root=root,
        on_change=events.file_changed,
        on_external_change=events.external_change,
    )

    register_middleware(app)
    for router in all_routers:
        app.include_router(router)

    @app.exception_handler(NoteVaultError)
    async def notevault_error_handler(request, exc):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": exc.message, "code": exc.code.value}
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request, exc):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": str(exc)}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    return app


app = create_app()


# Entry point for running with uvicorn directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notevault.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=False,
        log_level=config.LOG_LEVEL.lower()
    )
