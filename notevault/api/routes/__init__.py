"""
Route modules for the NoteVault API.

Each module defines a FastAPI APIRouter for a specific domain.
All routers are collected in ``all_routers`` for easy inclusion.
"""

from notevault.api.routes.system import router as system_router
from notevault.api.routes.files import router as files_router
from notevault.api.routes.search import router as search_router
from notevault.api.routes.assets import router as assets_router
from notevault.api.routes.watch import router as watch_router

all_routers = [
    system_router,
    files_router,
    search_router,
    assets_router,
    watch_router,
]

__all__ = ["all_routers"]
