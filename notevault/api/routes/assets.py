"""
Asset routes: /assets/upload, /assets/base64, /assets/resolve, /assets/embed, /assets/cleanup
"""

from fastapi import APIRouter, Depends, Query

from notevault.api.dependencies import get_asset_service
from notevault.api.models.assets import (
    Base64ImageRequest,
    CleanupResult,
    HtmlExport,
    UploadRequest,
)
from notevault.api.models.files import FileResult
from notevault.services.asset_service import AssetService

router = APIRouter(prefix="/assets", tags=["Assets"])


@router.post("/upload", response_model=FileResult)
async def upload_image(body: UploadRequest, assets: AssetService = Depends(get_asset_service)):
    """Copy an image into the assets folder. Returns the ``.assets/...`` reference."""
    return await assets.upload_image(body.source_path)


@router.post("/base64", response_model=FileResult)
async def save_base64_image(body: Base64ImageRequest, assets: AssetService = Depends(get_asset_service)):
    """Store a pasted image sent as base64 or as a data URL."""
    return await assets.save_base64_image(body.filename, body.data)


@router.get("/resolve", response_model=FileResult)
async def resolve_asset(
    path: str = Query(..., description="Image reference such as .assets/img.png"),
    assets: AssetService = Depends(get_asset_service),
):
    return await assets.resolve_asset_path(path)


@router.get("/embed", response_model=FileResult)
async def embed_image(
    path: str = Query(..., description="Image to inline as a data URL"),
    assets: AssetService = Depends(get_asset_service),
):
    return await assets.embed_image_base64(path)


@router.post("/embed", response_model=HtmlExport)
async def embed_images_in_html(body: HtmlExport, assets: AssetService = Depends(get_asset_service)):
    """Inline every asset image of an exported HTML document."""
    return HtmlExport(html=await assets.embed_images_in_html(body.html))


@router.post("/cleanup", response_model=CleanupResult)
async def cleanup_assets(assets: AssetService = Depends(get_asset_service)):
    """
    Rebuild image references from the documents on disk and delete every
    image no document cites.
    """
    return await assets.validate_and_cleanup()
