"""
Asset-related models: the persisted metadata record and API bodies.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AssetRecord(BaseModel):
    """Bookkeeping for one stored asset."""
    model_config = ConfigDict(populate_by_name=True)

    references: list[str] = []  # Root-relative document paths, ordered set
    uploaded_at: str = Field(alias="uploadedAt")
    size: int = 0


class AssetsMetadata(BaseModel):
    """The whole registry, persisted as .assets/.metadata.json."""
    images: dict[str, AssetRecord] = {}


class CleanupResult(BaseModel):
    """Outcome of a full validation and cleanup pass."""
    success: bool
    cleaned: int = 0
    validated: int = 0
    content: Optional[str] = None
    error: Optional[str] = None


class UploadRequest(BaseModel):
    """Request body for copying an image into the assets folder."""
    source_path: str


class Base64ImageRequest(BaseModel):
    """Request body for storing an image sent as base64."""
    filename: str
    data: str


class HtmlExport(BaseModel):
    """HTML exported from a document; images are inlined on the way back."""
    html: str
