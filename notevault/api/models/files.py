"""
File-related API models: tree entries, operation results and request bodies.
"""

from typing import Optional

from pydantic import BaseModel, Field


class FileEntry(BaseModel):
    """A node of the notes tree."""
    name: str
    is_directory: bool = Field(serialization_alias="isDirectory")
    path: str
    children: Optional[list["FileEntry"]] = None


class FileResult(BaseModel):
    """Uniform result of a file or asset operation."""
    success: bool
    content: Optional[str] = None
    files: Optional[list[FileEntry]] = None
    error: Optional[str] = None
    warnings: list[str] = []


class FileStat(BaseModel):
    """Timestamps and size of a file, serialized into FileResult.content."""
    createdAt: str
    modifiedAt: str
    size: int


class WriteRequest(BaseModel):
    """Request body for writing a document."""
    path: str
    content: str


class CreateRequest(BaseModel):
    """Request body for creating a document or a folder."""
    name: str
    dir: Optional[str] = None


class RenameRequest(BaseModel):
    """Request body for renaming within the same folder."""
    path: str
    new_name: str


class MoveRequest(BaseModel):
    """Request body for moving into another folder."""
    source_path: str
    target_dir: str


class PathRequest(BaseModel):
    """Request body carrying a single path."""
    path: str


class ExistsResponse(BaseModel):
    """Response for the existence check."""
    path: str
    exists: bool
