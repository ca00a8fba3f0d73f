"""
File service: document and folder operations inside the notes root.
"""

import asyncio
import functools
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISDIR
from typing import Optional

from notevault.api.models.files import FileEntry, FileResult, FileStat
from notevault.errors import (
    AlreadyExists,
    Conflict,
    InvalidInput,
    NotFound,
    NoteVaultError,
)
from notevault.outcomes import TaskReport
from notevault.pathguard import guard, is_within
from notevault.services.asset_service import AssetService
from notevault.vault import VaultPaths, ensure_root_directory

logger = logging.getLogger(__name__)


def file_operation(func):
    """Turn exceptions raised by an operation into a failed FileResult."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs) -> FileResult:
        try:
            return await func(self, *args, **kwargs)
        except NoteVaultError as e:
            logger.info("%s rejected: %s", func.__name__, e.message)
            return FileResult(success=False, error=e.message)
        except (OSError, UnicodeError) as e:
            logger.error("%s failed: %s", func.__name__, e)
            return FileResult(success=False, error=str(e))

    return wrapper


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class FileService:
    """CRUD on documents and folders, confined to the notes root."""

    def __init__(self, root: Optional[Path] = None, asset_service: Optional[AssetService] = None):
        self.paths = VaultPaths.from_root(root)
        self.assets = asset_service or AssetService(root=Path(self.paths.root))

    @property
    def root(self) -> str:
        return self.paths.root

    # ------------------------------------------------------------------
    # Tree
    # ------------------------------------------------------------------

    def build_file_tree(self, dir_path: str) -> list[FileEntry]:
        """
        Build the visible tree below *dir_path*.

        Hidden entries are skipped and only documents are listed among
        files. Folders come first, then names in case-sensitive order.
        """
        result: list[FileEntry] = []
        with os.scandir(dir_path) as it:
            entries = list(it)

        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=False):
                result.append(FileEntry(
                    name=entry.name,
                    is_directory=True,
                    path=entry.path,
                    children=self.build_file_tree(entry.path),
                ))
            elif self.paths.is_document(entry.name):
                result.append(FileEntry(name=entry.name, is_directory=False, path=entry.path))

        result.sort(key=lambda e: (not e.is_directory, e.name))
        return result

    @file_operation
    async def list(self) -> FileResult:
        """Bootstrap the root if needed and return the full tree."""
        await asyncio.to_thread(ensure_root_directory, self.paths)
        files = await asyncio.to_thread(self.build_file_tree, self.paths.root)
        return FileResult(success=True, files=files)

    # ------------------------------------------------------------------
    # Read & write
    # ------------------------------------------------------------------

    @file_operation
    async def read(self, path: str) -> FileResult:
        resolved = guard(path, self.root)
        content = await asyncio.to_thread(Path(resolved).read_text, encoding="utf-8")
        return FileResult(success=True, content=content)

    @file_operation
    async def write(self, path: str, content: str) -> FileResult:
        """
        Write a document, creating missing folders.

        Asset references of the document are reconciled afterwards; a failed
        reconciliation is reported in ``warnings`` but does not fail the write.
        """
        resolved = guard(path, self.root)

        def write_file() -> None:
            os.makedirs(os.path.dirname(resolved), exist_ok=True)
            with open(resolved, "w", encoding="utf-8") as f:
                f.write(content)

        await asyncio.to_thread(write_file)

        warnings: list[str] = []
        if self.paths.is_document(resolved):
            report = await self.assets.reconcile(self.paths.relative(resolved), content)
            warnings = report.messages()
        return FileResult(success=True, warnings=warnings)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @file_operation
    async def create(self, name: str, dir_path: Optional[str] = None) -> FileResult:
        """Create a document seeded with a heading; returns its path."""
        target_dir = guard(dir_path or self.root, self.root)
        file_name = name if self.paths.is_document(name) else f"{name}{self.paths.extension}"
        file_path = guard(os.path.join(target_dir, file_name), self.root)

        if os.path.exists(file_path):
            raise AlreadyExists("File already exists")

        title = os.path.basename(file_name).removesuffix(self.paths.extension)
        await asyncio.to_thread(
            Path(file_path).write_text, f"# {title}\n\n", encoding="utf-8"
        )
        logger.info("Created %s", file_path)
        return FileResult(success=True, content=file_path)

    @file_operation
    async def create_folder(self, name: str, parent_dir: Optional[str] = None) -> FileResult:
        folder_path = guard(os.path.join(parent_dir or self.root, name), self.root)

        if os.path.exists(folder_path):
            raise AlreadyExists("Folder already exists")

        await asyncio.to_thread(os.makedirs, folder_path, exist_ok=True)
        logger.info("Created folder %s", folder_path)
        return FileResult(success=True, content=folder_path)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    @file_operation
    async def delete(self, path: str) -> FileResult:
        """Delete a document or a folder, releasing asset references first."""
        resolved = guard(path, self.root)
        if resolved == self.root:
            raise Conflict("Cannot delete the root directory")

        try:
            st = os.lstat(resolved)
        except FileNotFoundError:
            raise NotFound("Path not found")
        is_dir = S_ISDIR(st.st_mode)

        report = TaskReport(task="delete")
        if is_dir:
            report.merge(await self.assets.cleanup_directory_images(resolved))
            await asyncio.to_thread(shutil.rmtree, resolved)
        else:
            if self.paths.is_document(resolved):
                report.merge(await self.assets.cleanup_document_images(resolved))
            await asyncio.to_thread(os.unlink, resolved)

        logger.info("Deleted %s", resolved)
        return FileResult(success=True, warnings=report.messages())

    # ------------------------------------------------------------------
    # Rename, move & duplicate
    # ------------------------------------------------------------------

    @file_operation
    async def rename(self, old_path: str, new_name: str) -> FileResult:
        """Rename within the same folder; returns the new path."""
        resolved_old = guard(old_path, self.root)
        if resolved_old == self.root:
            raise Conflict("Cannot rename the root directory")
        if (
            not new_name
            or new_name in (".", "..")
            or "/" in new_name
            or os.sep in new_name
        ):
            raise InvalidInput("Invalid name")
        if not os.path.lexists(resolved_old):
            raise NotFound("Path not found")

        new_path = guard(os.path.join(os.path.dirname(resolved_old), new_name), self.root)
        if new_path != resolved_old and os.path.lexists(new_path):
            # On a case-insensitive filesystem a case-only rename finds the
            # entry itself under the new spelling, never a second entry
            case_only = (
                new_name.lower() == os.path.basename(resolved_old).lower()
                and new_name not in os.listdir(os.path.dirname(resolved_old))
                and os.path.samefile(new_path, resolved_old)
            )
            if not case_only:
                raise AlreadyExists("A file or folder with that name already exists")

        await asyncio.to_thread(os.rename, resolved_old, new_path)
        logger.info("Renamed %s -> %s", resolved_old, new_path)

        report = await self.assets.move_references(resolved_old, new_path)
        return FileResult(success=True, content=new_path, warnings=report.messages())

    @file_operation
    async def move(self, source_path: str, target_dir: str) -> FileResult:
        """Move a file or folder into another folder; returns the new path."""
        resolved_source = guard(source_path, self.root, label="source")
        resolved_target = guard(target_dir, self.root, label="target")

        if resolved_source == self.root:
            raise Conflict("Cannot move the root directory")
        if is_within(resolved_target, resolved_source):
            raise Conflict("Cannot move a folder into itself")
        if not os.path.lexists(resolved_source):
            raise NotFound("Source path not found")
        if not os.path.isdir(resolved_target):
            raise NotFound("Target folder not found")

        new_path = os.path.join(resolved_target, os.path.basename(resolved_source))
        if os.path.lexists(new_path):
            raise AlreadyExists(
                "A file or folder with the same name already exists in the target location"
            )

        await asyncio.to_thread(os.rename, resolved_source, new_path)
        logger.info("Moved %s -> %s", resolved_source, new_path)

        report = await self.assets.move_references(resolved_source, new_path)
        return FileResult(success=True, content=new_path, warnings=report.messages())

    def next_copy_path(self, resolved: str) -> str:
        """First free name among ``<base>_copy<ext>``, ``<base>_copy_2<ext>``, ..."""
        directory = os.path.dirname(resolved)
        base, ext = os.path.splitext(os.path.basename(resolved))

        candidate = os.path.join(directory, f"{base}_copy{ext}")
        counter = 2
        while os.path.lexists(candidate):
            candidate = os.path.join(directory, f"{base}_copy_{counter}{ext}")
            counter += 1
        return candidate

    @file_operation
    async def duplicate(self, path: str) -> FileResult:
        """Copy a file next to itself; returns the path of the copy."""
        resolved = guard(path, self.root)
        if not os.path.exists(resolved):
            raise NotFound("Source file not found")
        if os.path.isdir(resolved):
            raise InvalidInput("Only files can be duplicated")

        new_path = self.next_copy_path(resolved)
        await asyncio.to_thread(shutil.copyfile, resolved, new_path)
        logger.info("Duplicated %s -> %s", resolved, new_path)

        warnings: list[str] = []
        if self.paths.is_document(new_path):
            # The copy cites the same assets as the original
            content = await asyncio.to_thread(Path(new_path).read_text, encoding="utf-8")
            report = await self.assets.reconcile(self.paths.relative(new_path), content)
            warnings = report.messages()
        return FileResult(success=True, content=new_path, warnings=warnings)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @file_operation
    async def stat(self, path: str) -> FileResult:
        """Creation time, modification time and size, serialized as JSON."""
        resolved = guard(path, self.root)
        st = await asyncio.to_thread(os.stat, resolved)
        created = getattr(st, "st_birthtime", st.st_ctime)
        info = FileStat(createdAt=_iso(created), modifiedAt=_iso(st.st_mtime), size=st.st_size)
        return FileResult(success=True, content=info.model_dump_json())

    async def file_exists(self, path: str) -> bool:
        """Existence check; not confined to the root."""
        return await asyncio.to_thread(os.path.exists, path)
