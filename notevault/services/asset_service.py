"""
Asset service: reference-counted bookkeeping for images stored in .assets/.

The registry maps each asset filename to the documents that cite it. Every
mutation loads the whole metadata file, changes it and writes it back while
holding the registry lock, so concurrent requests are serialized instead of
overwriting each other. Assets whose reference list becomes empty are only
deleted by an explicit cleanup pass.
"""

import asyncio
import base64
import binascii
import json
import logging
import os
import re
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from notevault.config import config
from notevault.api.models.assets import AssetRecord, AssetsMetadata, CleanupResult
from notevault.api.models.files import FileResult
from notevault.errors import NoteVaultError
from notevault.outcomes import TaskReport
from notevault.pathguard import guard, is_within
from notevault.vault import VaultPaths, collect_documents, ensure_root_directory

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
}


def sanitize_filename(name: str) -> str:
    """Keep only the basename, replacing anything unusual with underscores."""
    basename = os.path.basename(name.replace("\\", "/"))
    return re.sub(r"[^a-zA-Z0-9._-]", "_", basename)


def generate_image_filename(original_name: str, timestamp_ms: Optional[int] = None) -> str:
    """Build a stored name of the form ``<epoch-ms>_<sanitized name>``."""
    timestamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{timestamp}_{sanitize_filename(original_name)}"


def get_image_mime_type(ext: str) -> str:
    return MIME_TYPES.get(ext.lower(), "application/octet-stream")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _data_url(path: str) -> str:
    with open(path, "rb") as f:
        encoded = base64.b64encode(f.read()).decode("ascii")
    return f"data:{get_image_mime_type(os.path.splitext(path)[1])};base64,{encoded}"


class AssetService:
    """Tracks which documents reference which assets and reclaims orphans."""

    HTML_IMG_PATTERN = re.compile(r"""<img([^>]*?)src=["']\.assets/([^"']+)["']([^>]*?)>""")

    def __init__(
        self,
        root: Optional[Path] = None,
        max_image_size: Optional[int] = None,
        max_embed_size: Optional[int] = None,
    ):
        self.paths = VaultPaths.from_root(root)
        self.max_image_size = max_image_size or config.MAX_IMAGE_SIZE
        self.max_embed_size = max_embed_size or config.MAX_EMBED_SIZE
        self.allowed_extensions = config.ALLOWED_IMAGE_EXTENSIONS
        self.reference_pattern = re.compile(
            r"!\[([^\]]*)\]\(" + re.escape(self.paths.assets_prefix) + r"([^)\s]+)\)"
        )
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Metadata persistence
    # ------------------------------------------------------------------

    def load_metadata(self) -> AssetsMetadata:
        """Load the registry, falling back to an empty one."""
        try:
            with open(self.paths.metadata_path, "r", encoding="utf-8") as f:
                return AssetsMetadata.model_validate(json.load(f))
        except FileNotFoundError:
            return AssetsMetadata()
        except (ValueError, ValidationError) as e:
            logger.warning("Asset metadata unreadable, starting empty: %s", e)
            return AssetsMetadata()

    def save_metadata(self, metadata: AssetsMetadata) -> None:
        """Write the registry atomically."""
        os.makedirs(self.paths.assets_dir, exist_ok=True)
        tmp_path = self.paths.metadata_path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(metadata.model_dump(by_alias=True), f, indent=2)
        os.replace(tmp_path, self.paths.metadata_path)

    # ------------------------------------------------------------------
    # Reference bookkeeping
    # ------------------------------------------------------------------

    def referenced_assets(self, content: str) -> list[str]:
        """Asset filenames cited by *content*, in first-seen order."""
        found = dict.fromkeys(m.group(2) for m in self.reference_pattern.finditer(content))
        return list(found)

    def document_key(self, document_path: str) -> str:
        """Registry key for a document: its root-relative POSIX path."""
        if os.path.isabs(document_path):
            return self.paths.relative(os.path.normpath(document_path))
        return Path(document_path).as_posix()

    def _add(self, metadata: AssetsMetadata, filename: str, document: str) -> bool:
        record = metadata.images.get(filename)
        if record is None:
            asset_path = os.path.join(self.paths.assets_dir, filename)
            try:
                size = os.stat(asset_path).st_size
            except OSError:
                logger.debug("Asset file does not exist: %s, skipping", filename)
                return False
            metadata.images[filename] = AssetRecord(
                references=[document], uploaded_at=_now_iso(), size=size
            )
            logger.debug("New asset entry created: %s", filename)
            return True

        if document in record.references:
            return False
        record.references.append(document)
        logger.debug("Reference added to %s, total refs: %d", filename, len(record.references))
        return True

    def _remove(self, metadata: AssetsMetadata, filename: str, document: str) -> bool:
        record = metadata.images.get(filename)
        if record is None or document not in record.references:
            return False
        record.references = [ref for ref in record.references if ref != document]
        if not record.references:
            logger.debug("No more references for %s, will be cleaned up later", filename)
        return True

    async def add_reference(self, asset_path: str, document_path: str) -> bool:
        """Record that a document cites an asset. Returns True if anything changed."""
        filename = os.path.basename(asset_path)
        document = self.document_key(document_path)
        async with self._lock:
            return await asyncio.to_thread(self._mutate, lambda m: self._add(m, filename, document))

    async def remove_reference(self, asset_path: str, document_path: str) -> bool:
        """Drop a document from an asset's references. The file itself is kept."""
        filename = os.path.basename(asset_path)
        document = self.document_key(document_path)
        async with self._lock:
            return await asyncio.to_thread(
                self._mutate, lambda m: self._remove(m, filename, document)
            )

    def _mutate(self, change) -> bool:
        metadata = self.load_metadata()
        changed = change(metadata)
        if changed:
            self.save_metadata(metadata)
        return changed

    async def reconcile(self, document_path: str, content: str) -> TaskReport:
        """
        Bring the registry in line with the current content of a document.

        Stale references are removed and newly cited assets are added. An
        asset cited but missing on disk is skipped with a warning.
        """
        report = TaskReport(task="reconcile")
        document = self.document_key(document_path)
        referenced = self.referenced_assets(content)
        try:
            async with self._lock:
                await asyncio.to_thread(self._reconcile, document, referenced, report)
        except OSError as e:
            report.fail(e, logger)
        return report

    def _reconcile(self, document: str, referenced: list[str], report: TaskReport) -> None:
        metadata = self.load_metadata()
        wanted = set(referenced)
        changed = False

        for filename, record in list(metadata.images.items()):
            if document in record.references and filename not in wanted:
                changed |= self._remove(metadata, filename, document)
                report.changed.append(filename)

        for filename in referenced:
            if self._add(metadata, filename, document):
                changed = True
                report.changed.append(filename)
            elif filename not in metadata.images:
                report.warn(f"Asset not found: {filename}", logger)

        if changed:
            self.save_metadata(metadata)

    async def cleanup_document_images(self, document_path: str) -> TaskReport:
        """Strip a deleted document from every asset's references."""
        return await self._strip_documents([self.document_key(document_path)])

    async def cleanup_directory_images(self, dir_path: str) -> TaskReport:
        """Strip every document below a deleted directory from the registry."""
        documents = await asyncio.to_thread(
            collect_documents, dir_path, self.paths.extension
        )
        return await self._strip_documents([self.document_key(d) for d in documents])

    async def _strip_documents(self, documents: list[str]) -> TaskReport:
        report = TaskReport(task="cleanup_references")
        if not documents:
            return report

        def strip(metadata: AssetsMetadata) -> bool:
            changed = False
            for filename in list(metadata.images):
                for document in documents:
                    if self._remove(metadata, filename, document):
                        report.changed.append(filename)
                        changed = True
            return changed

        try:
            async with self._lock:
                await asyncio.to_thread(self._mutate, strip)
        except OSError as e:
            report.fail(e, logger)
        return report

    async def move_references(self, old_abs_path: str, new_abs_path: str) -> TaskReport:
        """
        Re-key references after a document or folder moved.

        References keep their position in each asset's list.
        """
        report = TaskReport(task="move_references")
        try:
            mapping = await asyncio.to_thread(self._moved_documents, old_abs_path, new_abs_path)
            if not mapping:
                return report

            def rekey(metadata: AssetsMetadata) -> bool:
                changed = False
                for filename, record in metadata.images.items():
                    if not any(ref in mapping for ref in record.references):
                        continue
                    renamed = [mapping.get(ref, ref) for ref in record.references]
                    record.references = list(dict.fromkeys(renamed))
                    report.changed.append(filename)
                    changed = True
                return changed

            async with self._lock:
                await asyncio.to_thread(self._mutate, rekey)
        except OSError as e:
            report.fail(e, logger)
        return report

    def _moved_documents(self, old_abs_path: str, new_abs_path: str) -> dict[str, str]:
        if os.path.isdir(new_abs_path):
            mapping = {}
            for new_doc in collect_documents(new_abs_path, self.paths.extension):
                old_doc = os.path.join(old_abs_path, os.path.relpath(new_doc, new_abs_path))
                mapping[self.paths.relative(old_doc)] = self.paths.relative(new_doc)
            return mapping
        if not self.paths.is_document(new_abs_path):
            return {}
        return {self.paths.relative(old_abs_path): self.paths.relative(new_abs_path)}

    # ------------------------------------------------------------------
    # Garbage collection
    # ------------------------------------------------------------------

    async def cleanup_unreferenced_files(self) -> int:
        """Quick cleanup: delete assets whose reference list is already empty."""
        async with self._lock:
            return await asyncio.to_thread(self._cleanup_unreferenced)

    def _cleanup_unreferenced(self) -> int:
        metadata = self.load_metadata()
        cleaned = 0

        for filename, record in list(metadata.images.items()):
            if record.references:
                continue
            try:
                os.unlink(os.path.join(self.paths.assets_dir, filename))
                logger.info("Deleted unreferenced asset: %s", filename)
            except FileNotFoundError:
                logger.debug("Asset already gone: %s", filename)
            except OSError as e:
                logger.error("Failed to delete asset %s: %s", filename, e)
                continue
            del metadata.images[filename]
            cleaned += 1

        if cleaned:
            self.save_metadata(metadata)
        return cleaned

    async def cleanup_on_quit(self) -> int:
        """Shutdown hook: run the quick cleanup, never raising."""
        logger.info("Running asset cleanup on shutdown...")
        try:
            count = await self.cleanup_unreferenced_files()
        except OSError as e:
            logger.error("Asset cleanup on shutdown failed: %s", e)
            return 0
        logger.info("Deleted %d unreferenced asset(s)", count)
        return count

    async def validate_and_cleanup(self) -> CleanupResult:
        """
        Full cleanup: rebuild the registry from the documents themselves.

        Every document is scanned for asset references, the metadata record
        is rebuilt from that scan (upload timestamps are preserved) and every
        asset file that no document cites is deleted. A document that cannot
        be read keeps the references the previous record gave it.
        """
        try:
            async with self._lock:
                cleaned, validated = await asyncio.to_thread(self._validate_and_cleanup)
        except OSError as e:
            logger.error("Asset validation failed: %s", e)
            return CleanupResult(success=False, error=str(e))

        return CleanupResult(
            success=True,
            cleaned=cleaned,
            validated=validated,
            content=f"Cleaned up {cleaned} unused images. Validated {validated} images.",
        )

    def _validate_and_cleanup(self) -> tuple[int, int]:
        ensure_root_directory(self.paths)
        metadata = self.load_metadata()
        all_refs: dict[str, dict[str, None]] = {}
        unreadable: list[str] = []

        for document in collect_documents(self.paths.root, self.paths.extension):
            key = self.paths.relative(document)
            try:
                with open(document, "r", encoding="utf-8") as f:
                    content = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read %s during validation: %s", key, e)
                unreadable.append(key)
                continue
            for filename in self.referenced_assets(content):
                all_refs.setdefault(filename, {})[key] = None

        for key in unreadable:
            for filename, record in metadata.images.items():
                if key in record.references:
                    all_refs.setdefault(filename, {})[key] = None

        rebuilt = AssetsMetadata()
        cleaned = 0
        validated = 0

        with os.scandir(self.paths.assets_dir) as it:
            entries = sorted(it, key=lambda e: e.name)

        for entry in entries:
            if entry.name.startswith(".") or not entry.is_file():
                continue
            refs = all_refs.get(entry.name)
            if refs:
                previous = metadata.images.get(entry.name)
                rebuilt.images[entry.name] = AssetRecord(
                    references=list(refs),
                    uploaded_at=previous.uploaded_at if previous else _now_iso(),
                    size=entry.stat().st_size,
                )
                validated += 1
            else:
                try:
                    os.unlink(entry.path)
                    logger.info("Cleaned up unreferenced asset: %s", entry.name)
                    cleaned += 1
                except OSError as e:
                    logger.error("Failed to delete unreferenced asset %s: %s", entry.name, e)

        self.save_metadata(rebuilt)
        return cleaned, validated

    # ------------------------------------------------------------------
    # Upload & embedding
    # ------------------------------------------------------------------

    def _allocate_name(self, original_name: str) -> str:
        timestamp = int(time.time() * 1000)
        name = generate_image_filename(original_name, timestamp)
        while os.path.exists(os.path.join(self.paths.assets_dir, name)):
            timestamp += 1
            name = generate_image_filename(original_name, timestamp)
        return name

    async def upload_image(self, source_path: str) -> FileResult:
        """Copy an image from anywhere on disk into the assets folder."""
        try:
            return await asyncio.to_thread(self._upload_image, source_path)
        except OSError as e:
            logger.error("Image upload failed: %s", e)
            return FileResult(success=False, error=str(e))

    def _upload_image(self, source_path: str) -> FileResult:
        ensure_root_directory(self.paths)
        ext = os.path.splitext(source_path)[1].lower()
        if ext not in self.allowed_extensions:
            return FileResult(success=False, error="Invalid image file type")

        if os.stat(source_path).st_size > self.max_image_size:
            return FileResult(success=False, error=self._too_large_message())

        filename = self._allocate_name(os.path.basename(source_path))
        shutil.copyfile(source_path, os.path.join(self.paths.assets_dir, filename))
        logger.info("Stored asset %s", filename)
        return FileResult(success=True, content=self.paths.assets_prefix + filename)

    async def save_base64_image(self, filename: str, base64_data: str) -> FileResult:
        """Store an image received as base64 (optionally a data URL)."""
        if base64_data.startswith("data:") and "," in base64_data:
            base64_data = base64_data.split(",", 1)[1]
        try:
            payload = base64.b64decode(base64_data, validate=True)
        except (binascii.Error, ValueError):
            return FileResult(success=False, error="Invalid base64 image data")

        if len(payload) > self.max_image_size:
            return FileResult(success=False, error=self._too_large_message())

        def store() -> FileResult:
            ensure_root_directory(self.paths)
            name = self._allocate_name(filename)
            with open(os.path.join(self.paths.assets_dir, name), "wb") as f:
                f.write(payload)
            return FileResult(success=True, content=self.paths.assets_prefix + name)

        try:
            return await asyncio.to_thread(store)
        except OSError as e:
            logger.error("Saving base64 image failed: %s", e)
            return FileResult(success=False, error=str(e))

    def _too_large_message(self) -> str:
        return f"Image file too large (max {self.max_image_size // (1024 * 1024)}MB)"

    async def resolve_asset_path(self, image_path: str) -> FileResult:
        """Turn an ``.assets/...`` reference into a data URL for display."""
        if not image_path.startswith(self.paths.assets_prefix):
            if image_path.startswith(("http://", "https://", "data:")):
                return FileResult(success=True, content=image_path)
            return FileResult(success=False, error="Invalid path format")

        full_path = os.path.normpath(os.path.join(self.paths.root, image_path))
        if not is_within(full_path, self.paths.assets_dir) or full_path == self.paths.assets_dir:
            return FileResult(success=False, error="Access denied: path outside assets directory")

        if not os.path.isfile(full_path):
            return FileResult(success=False, error="Image file not found")

        if os.path.splitext(full_path)[1].lower() not in self.allowed_extensions:
            return FileResult(success=False, error="Invalid image file type")

        try:
            return FileResult(success=True, content=await asyncio.to_thread(_data_url, full_path))
        except OSError as e:
            return FileResult(success=False, error=str(e))

    async def embed_image_base64(self, image_path: str) -> FileResult:
        """Inline an image as a data URL, refusing anything over the embed ceiling."""
        try:
            if image_path.startswith(self.paths.assets_prefix):
                full_path = os.path.normpath(os.path.join(self.paths.root, image_path))
            else:
                full_path = image_path
            full_path = guard(full_path, self.paths.root)

            if os.path.splitext(full_path)[1].lower() not in self.allowed_extensions:
                return FileResult(success=False, error="Invalid image file type")

            size = (await asyncio.to_thread(os.stat, full_path)).st_size
            if size > self.max_embed_size:
                return FileResult(
                    success=False,
                    error=(
                        f"Image is larger than {self.max_embed_size // (1024 * 1024)}MB. "
                        "Embedding will significantly increase document size."
                    ),
                )
            return FileResult(success=True, content=await asyncio.to_thread(_data_url, full_path))
        except (NoteVaultError, OSError) as e:
            return FileResult(success=False, error=str(e))

    async def embed_images_in_html(self, html: str) -> str:
        """Replace every ``<img src=".assets/...">`` with an inline data URL for export."""
        result = html
        for match in self.HTML_IMG_PATTERN.finditer(html):
            before_src, filename, after_src = match.groups()
            image_path = os.path.join(self.paths.assets_dir, os.path.basename(filename))
            try:
                data_url = await asyncio.to_thread(_data_url, image_path)
            except OSError as e:
                logger.error("Failed to embed image %s: %s", filename, e)
                continue
            result = result.replace(match.group(0), f'<img{before_src}src="{data_url}"{after_src}>')
        return result
