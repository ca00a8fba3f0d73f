"""
On-disk layout of a notes root and first-run bootstrap.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from notevault.config import config

logger = logging.getLogger(__name__)

WELCOME_CONTENT = """# Welcome to NoteVault

Your notes, your files, your control. Start writing below!

## Getting Started

1. Create a note from the file tree or with the **New File** action
2. Organize notes in nested folders and drag them around freely
3. Links between notes are kept up to date when you move or rename them

## Good to know

- Images you insert are stored in the hidden `.assets/` folder
- Unused images are removed automatically when you quit
- Search covers note contents and frontmatter tags

All your notes are stored as plain markdown files. No accounts, no cloud, just your files.

Happy writing!
"""


@dataclass(frozen=True)
class VaultPaths:
    """Absolute locations that make up a notes root."""
    root: str
    assets_dir: str
    metadata_path: str
    extension: str = ".md"

    @classmethod
    def from_root(
        cls,
        root: Optional[Path] = None,
        extension: Optional[str] = None,
    ) -> "VaultPaths":
        root_str = os.path.normpath(os.path.abspath(os.fspath(root or config.NOTES_ROOT)))
        assets_dir = os.path.join(root_str, config.ASSETS_DIR_NAME)
        return cls(
            root=root_str,
            assets_dir=assets_dir,
            metadata_path=os.path.join(assets_dir, config.METADATA_FILE_NAME),
            extension=extension or config.DOCUMENT_EXTENSION,
        )

    @property
    def assets_prefix(self) -> str:
        """Link prefix used by documents to reference assets."""
        return os.path.basename(self.assets_dir) + "/"

    def is_document(self, path: str) -> bool:
        return path.endswith(self.extension)

    def relative(self, path: str) -> str:
        """Root-relative POSIX form of an absolute path."""
        return Path(os.path.relpath(path, self.root)).as_posix()


def ensure_root_directory(paths: VaultPaths) -> None:
    """
    Create the root, the assets folder and the metadata file if missing.

    A freshly created root is seeded with a welcome document.
    """
    if not os.path.isdir(paths.root):
        os.makedirs(paths.root, exist_ok=True)
        welcome = os.path.join(paths.root, config.WELCOME_FILE_NAME)
        with open(welcome, "w", encoding="utf-8") as f:
            f.write(WELCOME_CONTENT)
        logger.info("Created notes root: %s", paths.root)

    os.makedirs(paths.assets_dir, exist_ok=True)

    if not os.path.exists(paths.metadata_path):
        with open(paths.metadata_path, "w", encoding="utf-8") as f:
            json.dump({"images": {}}, f, indent=2)


def collect_documents(
    directory: str,
    extension: str,
    limit: Optional[int] = None,
) -> list[str]:
    """
    Recursively collect documents below *directory*, depth first.

    Hidden entries are skipped and symlinked directories are not followed.
    Unreadable directories contribute nothing. Stops once *limit* documents
    have been collected.
    """
    collected: list[str] = []
    _collect_into(directory, extension, collected, limit)
    return collected


def _collect_into(
    directory: str,
    extension: str,
    collected: list[str],
    limit: Optional[int],
) -> None:
    if limit is not None and len(collected) >= limit:
        return
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", directory, e)
        return

    for entry in entries:
        if limit is not None and len(collected) >= limit:
            return
        if entry.name.startswith("."):
            continue
        try:
            if entry.is_dir(follow_symlinks=False):
                _collect_into(entry.path, extension, collected, limit)
            elif entry.is_file() and entry.name.endswith(extension):
                collected.append(entry.path)
        except OSError:
            continue
