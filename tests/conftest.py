"""
Pytest configuration and shared fixtures for NoteVault tests.
"""

import tempfile
import shutil
from pathlib import Path
from typing import Generator

import pytest

from notevault.services.asset_service import AssetService
from notevault.services.file_service import FileService
from notevault.services.link_service import LinkService
from notevault.services.search_service import SearchService

# Smallest valid PNG, used wherever a real image file is needed
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_vault(temp_dir: Path) -> Path:
    """Create a notes root with a few documents and an empty asset registry."""
    root = temp_dir / "Notes"
    root.mkdir()
    (root / ".assets").mkdir()
    (root / ".assets" / ".metadata.json").write_text('{"images": {}}', encoding="utf-8")

    (root / "A.md").write_text("# A\n\nSee [B](B.md).\n", encoding="utf-8")
    (root / "B.md").write_text("# B\n\nBack to [A](A.md).\n", encoding="utf-8")

    subdir = root / "sub"
    subdir.mkdir()
    (subdir / "C.md").write_text("# C\n\nUp to [B](../B.md).\n", encoding="utf-8")

    return root


@pytest.fixture
def asset_service(temp_vault: Path) -> AssetService:
    return AssetService(root=temp_vault)


@pytest.fixture
def file_service(temp_vault: Path, asset_service: AssetService) -> FileService:
    return FileService(root=temp_vault, asset_service=asset_service)


@pytest.fixture
def link_service(temp_vault: Path) -> LinkService:
    return LinkService(root=temp_vault)


@pytest.fixture
def search_service(temp_vault: Path) -> SearchService:
    return SearchService(root=temp_vault)


@pytest.fixture
def make_image(temp_vault: Path):
    """Place an image directly in the assets folder and return its name."""
    def _make(name: str = "1700000000000_pic.png") -> str:
        (temp_vault / ".assets" / name).write_bytes(PNG_BYTES)
        return name
    return _make


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
