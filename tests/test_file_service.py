"""
Tests for document and folder operations.
"""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from notevault.services.file_service import FileService


def _registry(root: Path) -> dict:
    return json.loads((root / ".assets" / ".metadata.json").read_text(encoding="utf-8"))


class TestList:
    """Tests for the file tree."""

    @pytest.mark.asyncio
    async def test_bootstraps_missing_root(self, temp_dir):
        root = temp_dir / "Fresh"
        service = FileService(root=root)

        result = await service.list()

        assert result.success is True
        assert [f.name for f in result.files] == ["Welcome.md"]
        assert (root / ".assets" / ".metadata.json").exists()

    @pytest.mark.asyncio
    async def test_skips_hidden_entries(self, file_service, temp_vault):
        (temp_vault / ".hidden.md").write_text("x", encoding="utf-8")
        (temp_vault / ".git").mkdir()

        result = await file_service.list()
        names = [f.name for f in result.files]

        assert ".hidden.md" not in names
        assert ".git" not in names
        assert ".assets" not in names

    @pytest.mark.asyncio
    async def test_lists_documents_only(self, file_service, temp_vault):
        (temp_vault / "notes.txt").write_text("x", encoding="utf-8")

        result = await file_service.list()

        assert "notes.txt" not in [f.name for f in result.files]

    @pytest.mark.asyncio
    async def test_folders_first_then_names(self, file_service, temp_vault):
        (temp_vault / "zeta").mkdir()
        (temp_vault / "alpha.md").write_text("", encoding="utf-8")

        result = await file_service.list()

        assert [f.name for f in result.files] == ["sub", "zeta", "A.md", "B.md", "alpha.md"]

    @pytest.mark.asyncio
    async def test_recurses_into_folders(self, file_service, temp_vault):
        result = await file_service.list()
        sub = next(f for f in result.files if f.name == "sub")

        assert sub.is_directory is True
        assert [c.name for c in sub.children] == ["C.md"]
        assert sub.children[0].path == str(temp_vault / "sub" / "C.md")


class TestReadWrite:
    """Tests for read and write."""

    @pytest.mark.asyncio
    async def test_read(self, file_service, temp_vault):
        result = await file_service.read(str(temp_vault / "A.md"))
        assert result.success is True
        assert result.content.startswith("# A")

    @pytest.mark.asyncio
    async def test_read_relative_path(self, file_service):
        result = await file_service.read("sub/C.md")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_read_outside_root(self, file_service):
        result = await file_service.read("/etc/passwd")
        assert result.success is False
        assert result.error == "Access denied: path outside root directory"

    @pytest.mark.asyncio
    async def test_read_traversal(self, file_service, temp_vault):
        result = await file_service.read(str(temp_vault / ".." / ".." / "etc" / "passwd"))
        assert result.success is False
        assert "Access denied" in result.error

    @pytest.mark.asyncio
    async def test_read_missing_file(self, file_service, temp_vault):
        result = await file_service.read(str(temp_vault / "missing.md"))
        assert result.success is False
        assert result.error

    @pytest.mark.asyncio
    async def test_write_creates_parent_folders(self, file_service, temp_vault):
        target = temp_vault / "new" / "deep" / "note.md"

        result = await file_service.write(str(target), "hello")

        assert result.success is True
        assert target.read_text(encoding="utf-8") == "hello"

    @pytest.mark.asyncio
    async def test_write_outside_root(self, file_service, temp_dir):
        result = await file_service.write(str(temp_dir / "escape.md"), "x")
        assert result.success is False
        assert not (temp_dir / "escape.md").exists()

    @pytest.mark.asyncio
    async def test_write_reconciles_assets(self, file_service, temp_vault, make_image):
        name = make_image()

        await file_service.write(str(temp_vault / "A.md"), f"![pic](.assets/{name})")

        assert _registry(temp_vault)["images"][name]["references"] == ["A.md"]

    @pytest.mark.asyncio
    async def test_write_succeeds_when_reconcile_fails(self, file_service, temp_vault):
        with patch.object(file_service.assets, "save_metadata", side_effect=OSError("disk full")):
            (temp_vault / ".assets" / "x.png").write_bytes(b"x")
            result = await file_service.write(str(temp_vault / "A.md"), "![x](.assets/x.png)")

        assert result.success is True
        assert any("disk full" in w for w in result.warnings)
        assert (temp_vault / "A.md").read_text(encoding="utf-8") == "![x](.assets/x.png)"


class TestCreate:
    """Tests for create and create_folder."""

    @pytest.mark.asyncio
    async def test_adds_extension(self, file_service, temp_vault):
        result = await file_service.create("Ideas", str(temp_vault))

        assert result.success is True
        assert result.content == str(temp_vault / "Ideas.md")
        assert (temp_vault / "Ideas.md").read_text(encoding="utf-8") == "# Ideas\n\n"

    @pytest.mark.asyncio
    async def test_keeps_existing_extension(self, file_service, temp_vault):
        result = await file_service.create("Ideas.md", str(temp_vault))

        assert result.content == str(temp_vault / "Ideas.md")
        assert not (temp_vault / "Ideas.md.md").exists()

    @pytest.mark.asyncio
    async def test_defaults_to_root(self, file_service, temp_vault):
        result = await file_service.create("Top")
        assert result.content == str(temp_vault / "Top.md")

    @pytest.mark.asyncio
    async def test_existing_file(self, file_service, temp_vault):
        result = await file_service.create("A", str(temp_vault))
        assert result.success is False
        assert result.error == "File already exists"

    @pytest.mark.asyncio
    async def test_outside_root(self, file_service, temp_dir):
        result = await file_service.create("x", str(temp_dir))
        assert result.success is False
        assert "Access denied" in result.error

    @pytest.mark.asyncio
    async def test_name_cannot_escape(self, file_service, temp_vault):
        result = await file_service.create("../escape", str(temp_vault))
        assert result.success is False

    @pytest.mark.asyncio
    async def test_create_folder(self, file_service, temp_vault):
        result = await file_service.create_folder("Projects", str(temp_vault))

        assert result.success is True
        assert (temp_vault / "Projects").is_dir()

    @pytest.mark.asyncio
    async def test_existing_folder(self, file_service, temp_vault):
        result = await file_service.create_folder("sub", str(temp_vault))
        assert result.success is False
        assert result.error == "Folder already exists"

    @pytest.mark.asyncio
    async def test_folder_outside_root(self, file_service, temp_dir):
        result = await file_service.create_folder("evil", str(temp_dir))
        assert result.success is False
        assert not (temp_dir / "evil").exists()


class TestDelete:
    """Tests for delete."""

    @pytest.mark.asyncio
    async def test_delete_file(self, file_service, temp_vault):
        result = await file_service.delete(str(temp_vault / "A.md"))
        assert result.success is True
        assert not (temp_vault / "A.md").exists()

    @pytest.mark.asyncio
    async def test_delete_folder_recursively(self, file_service, temp_vault):
        result = await file_service.delete(str(temp_vault / "sub"))
        assert result.success is True
        assert not (temp_vault / "sub").exists()

    @pytest.mark.asyncio
    async def test_delete_outside_root(self, file_service, temp_dir):
        outside = temp_dir / "keep.md"
        outside.write_text("x", encoding="utf-8")

        result = await file_service.delete(str(outside))

        assert result.success is False
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_refuses_root(self, file_service, temp_vault):
        result = await file_service.delete(str(temp_vault))
        assert result.success is False
        assert temp_vault.exists()

    @pytest.mark.asyncio
    async def test_missing_path(self, file_service, temp_vault):
        result = await file_service.delete(str(temp_vault / "nope.md"))
        assert result.success is False
        assert result.error == "Path not found"

    @pytest.mark.asyncio
    async def test_releases_asset_references(self, file_service, temp_vault, make_image):
        name = make_image()
        await file_service.write(str(temp_vault / "sub" / "C.md"), f"![](.assets/{name})")

        await file_service.delete(str(temp_vault / "sub"))

        assert _registry(temp_vault)["images"][name]["references"] == []


class TestRenameMove:
    """Tests for rename and move."""

    @pytest.mark.asyncio
    async def test_rename(self, file_service, temp_vault):
        result = await file_service.rename(str(temp_vault / "A.md"), "Renamed.md")

        assert result.success is True
        assert result.content == str(temp_vault / "Renamed.md")
        assert (temp_vault / "Renamed.md").exists()
        assert not (temp_vault / "A.md").exists()

    @pytest.mark.asyncio
    async def test_rename_outside_root(self, file_service, temp_dir):
        outside = temp_dir / "x.md"
        outside.write_text("x", encoding="utf-8")

        result = await file_service.rename(str(outside), "y.md")

        assert result.success is False
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_rename_rejects_separators(self, file_service, temp_vault):
        result = await file_service.rename(str(temp_vault / "A.md"), "../A.md")
        assert result.success is False
        assert (temp_vault / "A.md").exists()

    @pytest.mark.asyncio
    async def test_rename_onto_existing(self, file_service, temp_vault):
        result = await file_service.rename(str(temp_vault / "A.md"), "B.md")

        assert result.success is False
        assert (temp_vault / "B.md").read_text(encoding="utf-8").startswith("# B")

    @pytest.mark.asyncio
    async def test_rename_onto_hard_link(self, file_service, temp_vault):
        os.link(temp_vault / "A.md", temp_vault / "Alias.md")

        result = await file_service.rename(str(temp_vault / "A.md"), "Alias.md")

        assert result.success is False
        assert result.error == "A file or folder with that name already exists"
        assert (temp_vault / "A.md").exists()

    @pytest.mark.asyncio
    async def test_rename_onto_name_differing_in_case(self, file_service, temp_vault):
        (temp_vault / "a.md").write_text("# lower", encoding="utf-8")

        result = await file_service.rename(str(temp_vault / "A.md"), "a.md")

        assert result.success is False
        assert (temp_vault / "a.md").read_text(encoding="utf-8") == "# lower"

    @pytest.mark.asyncio
    async def test_rename_rekeys_assets(self, file_service, temp_vault, make_image):
        name = make_image()
        await file_service.write(str(temp_vault / "A.md"), f"![](.assets/{name})")

        await file_service.rename(str(temp_vault / "A.md"), "Z.md")

        assert _registry(temp_vault)["images"][name]["references"] == ["Z.md"]

    @pytest.mark.asyncio
    async def test_move(self, file_service, temp_vault):
        result = await file_service.move(str(temp_vault / "A.md"), str(temp_vault / "sub"))

        assert result.success is True
        assert result.content == str(temp_vault / "sub" / "A.md")
        assert (temp_vault / "sub" / "A.md").exists()

    @pytest.mark.asyncio
    async def test_move_into_itself(self, file_service, temp_vault):
        (temp_vault / "sub" / "inner").mkdir()

        result = await file_service.move(str(temp_vault / "sub"), str(temp_vault / "sub" / "inner"))

        assert result.success is False
        assert result.error == "Cannot move a folder into itself"

    @pytest.mark.asyncio
    async def test_move_source_outside_root(self, file_service, temp_dir, temp_vault):
        outside = temp_dir / "x.md"
        outside.write_text("x", encoding="utf-8")

        result = await file_service.move(str(outside), str(temp_vault))

        assert result.success is False
        assert result.error == "Access denied: source path outside root directory"

    @pytest.mark.asyncio
    async def test_move_target_outside_root(self, file_service, temp_dir, temp_vault):
        result = await file_service.move(str(temp_vault / "A.md"), str(temp_dir))

        assert result.success is False
        assert result.error == "Access denied: target path outside root directory"

    @pytest.mark.asyncio
    async def test_move_name_taken(self, file_service, temp_vault):
        (temp_vault / "sub" / "A.md").write_text("other", encoding="utf-8")

        result = await file_service.move(str(temp_vault / "A.md"), str(temp_vault / "sub"))

        assert result.success is False
        assert "already exists" in result.error
        assert (temp_vault / "sub" / "A.md").read_text(encoding="utf-8") == "other"

    @pytest.mark.asyncio
    async def test_move_folder_rekeys_assets(self, file_service, temp_vault, make_image):
        name = make_image()
        await file_service.write(str(temp_vault / "sub" / "C.md"), f"![](.assets/{name})")
        (temp_vault / "archive").mkdir()

        await file_service.move(str(temp_vault / "sub"), str(temp_vault / "archive"))

        assert _registry(temp_vault)["images"][name]["references"] == ["archive/sub/C.md"]


class TestDuplicate:
    """Tests for duplicate."""

    @pytest.mark.asyncio
    async def test_copy_suffix(self, file_service, temp_vault):
        result = await file_service.duplicate(str(temp_vault / "A.md"))

        assert result.success is True
        assert result.content == str(temp_vault / "A_copy.md")
        assert (temp_vault / "A_copy.md").read_text(encoding="utf-8") == (
            temp_vault / "A.md"
        ).read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_second_copy(self, file_service, temp_vault):
        await file_service.duplicate(str(temp_vault / "A.md"))
        result = await file_service.duplicate(str(temp_vault / "A.md"))

        assert result.content == str(temp_vault / "A_copy_2.md")

    @pytest.mark.asyncio
    async def test_missing_source(self, file_service, temp_vault):
        result = await file_service.duplicate(str(temp_vault / "nope.md"))
        assert result.success is False
        assert result.error == "Source file not found"

    @pytest.mark.asyncio
    async def test_outside_root(self, file_service, temp_dir):
        outside = temp_dir / "x.md"
        outside.write_text("x", encoding="utf-8")

        result = await file_service.duplicate(str(outside))

        assert result.success is False
        assert not (temp_dir / "x_copy.md").exists()

    @pytest.mark.asyncio
    async def test_copy_registers_assets(self, file_service, temp_vault, make_image):
        name = make_image()
        await file_service.write(str(temp_vault / "A.md"), f"![](.assets/{name})")

        await file_service.duplicate(str(temp_vault / "A.md"))

        assert _registry(temp_vault)["images"][name]["references"] == ["A.md", "A_copy.md"]


class TestStatExists:
    """Tests for stat and file_exists."""

    @pytest.mark.asyncio
    async def test_stat(self, file_service, temp_vault):
        result = await file_service.stat(str(temp_vault / "A.md"))
        info = json.loads(result.content)

        assert result.success is True
        assert info["size"] == os.path.getsize(temp_vault / "A.md")
        assert "createdAt" in info and "modifiedAt" in info

    @pytest.mark.asyncio
    async def test_exists(self, file_service, temp_vault):
        assert await file_service.file_exists(str(temp_vault / "A.md")) is True
        assert await file_service.file_exists(str(temp_vault / "nope.md")) is False
