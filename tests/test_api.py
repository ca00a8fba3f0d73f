"""
End-to-end tests for the FastAPI application.
Tests the API endpoints with a real test client.
"""

import base64
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from notevault.config import config
from notevault.main import create_app


@pytest.fixture
def client(temp_vault: Path):
    """Create a test client bound to a temporary notes root."""
    app = create_app(root=temp_vault)
    with TestClient(app) as client:
        yield client


class TestSystemEndpoints:
    """Tests for /health and /root."""

    def test_health(self, client, temp_vault):
        response = client.get("/health")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["root_path"] == str(temp_vault)
        assert data["watcher_running"] is False

    def test_root(self, client, temp_vault):
        assert client.get("/root").json() == {"root_path": str(temp_vault)}


class TestFileEndpoints:
    """Tests for the file routes."""

    def test_list_files(self, client):
        data = client.get("/files").json()

        assert data["success"] is True
        assert [f["name"] for f in data["files"]] == ["sub", "A.md", "B.md"]
        assert data["files"][0]["isDirectory"] is True

    def test_read_file(self, client):
        data = client.get("/file", params={"path": "A.md"}).json()
        assert data["success"] is True
        assert data["content"].startswith("# A")

    def test_read_outside_root(self, client):
        data = client.get("/file", params={"path": "/etc/passwd"}).json()
        assert data["success"] is False
        assert data["error"] == "Access denied: path outside root directory"

    def test_write_and_read_back(self, client):
        client.put("/file", json={"path": "new/note.md", "content": "hello"})
        assert client.get("/file", params={"path": "new/note.md"}).json()["content"] == "hello"

    def test_create_file(self, client, temp_vault):
        data = client.post("/file", json={"name": "Ideas"}).json()

        assert data["success"] is True
        assert data["content"] == str(temp_vault / "Ideas.md")

    def test_create_folder(self, client, temp_vault):
        data = client.post("/folder", json={"name": "Projects"}).json()
        assert data["success"] is True
        assert (temp_vault / "Projects").is_dir()

    def test_delete_file(self, client, temp_vault):
        data = client.delete("/file", params={"path": "B.md"}).json()
        assert data["success"] is True
        assert not (temp_vault / "B.md").exists()

    def test_rename_updates_links(self, client, temp_vault):
        data = client.post(
            "/file/rename", json={"path": str(temp_vault / "A.md"), "new_name": "Alpha.md"}
        ).json()

        assert data["success"] is True
        assert (temp_vault / "B.md").read_text(encoding="utf-8") == "# B\n\nBack to [A](Alpha.md).\n"

        events = client.get("/events").json()
        assert [e["type"] for e in events["events"]] == ["links:updated"]
        assert str(temp_vault / "B.md") in events["events"][0]["paths"]

    def test_move_updates_links(self, client, temp_vault):
        data = client.post(
            "/file/move",
            json={"source_path": str(temp_vault / "B.md"), "target_dir": str(temp_vault / "sub")},
        ).json()

        assert data["success"] is True
        assert (temp_vault / "A.md").read_text(encoding="utf-8") == "# A\n\nSee [B](sub/B.md).\n"
        assert (temp_vault / "sub" / "C.md").read_text(encoding="utf-8") == "# C\n\nUp to [B](B.md).\n"
        assert (temp_vault / "sub" / "B.md").read_text(encoding="utf-8") == "# B\n\nBack to [A](../A.md).\n"

    def test_failed_move_leaves_links(self, client, temp_vault):
        data = client.post(
            "/file/move",
            json={"source_path": str(temp_vault / "sub"), "target_dir": str(temp_vault / "sub")},
        ).json()

        assert data["success"] is False
        assert client.get("/events").json()["count"] == 0

    def test_duplicate(self, client, temp_vault):
        data = client.post("/file/duplicate", json={"path": "A.md"}).json()
        assert data["content"] == str(temp_vault / "A_copy.md")

    def test_stat(self, client):
        data = client.get("/file/stat", params={"path": "A.md"}).json()
        assert data["success"] is True
        assert '"size"' in data["content"]

    def test_exists(self, client, temp_vault):
        data = client.get("/file/exists", params={"path": str(temp_vault / "A.md")}).json()
        assert data["exists"] is True


class TestSearchEndpoint:
    """Tests for GET /search."""

    def test_search_notes(self, client):
        data = client.get("/search", params={"query": "back to"}).json()

        assert data["success"] is True
        assert data["total_matches"] == 1
        assert data["results"][0]["file_name"] == "B.md"

    def test_search_tags(self, client, temp_vault):
        (temp_vault / "tagged.md").write_text("---\ntags: [java]\n---\n", encoding="utf-8")

        data = client.get("/search", params={"query": "jav", "mode": "tags"}).json()

        assert [r["file_name"] for r in data["results"]] == ["tagged.md"]

    def test_invalid_mode(self, client):
        response = client.get("/search", params={"query": "x", "mode": "everything"})
        assert response.status_code == 422


class TestAssetEndpoints:
    """Tests for the asset routes."""

    def test_base64_then_cleanup(self, client, temp_vault, png_bytes):
        saved = client.post(
            "/assets/base64",
            json={"filename": "paste.png", "data": base64.b64encode(png_bytes).decode()},
        ).json()
        assert saved["success"] is True

        result = client.post("/assets/cleanup").json()

        assert result["success"] is True
        assert result["cleaned"] == 1
        assert not (temp_vault / saved["content"]).exists()

    def test_resolve(self, client, make_image):
        name = make_image()
        data = client.get("/assets/resolve", params={"path": f".assets/{name}"}).json()
        assert data["content"].startswith("data:image/png;base64,")

    def test_embed_html(self, client, make_image):
        name = make_image()
        data = client.post("/assets/embed", json={"html": f'<img src=".assets/{name}">'}).json()
        assert data["html"].startswith('<img src="data:image/png;base64,')


class TestLifecycle:
    """Startup and shutdown hooks."""

    def test_shutdown_runs_quick_cleanup(self, temp_vault, make_image):
        name = make_image()
        app = create_app(root=temp_vault)

        with TestClient(app) as client:
            client.put("/file", json={"path": "A.md", "content": f"![](.assets/{name})"})
            client.put("/file", json={"path": "A.md", "content": "no images"})

        assert not (temp_vault / ".assets" / name).exists()

    def test_startup_bootstraps_root(self, temp_dir):
        root = temp_dir / "Fresh"
        with TestClient(create_app(root=root)):
            assert (root / "Welcome.md").exists()


class TestApiKey:
    """Tests for the API key middleware."""

    def test_missing_key(self, client):
        with patch.object(config, "API_KEY", "secret"):
            assert client.get("/files").status_code == 401

    def test_wrong_key(self, client):
        with patch.object(config, "API_KEY", "secret"):
            assert client.get("/files", headers={"X-API-Key": "nope"}).status_code == 403

    def test_valid_key(self, client):
        with patch.object(config, "API_KEY", "secret"):
            assert client.get("/files", headers={"X-API-Key": "secret"}).status_code == 200

    def test_health_is_public(self, client):
        with patch.object(config, "API_KEY", "secret"):
            assert client.get("/health").status_code == 200

    def test_docs_are_public(self, client):
        with patch.object(config, "API_KEY", "secret"):
            assert client.get("/openapi.json").status_code == 200


class TestCors:
    """Tests for the configurable CORS origins."""

    def test_no_origins_configured(self, client):
        response = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert "access-control-allow-origin" not in response.headers

    def test_allowed_origin(self, temp_vault):
        with patch.object(config, "CORS_ORIGINS", ["http://localhost:5173"]):
            app = create_app(root=temp_vault)

        with TestClient(app) as client:
            response = client.get("/health", headers={"Origin": "http://localhost:5173"})
            other = client.get("/health", headers={"Origin": "http://evil.example"})

        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert "access-control-allow-origin" not in other.headers

    def test_preflight_skips_api_key(self, temp_vault):
        with patch.object(config, "CORS_ORIGINS", ["http://localhost:5173"]):
            app = create_app(root=temp_vault)

        with TestClient(app) as client, patch.object(config, "API_KEY", "secret"):
            response = client.options(
                "/files",
                headers={
                    "Origin": "http://localhost:5173",
                    "Access-Control-Request-Method": "GET",
                    "Access-Control-Request-Headers": "X-API-Key",
                },
            )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
