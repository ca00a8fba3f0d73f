"""
Configuration module for the NoteVault backend.
Loads settings from environment variables or .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root (parent of notevault/ directory)
_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


class Config:
    """Application configuration."""

    # Notes root - every operation is confined to this directory
    NOTES_ROOT: Path = Path(
        os.getenv("NOTES_ROOT", str(Path.home() / "Documents" / "NoteVault"))
    ).expanduser()

    # Layout inside the root
    DOCUMENT_EXTENSION: str = os.getenv("DOCUMENT_EXTENSION", ".md")
    ASSETS_DIR_NAME: str = os.getenv("ASSETS_DIR_NAME", ".assets")
    METADATA_FILE_NAME: str = os.getenv("METADATA_FILE_NAME", ".metadata.json")
    WELCOME_FILE_NAME: str = "Welcome.md"

    # Search bounds
    SEARCH_MAX_FILES: int = int(os.getenv("SEARCH_MAX_FILES", "1000"))
    SEARCH_MAX_TOTAL_MATCHES: int = int(os.getenv("SEARCH_MAX_TOTAL_MATCHES", "500"))
    SEARCH_MAX_LINE_LENGTH: int = int(os.getenv("SEARCH_MAX_LINE_LENGTH", "300"))

    # Image assets
    ALLOWED_IMAGE_EXTENSIONS: tuple = (".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp")
    MAX_IMAGE_SIZE: int = int(os.getenv("MAX_IMAGE_SIZE", str(10 * 1024 * 1024)))
    MAX_EMBED_SIZE: int = int(os.getenv("MAX_EMBED_SIZE", str(1024 * 1024)))

    # File watcher settings
    DEBOUNCE_SECONDS: float = float(os.getenv("DEBOUNCE_SECONDS", "0.3"))

    # API settings
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_KEY: str = os.getenv("NOTEVAULT_API_KEY", "")  # Empty disables authentication
    # Comma-separated browser origins; empty disables CORS
    CORS_ORIGINS: list = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()
    ]

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not str(cls.NOTES_ROOT).strip():
            raise ValueError("NOTES_ROOT must be set to a directory path")
        if cls.NOTES_ROOT.exists() and not cls.NOTES_ROOT.is_dir():
            raise ValueError(f"NOTES_ROOT must be a directory: {cls.NOTES_ROOT}")
        if not cls.DOCUMENT_EXTENSION.startswith("."):
            raise ValueError(
                f"DOCUMENT_EXTENSION must start with a dot. "
                f"Current value: {cls.DOCUMENT_EXTENSION}"
            )
        for name in ("SEARCH_MAX_FILES", "SEARCH_MAX_TOTAL_MATCHES", "SEARCH_MAX_LINE_LENGTH"):
            if getattr(cls, name) <= 0:
                raise ValueError(f"{name} must be a positive integer")

    @classmethod
    def search_limits(cls) -> dict:
        """Get the configured search bounds."""
        return {
            "max_files": cls.SEARCH_MAX_FILES,
            "max_total_matches": cls.SEARCH_MAX_TOTAL_MATCHES,
            "max_line_length": cls.SEARCH_MAX_LINE_LENGTH,
        }


# Singleton config instance
config = Config()
