"""Application configuration with environment variable support."""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Priority: ENV > .env.local > .env > defaults
    .env.local is gitignored for local overrides
    """

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Service configuration
    PROJECT_NAME: str = "WeLabel Recorder"
    DATA_DIR: str = "~/.welabel"  # Root of sessions/, projects/, screenshots/
    DEBUG: bool = False
    HOST: str = "localhost"
    PORT: int = 3457
    LOG_LEVEL: str = "INFO"

    # Storage
    STORE_BACKEND: Literal["files", "sqlite"] = "files"
    MAX_SCREENSHOT_AGE_HOURS: int = 24 * 7

    # Recording
    SCREENSHOT_INTERVAL_SECONDS: float = 1.0
    MOUSE_MOVE_THRESHOLD: float = 5.0   # Screen units before a move is recorded
    SCREENSHOT_KEY_CODES: List[int] = [36]  # Return

    # Export
    EXPORT_FORMAT_VERSION: str = "1.0"

    # Optional captioning service
    ANTHROPIC_API_KEY: Optional[str] = None
    CAPTION_MODEL: str = "claude-sonnet-4-20250514"
    CAPTION_MAX_TOKENS: int = 500

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR).expanduser()

    @property
    def screenshots_dir(self) -> Path:
        return self.data_path / "screenshots"

    @property
    def exports_dir(self) -> Path:
        return self.data_path / "exports"


# Global settings instance
settings = Settings()
