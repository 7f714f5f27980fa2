"""Configuration management for tubeshelf."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with TUBESHELF_ (e.g. TUBESHELF_DATA_DIR, TUBESHELF_HISTORY_LIMIT).
    """

    model_config = {"env_prefix": "TUBESHELF_"}

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".tubeshelf",
        description="Root directory for all tubeshelf data",
    )
    key_prefix: str = Field(
        default="@tubeshelf_",
        description="Namespace prepended to every durable storage key",
    )

    # Library limits
    history_limit: int = Field(default=100, gt=0)
    search_history_limit: int = Field(default=10, gt=0)

    # Search
    search_limit: int = 20
    thumbnail_quality: Literal["default", "hq", "mq", "sd", "maxres"] = "hq"

    @property
    def db_path(self) -> Path:
        """SQLite key-value database path."""
        return self.data_dir / "library.db"

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton — import this throughout the app
settings = Settings()
