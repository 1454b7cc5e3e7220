"""Configuration module for Kiro Notes."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from kiro_notes import __version__
from kiro_notes.exceptions import ConfigurationError

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config: survives reinstalls, lives alongside the logs
_USER_ENV = Path.home() / ".kiro" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

APP_DIR_NAME = "kiro"
EXPORT_DIR_NAME = "kiro-export"


def default_data_dir() -> Path:
    """Return the platform's per-user application data directory for Kiro.

    Windows uses %LOCALAPPDATA%, macOS uses ~/Library/Application Support,
    everything else follows the XDG base directory convention.
    """
    if sys.platform == "win32":
        base = os.getenv("LOCALAPPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Local"
    elif sys.platform == "darwin":
        root = Path.home() / "Library" / "Application Support"
    else:
        base = os.getenv("XDG_DATA_HOME")
        root = Path(base) if base else Path.home() / ".local" / "share"
    return root / APP_DIR_NAME


def default_downloads_dir() -> Path:
    """Return the user's downloads directory (override with KIRO_DOWNLOADS_DIR)."""
    override = os.getenv("KIRO_DOWNLOADS_DIR")
    if override:
        return Path(override)
    return Path.home() / "Downloads"


def _optional_path(env_var: str) -> Optional[Path]:
    value = os.getenv(env_var)
    return Path(value) if value else None


class KiroConfig(BaseModel):
    """Configuration for the note store."""

    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("KIRO_DATABASE_PATH", str(default_data_dir() / "notes.db"))
        )
    )
    # Export destination; None means <downloads>/kiro-export
    export_dir: Optional[Path] = Field(
        default_factory=lambda: _optional_path("KIRO_EXPORT_DIR")
    )
    # Persistent log directory
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("KIRO_LOG_DIR", str(Path.home() / ".kiro" / "logs"))
        )
    )
    # Default result cap for listings
    search_limit: int = Field(
        default_factory=lambda: int(os.getenv("KIRO_SEARCH_LIMIT", "100"))
    )
    # Seconds to wait for the store lock; -1 waits forever
    lock_timeout: float = Field(
        default_factory=lambda: float(os.getenv("KIRO_LOCK_TIMEOUT", "30"))
    )
    app_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_limits(self) -> "KiroConfig":
        """Reject limits that would make every search or lock attempt fail."""
        if self.search_limit < 1:
            raise ValueError("search_limit must be >= 1")
        if self.lock_timeout != -1 and self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive or -1")
        return self

    def get_database_path(self) -> Path:
        """Get the absolute database path, creating its parent directory."""
        db_path = self.database_path.expanduser()
        if not db_path.is_absolute():
            db_path = Path.cwd() / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return db_path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        return f"sqlite:///{self.get_database_path()}"

    def get_export_dir(self) -> Path:
        """Get the directory exports are written into.

        The directory is not created here; the export writer creates it on use.
        """
        if self.export_dir is not None:
            return self.export_dir.expanduser()
        return default_downloads_dir() / EXPORT_DIR_NAME


def load_config() -> KiroConfig:
    """Build the configuration from the environment.

    Raises:
        ConfigurationError: If an environment value is malformed or out of range.
    """
    try:
        return KiroConfig()
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


# Create a global config instance
config = load_config()
