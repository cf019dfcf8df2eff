"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files
- Configuration file loading from TOML
- Thread-safe singleton pattern for the Settings instance
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import toml
from dotenv import load_dotenv
from pydantic import ValidationError

from solvecrawl.config.models.settings import Settings
from solvecrawl.shared.constants import FileSystem
from solvecrawl.shared.errors import ErrorCode, ErrorContext, InfrastructureError, create_config_error

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS: tuple[Path, ...] = (
    Path(FileSystem.CONFIG_DIRECTORY) / "config.toml",
    Path("config.toml"),
    Path.home() / FileSystem.HOME_DIR / "config.toml",
)


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking so the common path takes no lock.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it if necessary."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self, config_path: str | Path | None = None) -> Settings:
        """Rebuild the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings(config_path)

        return self._instance


def _load_env_file(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file when one exists.

    Existing environment variables win over values in the file.

    Returns:
        True if a file was loaded

    Raises:
        InfrastructureError: If the file exists but cannot be read
    """
    env_file = env_file or Path(FileSystem.ENV_FILE)
    if not env_file.exists():
        return False

    try:
        return load_dotenv(env_file, override=False)
    except (OSError, UnicodeDecodeError) as e:
        raise InfrastructureError(
            code=ErrorCode.FILE_READ_ERROR,
            message=f"Failed to read .env file: {e}",
            context=ErrorContext(
                operation="load_env",
                additional_data={"file_name": env_file.name},
            ),
            original_error=e,
        ) from e


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a TOML configuration file or the environment.

    Args:
        config_path: Optional path to a TOML file. If None, the default
            locations are tried before falling back to environment only.

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If ``config_path`` is given and does not exist
        ApplicationError: If the file cannot be parsed or fails validation
    """
    _load_env_file()

    candidates: list[Path]
    if config_path is not None:
        candidates = [Path(config_path)]
    else:
        candidates = [path for path in DEFAULT_CONFIG_PATHS if path.exists()]

    if not candidates:
        return Settings()

    path = candidates[0]
    try:
        settings = Settings.from_toml_file(path)
    except FileNotFoundError:
        raise
    except (toml.TomlDecodeError, ValidationError) as e:
        raise create_config_error(
            f"Invalid configuration file {path}: {e}",
            config_key=str(path),
            operation="load_settings",
            original_error=e,
        ) from e

    logger.debug("Loaded configuration from %s", path)
    return settings


# Global loader instance
_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance (thread-safe)."""
    return _loader.get_config()


def reload_config(config_path: str | Path | None = None) -> Settings:
    """Reload the global settings instance from configuration files."""
    return _loader.reload_config(config_path)
