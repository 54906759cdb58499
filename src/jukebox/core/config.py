"""
Path configuration for jukebox

Settings and library contents live in their own key files (see
``jukebox.core.settings`` and ``jukebox.domain.library.storage``); this module
only decides where those files and the runtime socket are located.
"""

import os
from pathlib import Path
from typing import Optional

APP_NAME = "jukebox"

SETTINGS_FILE_NAME = "settings.toml"
LIBRARY_FILE_NAME = "library.toml"
LOG_FILE_NAME = "jukebox.log"

SETTINGS_ENV_VAR = "JUKEBOX_SETTINGS"
LIBRARY_ENV_VAR = "JUKEBOX_LIBRARY"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def get_runtime_dir() -> Path:
    """Get the directory holding the control socket.

    Uses XDG_RUNTIME_DIR when available, otherwise the data directory.
    """
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / APP_NAME
    return get_data_dir()


def get_settings_path(override: Optional[str | Path] = None) -> Path:
    """Get the settings file path.

    Checks, in order: an explicit override (``--config``), the
    JUKEBOX_SETTINGS environment variable, then the config directory.
    """
    if override:
        return Path(override).expanduser()

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    return get_config_dir() / SETTINGS_FILE_NAME


def get_library_path(override: Optional[str | Path] = None) -> Path:
    """Get the library file path (``--library`` > JUKEBOX_LIBRARY > data dir)."""
    if override:
        return Path(override).expanduser()

    env_path = os.environ.get(LIBRARY_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    return get_data_dir() / LIBRARY_FILE_NAME


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / LOG_FILE_NAME


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
    get_runtime_dir().mkdir(parents=True, exist_ok=True)
