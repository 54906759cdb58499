"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Path configuration (XDG directories)
- Logging (Loguru)
- Hashing of URIs and artist names
- Settings key file (TOML)
- Event channel and console output (Rich)

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    ensure_directories,
    get_config_dir,
    get_data_dir,
    get_library_path,
    get_log_file_path,
    get_runtime_dir,
    get_settings_path,
)

# Logging
from .logging import LOG_LEVELS, setup_logging

# Hashing
from .hashing import fold_character, folded_hash, raw_hash

# Events
from .events import Event, EventBus, EventKind

# Settings
from .settings import DEFINITIONS, SettingDefinition, Settings

__all__ = [
    # Configuration
    "ensure_directories",
    "get_config_dir",
    "get_data_dir",
    "get_library_path",
    "get_log_file_path",
    "get_runtime_dir",
    "get_settings_path",
    # Logging
    "LOG_LEVELS",
    "setup_logging",
    # Hashing
    "fold_character",
    "folded_hash",
    "raw_hash",
    # Events
    "Event",
    "EventBus",
    "EventKind",
    # Settings
    "DEFINITIONS",
    "SettingDefinition",
    "Settings",
]
