"""
Settings key file for jukebox.

Settings live in a TOML document with one table per group:

    [Properties]
    FileVersion = 20221201

    [General]
    UsedVolume = 80.0
    ...

Every static setting has a typed definition with a default and (where it
applies) a range. Values read from the file that do not fit their definition
are rejected: the default is kept and a rewrite is queued so the file gets
corrected. Files written by a newer version, and files that fail to parse,
are ignored and never overwritten.

Settings registered at runtime (``register``) live in their own group,
``Interface`` by default, and are opaque to the core.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import tomli_w
from loguru import logger

from .hashing import raw_hash

FILE_VERSION = 20221201
MIN_FILE_VERSION = 20221201

PROPERTIES_GROUP = "Properties"
VERSION_KEY = "FileVersion"
DYNAMIC_GROUP = "Interface"

INT_MAX = 2**31 - 1
INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class SettingDefinition:
    """Definition of a single static setting."""

    group: str
    key: str
    kind: type
    default: Any
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    choices: Tuple[str, ...] = ()

    def accepts(self, value: Any) -> bool:
        """Check type and range of a candidate value."""
        if self.kind is bool:
            return isinstance(value, bool)

        if self.kind is str:
            return isinstance(value, str) and (not self.choices or value in self.choices)

        # bool is an int subclass; never accept it for numbers
        if isinstance(value, bool):
            return False
        if self.kind is int and not isinstance(value, int):
            return False
        if self.kind is float and not isinstance(value, (int, float)):
            return False

        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def coerce(self, value: Any) -> Any:
        if self.kind is float:
            return float(value)
        return value


def _bool(group: str, key: str, default: bool) -> SettingDefinition:
    return SettingDefinition(group, key, bool, default)


def _int(group: str, key: str, default: int, minimum: int, maximum: int) -> SettingDefinition:
    return SettingDefinition(group, key, int, default, minimum, maximum)


def _float(
    group: str, key: str, default: float, minimum: float, maximum: float
) -> SettingDefinition:
    return SettingDefinition(group, key, float, default, minimum, maximum)


GENERAL = "General"
FILTER = "FilterOptions"
MODIFIERS = "ProbabilityModifiers"
LOGGING = "Logging"

DEFINITIONS: Tuple[SettingDefinition, ...] = (
    # General
    _float(GENERAL, "UsedVolume", 80.0, 0.0, 100.0),
    SettingDefinition(GENERAL, "SongPrefix", str, ""),
    _int(GENERAL, "UpdateInterval", 100, 0, 60000),
    _bool(GENERAL, "PreferPlayFromRam", False),
    _float(GENERAL, "MinimumPlayedFraction", 0.2, 0.0, 1.0),
    _float(GENERAL, "FullPlayedFraction", 0.8, 0.0, 1.0),
    # Filter
    _int(FILTER, "RemoveSameRecentArtist", 0, 0, 25),
    _int(FILTER, "AmountOfRecentsToRemove", 0, 0, 100),
    _float(FILTER, "PercentageOfRecentsToRemove", 50.0, 0.0, 100.0),
    _bool(FILTER, "EnableRating", True),
    _bool(FILTER, "EnableScore", True),
    _bool(FILTER, "EnablePlayCount", False),
    _bool(FILTER, "EnableSkipCount", False),
    _bool(FILTER, "EnableLastPlayed", False),
    _bool(FILTER, "RatingIncludeZero", True),
    _bool(FILTER, "PlayCountInvertThreshold", False),
    _bool(FILTER, "SkipCountInvertThreshold", False),
    _bool(FILTER, "LastPlayedInvertThreshold", False),
    _int(FILTER, "RatingMin", 50, 0, 100),
    _int(FILTER, "RatingMax", 100, 0, 100),
    _float(FILTER, "ScoreMin", 25.0, 0.0, 100.0),
    _float(FILTER, "ScoreMax", 100.0, 0.0, 100.0),
    _int(FILTER, "PlayCountThreshold", 0, 0, INT_MAX),
    _int(FILTER, "SkipCountThreshold", 0, 0, INT_MAX),
    _int(FILTER, "LastPlayedThreshold", 0, 0, INT64_MAX),
    # Probability modifiers
    _bool(MODIFIERS, "RatingModifiesProbability", True),
    _bool(MODIFIERS, "ScoreModifiesProbability", False),
    _bool(MODIFIERS, "PlayCountModifiesProbability", False),
    _bool(MODIFIERS, "SkipCountModifiesProbability", False),
    _bool(MODIFIERS, "LastPlayedModifiesProbability", True),
    _bool(MODIFIERS, "RatingInvertedProbability", False),
    _bool(MODIFIERS, "ScoreInvertedProbability", False),
    _bool(MODIFIERS, "PlayCountInvertedProbability", False),
    _bool(MODIFIERS, "SkipCountInvertedProbability", True),
    _bool(MODIFIERS, "LastPlayedInvertedProbability", False),
    _int(MODIFIERS, "DefaultRating", 0, 0, 100),
    _float(MODIFIERS, "RatingMultiplier", 1.0, 0.0, 10.0),
    _float(MODIFIERS, "ScoreMultiplier", 1.0, 0.0, 10.0),
    _float(MODIFIERS, "PlayCountMultiplier", 1.0, 0.0, 10.0),
    _float(MODIFIERS, "SkipCountMultiplier", 1.0, 0.0, 10.0),
    _float(MODIFIERS, "LastPlayedMultiplier", 1.0, 0.0, 10.0),
    # Logging
    SettingDefinition(
        LOGGING, "LogLevel", str, "INFO", choices=("DEBUG", "INFO", "WARNING", "ERROR")
    ),
    _bool(LOGGING, "ConsoleOutput", False),
)

DEFINITIONS_BY_KEY: Dict[str, SettingDefinition] = {
    definition.key: definition for definition in DEFINITIONS
}

STATIC_GROUPS = tuple(dict.fromkeys(definition.group for definition in DEFINITIONS))


@dataclass
class DynamicSetting:
    """A setting registered at runtime by a consumer of the core."""

    setting_id: int
    name: str
    group: str
    default: Any
    value: Any


def _same_type(value: Any, default: Any) -> bool:
    if isinstance(default, bool) or isinstance(value, bool):
        return type(value) is type(default)
    if isinstance(default, float):
        return isinstance(value, (int, float))
    return isinstance(value, type(default))


class Settings:
    """In-memory settings with lazy persistence to a TOML key file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._values: Dict[str, Any] = {
            definition.key: definition.default for definition in DEFINITIONS
        }
        self._dynamic: Dict[int, DynamicSetting] = {}
        # Values of groups outside the static table, kept so they survive rewrites
        self._stored: Dict[str, Dict[str, Any]] = {}
        self._write_queued = False
        self._refuse_write = False

    # Static settings

    def get(self, key: str) -> Any:
        """Get the value of a static setting (KeyError for unknown keys)."""
        return self._values[key]

    def set(self, key: str, value: Any) -> bool:
        """
        Set a static setting.

        Args:
            key: Setting key, e.g. "UsedVolume"
            value: New value; must match the definition's type and range

        Returns:
            True if accepted (a write is queued when the value changed)
        """
        definition = DEFINITIONS_BY_KEY[key]
        if not definition.accepts(value):
            logger.warning(f"Rejected value {value!r} for setting {definition.group}.{key}")
            return False

        value = definition.coerce(value)
        if self._values[key] != value:
            self._values[key] = value
            self.queue_write()
        return True

    def reset(self, key: str) -> None:
        """Restore the default of a static setting."""
        self.set(key, DEFINITIONS_BY_KEY[key].default)

    # Frequently used values

    @property
    def volume(self) -> float:
        return self._values["UsedVolume"]

    @property
    def update_interval(self) -> int:
        return self._values["UpdateInterval"]

    @property
    def prefer_play_from_ram(self) -> bool:
        return self._values["PreferPlayFromRam"]

    @property
    def min_played_fraction(self) -> float:
        return self._values["MinimumPlayedFraction"]

    @property
    def full_played_fraction(self) -> float:
        return self._values["FullPlayedFraction"]

    @property
    def log_level(self) -> str:
        return self._values["LogLevel"]

    @property
    def console_output(self) -> bool:
        return self._values["ConsoleOutput"]

    # Dynamic settings

    def register(self, name: str, default: Any, group: str = DYNAMIC_GROUP) -> int:
        """
        Register a setting at runtime.

        A value for ``name`` already present in the file is used when its
        type matches ``default``.

        Args:
            name: Key name inside ``group``
            default: Default value (its type is the setting's type)
            group: Group to store the setting in

        Returns:
            Identifier of the setting (hash of the name), 0 on failure
        """
        setting_id = raw_hash(name)
        if setting_id == 0 or group == PROPERTIES_GROUP or group in STATIC_GROUPS:
            logger.warning(f"Cannot register setting {name!r} in group {group!r}")
            return 0

        existing = self._dynamic.get(setting_id)
        if existing is not None:
            if existing.name != name:
                logger.warning(f"Setting {name!r} collides with {existing.name!r}")
                return 0
            return setting_id

        value = default
        stored = self._stored.get(group, {})
        if name in stored:
            if _same_type(stored[name], default):
                value = stored[name]
            else:
                logger.debug(f"Ignoring stored value of {group}.{name}: wrong type")
                self.queue_write()

        self._dynamic[setting_id] = DynamicSetting(setting_id, name, group, default, value)
        logger.debug(f"Registered setting {group}.{name} ({setting_id:x})")
        return setting_id

    def get_dynamic(self, setting_id: int) -> Any:
        """Get the value of a registered setting (None if unknown)."""
        setting = self._dynamic.get(setting_id)
        return setting.value if setting else None

    def set_dynamic(self, setting_id: int, value: Any) -> bool:
        """Set the value of a registered setting; the type must match its default."""
        setting = self._dynamic.get(setting_id)
        if setting is None or not _same_type(value, setting.default):
            logger.warning(f"Rejected value {value!r} for setting {setting_id:x}")
            return False

        if setting.value != value:
            setting.value = value
            self.queue_write()
        return True

    # Persistence

    def queue_write(self) -> None:
        self._write_queued = True

    @property
    def write_queued(self) -> bool:
        """Whether a write is pending (never while the file is refused)."""
        return self._write_queued and not self._refuse_write

    def read(self, path: Optional[Path] = None) -> bool:
        """
        Load settings from the key file.

        Args:
            path: File to read (default: the path given at construction)

        Returns:
            True if the file was read (or did not exist yet)
        """
        if path is not None:
            self.path = path
        if self.path is None:
            logger.warning("No settings file to read")
            return False

        if not self.path.exists():
            logger.info(f"No settings file at {self.path}, using defaults")
            self.queue_write()
            return True

        try:
            with open(self.path, "rb") as f:
                document = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Failed to read settings file {self.path}: {e}")
            self._refuse_write = True
            return False

        properties = document.get(PROPERTIES_GROUP, {})
        version = properties.get(VERSION_KEY) if isinstance(properties, dict) else None

        if isinstance(version, int) and not isinstance(version, bool):
            if version > FILE_VERSION:
                logger.warning(
                    f"Settings file version {version} is newer than supported "
                    f"({FILE_VERSION}); ignoring {self.path}"
                )
                self._refuse_write = True
                return False
            if version < MIN_FILE_VERSION:
                logger.warning(f"Settings file version {version} is too old; using defaults")
                self.queue_write()
                return True
            if version < FILE_VERSION:
                self.queue_write()
        else:
            logger.debug("Settings file has no valid version, upgrading on next write")
            self.queue_write()

        self._load_static(document)
        self._load_stored(document)

        logger.info(f"Read settings from {self.path}")
        return True

    def _load_static(self, document: Dict[str, Any]) -> None:
        for definition in DEFINITIONS:
            group = document.get(definition.group)
            if not isinstance(group, dict) or definition.key not in group:
                self.queue_write()
                continue

            value = group[definition.key]
            if definition.accepts(value):
                self._values[definition.key] = definition.coerce(value)
            else:
                logger.warning(
                    f"Invalid value {value!r} for {definition.group}.{definition.key}, "
                    f"using default {definition.default!r}"
                )
                self._values[definition.key] = definition.default
                self.queue_write()

    def _load_stored(self, document: Dict[str, Any]) -> None:
        self._stored = {}
        for group, table in document.items():
            if group == PROPERTIES_GROUP or group in STATIC_GROUPS:
                continue
            if isinstance(table, dict):
                self._stored[group] = dict(table)

        for setting in self._dynamic.values():
            stored = self._stored.get(setting.group, {})
            if setting.name in stored and _same_type(stored[setting.name], setting.default):
                setting.value = stored[setting.name]

    def to_document(self) -> Dict[str, Any]:
        """Build the TOML document for the current values."""
        document: Dict[str, Any] = {PROPERTIES_GROUP: {VERSION_KEY: FILE_VERSION}}

        for definition in DEFINITIONS:
            document.setdefault(definition.group, {})[definition.key] = self._values[
                definition.key
            ]

        for group, table in self._stored.items():
            document.setdefault(group, {}).update(table)

        for setting in self._dynamic.values():
            document.setdefault(setting.group, {})[setting.name] = setting.value

        return document

    def write(self, force: bool = False) -> bool:
        """
        Write the settings file if a write is queued (or ``force``).

        Returns:
            True on success or when there was nothing to write
        """
        if not force and not self._write_queued:
            return True
        if self._refuse_write:
            logger.warning(f"Not overwriting settings file {self.path}: it could not be loaded")
            return False
        if self.path is None:
            logger.warning("No settings file to write")
            return False

        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as f:
                tomli_w.dump(self.to_document(), f)
            os.replace(temp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write settings file {self.path}: {e}")
            return False

        self._write_queued = False
        logger.info(f"Wrote settings to {self.path}")
        return True
