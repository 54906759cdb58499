"""Core context for explicit state passing.

This module provides the CoreContext dataclass that bundles the settings,
library, song manager, player and event channel, so the remote surface and
the service loop receive one explicit object instead of reaching for
module-level state.
"""

import random
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jukebox.core.config import get_library_path, get_settings_path
from jukebox.core.events import EventBus
from jukebox.core.settings import Settings
from jukebox.domain.library import Library
from jukebox.domain.playback import PlaybackBackend, Player, SongManager


@dataclass
class CoreContext:
    """Everything the core owns, wired together.

    Attributes:
        settings: Settings key file
        library: Persistent song library
        manager: History, up-next and queue
        player: Playback controller
        events: Event channel shared by all parts
        quit_requested: Set by the remote ``quit`` method
    """

    settings: Settings
    library: Library
    manager: SongManager
    player: Player
    events: EventBus
    quit_requested: bool = False

    @classmethod
    def create(
        cls,
        settings_path: Optional[Path],
        library_path: Optional[Path],
        backend: PlaybackBackend,
        rng: Optional[random.Random] = None,
    ) -> "CoreContext":
        """Create a context; nothing is read from disk yet.

        Args:
            settings_path: Settings file (None: default location)
            library_path: Library file (None: default location)
            backend: Audio engine used by the player
            rng: Random source for song selection

        Returns:
            New CoreContext with empty library and default settings
        """
        events = EventBus()
        settings = Settings(get_settings_path(settings_path))
        library = Library(get_library_path(library_path))
        manager = SongManager(library, settings, events, rng)
        player = Player(manager, settings, events, backend)

        return cls(
            settings=settings,
            library=library,
            manager=manager,
            player=player,
            events=events,
        )

    def load(self) -> bool:
        """Read settings and library from disk."""
        settings_ok = self.settings.read()
        library_ok = self.library.read()
        return settings_ok and library_ok

    def flush(self) -> None:
        """Write anything queued to disk."""
        self.library.write(force=False)
        self.settings.write(force=False)
