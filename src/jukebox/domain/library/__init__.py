"""Library domain - songs, their metadata and the persistent library.

This domain handles:
- Song data model and status
- File inspection for imports
- Metadata extraction from audio files
- The ordered library and its key file
"""

# Models
from .models import (
    SCORE_DEFAULT,
    Song,
    SongStatus,
    path_to_escaped_uri,
    path_to_uri,
    uri_to_path,
)

# File inspection
from .inspector import (
    CheckMode,
    FileType,
    get_file_type,
    guess_mime_type,
    is_accepted,
    list_directory,
)

# Metadata extraction and display
from .metadata import (
    DEFAULT_TIMEOUT,
    SongMetadata,
    extract_song_metadata,
    extract_with_timeout,
    format_duration,
    get_tag_value,
)

# Persistence
from .storage import (
    FILE_VERSION,
    LoadedLibrary,
    dump_library_file,
    load_library_file,
)

# Library
from .library import Column, Library

__all__ = [
    # Models
    "SCORE_DEFAULT",
    "Song",
    "SongStatus",
    "path_to_escaped_uri",
    "path_to_uri",
    "uri_to_path",
    # Inspection
    "CheckMode",
    "FileType",
    "get_file_type",
    "guess_mime_type",
    "is_accepted",
    "list_directory",
    # Metadata
    "DEFAULT_TIMEOUT",
    "SongMetadata",
    "extract_song_metadata",
    "extract_with_timeout",
    "format_duration",
    "get_tag_value",
    # Persistence
    "FILE_VERSION",
    "LoadedLibrary",
    "dump_library_file",
    "load_library_file",
    # Library
    "Column",
    "Library",
]
