"""
File inspection for library imports.

Classifies paths by file type and guessed MIME type so imports can be gated
to audio (or audio and video) files.
"""

import mimetypes
import os
import stat
from enum import Enum
from pathlib import Path
from typing import List

from loguru import logger

from .models import path_to_uri

# Audio extensions not every platform's MIME database knows about
_EXTRA_AUDIO_TYPES = {
    ".flac": "audio/flac",
    ".opus": "audio/ogg",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".m4a": "audio/mp4",
    ".wv": "audio/x-wavpack",
    ".ape": "audio/x-ape",
}

for _extension, _mime_type in _EXTRA_AUDIO_TYPES.items():
    mimetypes.add_type(_mime_type, _extension)


class FileType(Enum):
    """Result of inspecting a path."""

    UNKNOWN = "unknown"
    ERROR = "error"
    DIRECTORY = "directory"
    MIME_UNKNOWN = "mime-unknown"
    MIME_AUDIO = "mime-audio"
    MIME_MEDIA = "mime-media"
    MIME_IRRELEVANT = "mime-irrelevant"


class CheckMode(Enum):
    """How strictly imports are gated."""

    NONE = "none"  # Accept anything without inspecting
    AUDIO = "audio"  # Only audio files
    MEDIA = "media"  # Audio and video files


def guess_mime_type(path: str | Path) -> str | None:
    mime_type, _ = mimetypes.guess_type(str(path), strict=False)
    return mime_type


def get_file_type(path: str | Path) -> FileType:
    """Inspect ``path`` and classify it."""
    try:
        mode = os.stat(path).st_mode
    except OSError as e:
        logger.warning(f"Failed to get file info of {path}: {e}")
        return FileType.ERROR

    if stat.S_ISDIR(mode):
        return FileType.DIRECTORY

    if not stat.S_ISREG(mode):
        return FileType.UNKNOWN

    mime_type = guess_mime_type(path)
    if mime_type is None:
        return FileType.MIME_UNKNOWN
    if mime_type.startswith("audio/"):
        return FileType.MIME_AUDIO
    if mime_type.startswith("video/"):
        return FileType.MIME_MEDIA
    return FileType.MIME_IRRELEVANT


def is_accepted(file_type: FileType, check: CheckMode) -> bool:
    """Whether a file of ``file_type`` may be imported under ``check``."""
    if check == CheckMode.NONE:
        return True
    if file_type == FileType.MIME_AUDIO:
        return check in (CheckMode.AUDIO, CheckMode.MEDIA)
    if file_type == FileType.MIME_MEDIA:
        return check == CheckMode.MEDIA
    return False


def list_directory(path: str | Path) -> List[Path]:
    """List the children of a directory, sorted by URI."""
    try:
        children = list(Path(path).iterdir())
    except OSError as e:
        logger.warning(f"Could not open directory {path}: {e}")
        return []

    return sorted(children, key=path_to_uri)
