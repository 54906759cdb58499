"""
Centralized logging configuration for jukebox using Loguru.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_log_file_path

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"
CONSOLE_FORMAT = "{level}: {message}"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def setup_logging(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    console_output: bool = False,
    rotation: str = "10 MB",
    retention: int = 5,
) -> None:
    """
    Configure loguru sinks for the application.

    Args:
        log_file: Path to log file (default: <data dir>/jukebox.log)
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether to also log to stderr
        rotation: Size at which the log file is rotated
        retention: Number of rotated files to keep
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        level = "INFO"

    log_file = log_file if log_file else get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=rotation,
        retention=retention,
        level=level,
        format=FILE_FORMAT,
        enqueue=False,  # Synchronous writes (thread-safe but blocking)
    )

    if console_output:
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    logger.info(f"Logging initialized: {log_file} (level={level})")
