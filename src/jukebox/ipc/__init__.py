"""IPC (Inter-Process Communication) for jukebox.

Enables external commands to communicate with a running jukebox instance.
"""

from .client import NOT_RUNNING, is_service_running, send_command

__all__ = ["NOT_RUNNING", "is_service_running", "send_command"]
