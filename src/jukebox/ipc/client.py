"""IPC client for sending commands to a running jukebox instance."""

import json
import socket
from pathlib import Path
from typing import List, Optional, Tuple

from jukebox.core.config import get_runtime_dir

SOCKET_NAME = "control.sock"

NOT_RUNNING = "jukebox is not running"


def get_socket_path() -> Path:
    """
    Get the path to the jukebox control socket.

    Returns:
        Path to Unix socket
    """
    return get_runtime_dir() / SOCKET_NAME


def is_service_running(socket_path: Optional[Path] = None) -> bool:
    """Check whether an instance is listening on the control socket."""
    socket_path = socket_path or get_socket_path()
    if not socket_path.exists():
        return False

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(1.0)
            sock.connect(str(socket_path))
    except OSError:
        return False
    return True


def send_command(
    command: str,
    args: Optional[List[str]] = None,
    socket_path: Optional[Path] = None,
) -> Tuple[bool, str]:
    """
    Send a command to the running jukebox instance.

    Args:
        command: Command name (e.g., 'playpause', 'addsong', 'get')
        args: Command arguments (optional)
        socket_path: Socket to connect to (default: runtime dir)

    Returns:
        (success, message) tuple
            success: True if command executed successfully
            message: Response message or error description
    """
    socket_path = socket_path or get_socket_path()

    if not socket_path.exists():
        return False, NOT_RUNNING

    payload = {"command": command, "args": args or []}

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(20.0)
        sock.connect(str(socket_path))

        message = json.dumps(payload) + "\n"
        sock.sendall(message.encode("utf-8"))

        response_data = b""
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            response_data += chunk
            # Check if we have a complete JSON response (ends with newline)
            if b"\n" in response_data:
                break

        sock.close()

        if not response_data:
            return False, "No response from jukebox"

        response = json.loads(response_data.decode("utf-8").strip())
        success = bool(response.get("success", False))
        message = str(response.get("message", "No message"))

        return success, message

    except socket.timeout:
        return False, "jukebox not responding (timeout)"
    except (ConnectionRefusedError, FileNotFoundError):
        return False, NOT_RUNNING
    except json.JSONDecodeError as e:
        return False, f"Invalid response from jukebox: {e}"
    except OSError as e:
        return False, f"Failed to send command: {e}"
