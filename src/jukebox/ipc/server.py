"""IPC server for receiving remote-control commands from external processes."""

import json
import queue
import socket
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from jukebox.context import CoreContext
from jukebox.core.config import get_runtime_dir
from jukebox import remote

SOCKET_NAME = "control.sock"

# Seconds a client waits for the main thread to answer
RESPONSE_TIMEOUT = 15.0


def get_socket_path() -> Path:
    """
    Get the path to the jukebox control socket.

    Returns:
        Path to Unix socket
    """
    socket_dir = get_runtime_dir()
    socket_dir.mkdir(parents=True, exist_ok=True)
    return socket_dir / SOCKET_NAME


class IPCServer:
    """Unix socket server for IPC commands.

    Runs in a background thread and processes commands from external clients.
    Uses a queue to communicate with the main thread, which owns the core.
    """

    def __init__(
        self,
        command_queue: queue.Queue,
        response_queue: queue.Queue,
        socket_path: Optional[Path] = None,
    ):
        """
        Initialize IPC server.

        Args:
            command_queue: Queue for sending commands to main thread
            response_queue: Queue for receiving responses from main thread
            socket_path: Socket to listen on (default: runtime dir)
        """
        self.command_queue = command_queue
        self.response_queue = response_queue
        self.socket_path = socket_path or get_socket_path()
        self.server_socket: Optional[socket.socket] = None
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the IPC server in a background thread."""
        if self.running:
            return

        # Remove stale socket if it exists
        if self.socket_path.exists():
            try:
                self.socket_path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove stale socket {self.socket_path}: {e}")

        self.running = True
        self.thread = threading.Thread(target=self._run_server, daemon=True, name="ipc")
        self.thread.start()
        logger.info(f"IPC server listening on {self.socket_path}")

    def stop(self) -> None:
        """Stop the IPC server and cleanup."""
        self.running = False

        # Close server socket to unblock accept()
        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError as e:
                logger.debug(f"Error closing IPC socket: {e}")

        # Wait for thread to finish
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)

        # Remove socket file
        if self.socket_path.exists():
            try:
                self.socket_path.unlink()
            except OSError as e:
                logger.debug(f"Could not remove socket {self.socket_path}: {e}")

    def _run_server(self) -> None:
        """Run the Unix socket server loop."""
        try:
            self.server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            self.server_socket.bind(str(self.socket_path))
            self.server_socket.listen(5)
            self.server_socket.settimeout(1.0)  # Poll every second

            while self.running:
                try:
                    client_socket, _ = self.server_socket.accept()
                    # Handle in same thread (simple, sequential processing)
                    self._handle_client(client_socket)
                except socket.timeout:
                    continue
                except OSError as e:
                    if self.running:  # Only log if we're still supposed to be running
                        logger.error(f"Error accepting connection: {e}")

        except OSError:
            logger.exception("IPC server error")
        finally:
            if self.server_socket:
                self.server_socket.close()

    def _send(self, client_socket: socket.socket, success: bool, message: str) -> None:
        response = {"success": success, "message": message}
        client_socket.sendall((json.dumps(response) + "\n").encode("utf-8"))

    def _handle_client(self, client_socket: socket.socket) -> None:
        """
        Handle a client connection.

        Args:
            client_socket: Connected client socket
        """
        try:
            data = b""
            while True:
                chunk = client_socket.recv(4096)
                if not chunk:
                    break
                data += chunk
                # Check for newline (end of JSON message)
                if b"\n" in data:
                    break

            if not data:
                return

            payload = json.loads(data.decode("utf-8").strip())
            command = str(payload.get("command", ""))
            args = payload.get("args", [])
            if not isinstance(args, list):
                args = [args]

            # Put command in queue for main thread
            request_id = id(payload)
            self.command_queue.put((request_id, command, args))

            try:
                response_id, success, message = self.response_queue.get(
                    timeout=RESPONSE_TIMEOUT
                )
            except queue.Empty:
                self._send(client_socket, False, "Command timed out")
                return

            if response_id == request_id:
                self._send(client_socket, success, message)
            else:
                # Mismatched response (shouldn't happen with sequential processing)
                self._send(client_socket, False, "Internal error: response mismatch")

        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError) as e:
            self._send(client_socket, False, f"Invalid JSON: {e}")
        except OSError as e:
            logger.warning(f"IPC client connection failed: {e}")
        finally:
            client_socket.close()


def process_ipc_commands(
    ctx: CoreContext,
    command_queue: queue.Queue,
    response_queue: queue.Queue,
) -> int:
    """
    Run every queued IPC command on the calling (main) thread.

    Args:
        ctx: Core context
        command_queue: Commands put there by the server thread
        response_queue: Replies picked up by the server thread

    Returns:
        Number of commands processed
    """
    processed = 0
    while True:
        try:
            request_id, command, args = command_queue.get_nowait()
        except queue.Empty:
            return processed

        success, message = remote.dispatch(ctx, command, args)
        logger.info(f"[IPC] {command} {' '.join(map(str, args))} -> {message}".strip())
        response_queue.put((request_id, success, message))
        processed += 1
