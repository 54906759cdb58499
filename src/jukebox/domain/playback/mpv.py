"""
MPV playback backend using mpv's JSON IPC.

mpv runs idle in the background; songs are loaded with ``loadfile`` and the
backend polls a few properties to report stream start, end of stream and
load failures to the playback controller.
"""

import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, List, NamedTuple, Optional

from loguru import logger

from jukebox.domain.library.models import uri_to_path

from .player import BackendError, BackendEvent, BackendMessage, PlaybackState

# Seconds to wait for mpv to create its socket
SOCKET_TIMEOUT = 5.0

# Seconds a loaded file may take to report a duration before it counts as failed
LOAD_TIMEOUT = 5.0

# Seconds after loadfile before an idle mpv means the file failed to open
IDLE_GRACE = 0.5


class MpvState(NamedTuple):
    """Handle of a running mpv process."""

    socket_path: Optional[str] = None
    process: Optional[subprocess.Popen] = None


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def default_socket_path() -> str:
    temp_dir = Path(tempfile.gettempdir())
    return str(temp_dir / f"jukebox-mpv-{os.getpid()}")


def start_mpv(socket_path: Optional[str] = None, volume: float = 80.0) -> Optional[MpvState]:
    """Start MPV with JSON IPC and return its handle."""
    socket_path = socket_path or default_socket_path()
    logger.info(f"Starting MPV player with socket: {socket_path}")

    try:
        if os.path.exists(socket_path):
            logger.debug(f"Removing existing socket: {socket_path}")
            os.unlink(socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={socket_path}",
            f"--volume={volume:g}",
            "--keep-open=yes",
            "--load-scripts=no",
        ]

        process = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
        )

        start_time = time.time()
        while not os.path.exists(socket_path):
            if time.time() - start_time > SOCKET_TIMEOUT:
                logger.error(f"MPV socket creation timeout after {SOCKET_TIMEOUT}s")
                process.kill()
                return None
            time.sleep(0.1)

        if send_mpv_command(socket_path, {"command": ["get_property", "idle-active"]}):
            logger.info("MPV started successfully")
            return MpvState(socket_path=socket_path, process=process)

        logger.error("MPV socket connection test failed")
        process.kill()
        return None

    except (subprocess.SubprocessError, OSError) as e:
        logger.error(f"Failed to start MPV: {e}")
        return None


def stop_mpv(state: MpvState) -> None:
    """Stop MPV process and cleanup."""
    if state.process:
        try:
            state.process.kill()
            state.process.wait(timeout=2.0)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"MPV did not exit cleanly: {e}")

    if state.socket_path and os.path.exists(state.socket_path):
        try:
            os.unlink(state.socket_path)
        except OSError as e:
            logger.debug(f"Could not remove MPV socket: {e}")


def is_mpv_running(state: Optional[MpvState]) -> bool:
    """Check if MPV process is still running."""
    if state is None or not state.process:
        return False

    if state.process.poll() is not None:
        return False

    if not state.socket_path or not os.path.exists(state.socket_path):
        return False

    return True


def _request(socket_path: Optional[str], command: dict[str, Any]) -> Optional[dict[str, Any]]:
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(2.0)
        sock.connect(socket_path)

        command_json = json.dumps(command) + "\n"
        sock.send(command_json.encode("utf-8"))

        response = sock.recv(4096).decode("utf-8").strip()
        sock.close()
    except OSError:
        return None

    # mpv may interleave event lines; the reply is the line carrying "error"
    for line in response.splitlines():
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and "error" in data:
            return data

    return {} if not response else None


def send_mpv_command(socket_path: Optional[str], command: dict[str, Any]) -> bool:
    """Send JSON IPC command to MPV."""
    response = _request(socket_path, command)
    if response is None:
        return False
    if not response:
        return True
    return response.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV."""
    response = _request(socket_path, {"command": ["get_property", property_name]})
    if response and response.get("error") == "success":
        return response.get("data")
    return None


class MpvBackend:
    """``PlaybackBackend`` implementation driving an mpv process."""

    def __init__(self, socket_path: Optional[str] = None, volume: float = 80.0):
        self.socket_path = socket_path
        self.initial_volume = volume
        self._state: Optional[MpvState] = None

        self._uri: Optional[str] = None
        self._started = False
        self._paused = False
        self._loaded_at = 0.0

    def start(self) -> bool:
        """Launch mpv; returns False if it could not be started."""
        if is_mpv_running(self._state):
            return True

        if not check_mpv_available():
            logger.error("mpv is not installed or not on PATH")
            return False

        self._state = start_mpv(self.socket_path, self.initial_volume)
        return self._state is not None

    @property
    def running(self) -> bool:
        return is_mpv_running(self._state)

    def _command(self, *args: Any) -> bool:
        if not is_mpv_running(self._state):
            logger.warning(f"MPV not running, dropping command {args[0]}")
            return False
        return send_mpv_command(self._state.socket_path, {"command": list(args)})

    def _property(self, name: str) -> Any:
        if not is_mpv_running(self._state):
            return None
        return get_mpv_property(self._state.socket_path, name)

    def load(self, uri: str) -> bool:
        path = uri_to_path(uri)
        target = path if path is not None else uri

        self._uri = uri
        self._started = False
        self._paused = False
        self._loaded_at = time.time()

        if not self._command("loadfile", target, "replace"):
            self._uri = None
            return False

        self._command("set_property", "pause", False)
        return True

    def play(self) -> bool:
        if self._command("set_property", "pause", False):
            self._paused = False
            return True
        return False

    def pause(self) -> bool:
        if self._command("set_property", "pause", True):
            self._paused = True
            return True
        return False

    def stop(self) -> bool:
        self._uri = None
        self._started = False
        return self._command("stop")

    def seek(self, seconds: float) -> bool:
        return self._command("seek", seconds, "absolute")

    def set_volume(self, percentage: float) -> bool:
        percentage = max(0.0, min(100.0, percentage))
        return self._command("set_property", "volume", percentage)

    def get_position(self) -> float:
        position = self._property("time-pos")
        return float(position) if position is not None else 0.0

    def get_duration(self) -> float:
        duration = self._property("duration")
        return float(duration) if duration is not None else 0.0

    def _load_failed(self) -> BackendEvent:
        path = uri_to_path(self._uri) if self._uri else None
        self._uri = None

        if path is not None and not os.path.exists(path):
            return BackendEvent(
                BackendMessage.ERROR, BackendError.NOT_FOUND, f"File not found: {path}"
            )
        if path is not None and not os.access(path, os.R_OK):
            return BackendEvent(
                BackendMessage.ERROR, BackendError.NOT_AUTHORIZED, f"Permission denied: {path}"
            )
        return BackendEvent(BackendMessage.ERROR, BackendError.OTHER, "MPV could not play the file")

    def poll(self) -> List[BackendEvent]:
        """Translate mpv's properties into backend messages since the last poll."""
        events: List[BackendEvent] = []

        if self._uri is None:
            return events

        if not is_mpv_running(self._state):
            self._uri = None
            events.append(BackendEvent(BackendMessage.ERROR, BackendError.OTHER, "MPV stopped running"))
            return events

        if not self._started:
            duration = self._property("duration")
            if duration:
                self._started = True
                events.append(BackendEvent(BackendMessage.STREAM_START))
                return events

            elapsed = time.time() - self._loaded_at
            if elapsed > LOAD_TIMEOUT or (
                elapsed > IDLE_GRACE and self._property("idle-active") is True
            ):
                events.append(self._load_failed())
            return events

        if self._property("eof-reached") is True:
            self._uri = None
            self._started = False
            events.append(BackendEvent(BackendMessage.END_OF_STREAM))
            return events

        paused = self._property("pause")
        if paused is not None and bool(paused) != self._paused:
            self._paused = bool(paused)
            state = PlaybackState.PAUSED if self._paused else PlaybackState.PLAYING
            events.append(BackendEvent(BackendMessage.STATE_CHANGED, state=state))

        return events

    def shutdown(self) -> None:
        if self._state is not None:
            stop_mpv(self._state)
            self._state = None
