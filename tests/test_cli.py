"""Tests for the jukebox command line."""

from pathlib import Path
from unittest.mock import patch

import pytest

from jukebox import cli
from jukebox.ipc import NOT_RUNNING


def run_main(argv: list) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestParser:
    """Test argument parsing."""

    def test_actions_are_mutually_exclusive(self, capsys):
        """Test two playback actions are rejected with a usage error."""
        assert run_main(["--play-pause", "--stop"]) == 2

        err = capsys.readouterr().err
        assert "not allowed with argument" in err
        assert "--play-pause" in err

    @pytest.mark.parametrize(
        "flag, method",
        [
            ("-p", "playpause"),
            ("--play", "play"),
            ("--pause", "pause"),
            ("--stop", "stop"),
            ("--previous", "backward"),
            ("-n", "forward"),
        ],
    )
    def test_action_methods(self, flag: str, method: str):
        assert cli.build_parser().parse_args([flag]).action == method

    def test_files_and_overrides(self):
        args = cli.build_parser().parse_args(
            ["--config", "s.toml", "--library", "l.toml", "-b", "one.ogg", "two.flac"]
        )
        assert args.config == "s.toml"
        assert args.library == "l.toml"
        assert args.background is True
        assert args.files == ["one.ogg", "two.flac"]
        assert args.action is None

    def test_log_level_case_insensitive(self):
        assert cli.build_parser().parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    def test_version(self, capsys):
        assert run_main(["--version"]) == 0
        assert capsys.readouterr().out.startswith("jukebox ")

    def test_shortlist(self, capsys):
        assert run_main(["--shortlist"]) == 0
        options = capsys.readouterr().out.split()
        assert "--play-pause" in options
        assert "--library" in options


class TestForwarding:
    """Test handing work to a running instance."""

    def test_action_forwarded(self, capsys):
        with (
            patch("jukebox.cli.ipc.is_service_running", return_value=True),
            patch("jukebox.cli.ipc.send_command", return_value=(True, "Play/pause")) as send,
        ):
            assert run_main(["-p"]) == 0

        send.assert_called_once_with("playpause", [])
        assert capsys.readouterr().out.strip() == "Play/pause"

    def test_files_forwarded_as_uris(self, tmp_path: Path):
        path = tmp_path / "Track #1.ogg"
        with (
            patch("jukebox.cli.ipc.is_service_running", return_value=True),
            patch("jukebox.cli.ipc.send_command", return_value=(True, "1")) as send,
        ):
            assert run_main([str(path), "--next"]) == 0

        assert [call.args for call in send.call_args_list] == [
            ("addsong", [path.as_uri()]),
            ("forward", []),
        ]

    def test_failure_exit_code(self, capsys):
        with (
            patch("jukebox.cli.ipc.is_service_running", return_value=True),
            patch("jukebox.cli.ipc.send_command", return_value=(False, "Could not seek")),
        ):
            assert run_main(["--stop"]) == 1
        assert "Could not seek" in capsys.readouterr().err

    def test_nothing_to_forward(self, capsys):
        with patch("jukebox.cli.ipc.is_service_running", return_value=True):
            assert run_main([]) == 0
        assert "already running" in capsys.readouterr().out

    def test_action_without_instance(self, capsys):
        with patch("jukebox.cli.ipc.is_service_running", return_value=False):
            assert run_main(["--pause"]) == 1
        assert NOT_RUNNING in capsys.readouterr().err


class TestStartService:
    def test_runs_service(self):
        with (
            patch("jukebox.cli.ipc.is_service_running", return_value=False),
            patch("jukebox.main.run_service", return_value=0) as run_service,
        ):
            assert run_main(["--library", "lib.toml", "-v", "a.ogg"]) == 0

        kwargs = run_service.call_args.kwargs
        assert kwargs["library_path"] == "lib.toml"
        assert kwargs["verbose"] is True
        assert kwargs["files"] == ["a.ogg"]
