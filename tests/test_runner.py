"""Tests for runner.py module.

Uses mocked subprocess for execution tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from kmodbuild.errors import ConfigError
from kmodbuild.runner import SubprocessRunner, compose_argv, write_step_log
from kmodbuild.types import CommandResult, Mount


class TestComposeArgv:
    """Tests for compose_argv function."""

    def test_without_mounts(self):
        assert compose_argv("git", ["clone", "x"]) == ["git", "clone", "x"]

    def test_mounts_follow_subcommand(self):
        """Mounts should be rendered right after the subcommand."""
        argv = compose_argv(
            "docker",
            ["run", "--rm", "img"],
            [
                Mount(Path("/src"), "/build/src"),
                Mount(Path("/hdr"), "/kernel-headers", read_only=True),
            ],
        )
        assert argv == [
            "docker",
            "run",
            "--volume",
            "/src:/build/src:rw",
            "--volume",
            "/hdr:/kernel-headers:ro",
            "--rm",
            "img",
        ]

    def test_mounts_without_subcommand_rejected(self):
        with pytest.raises(ValueError):
            compose_argv("docker", [], [Mount(Path("/a"), "/b")])


class TestSubprocessRunner:
    """Tests for SubprocessRunner."""

    def test_captures_output(self):
        """Should return exit code and captured streams."""
        mock_result = MagicMock(returncode=3, stdout="out", stderr="err")
        with patch("subprocess.run", return_value=mock_result) as mock_run:
            result = SubprocessRunner().run("docker", ["info"])

        assert result.exit_code == 3
        assert result.stdout == "out"
        assert result.stderr == "err"
        assert result.command == "docker info"
        args, kwargs = mock_run.call_args
        assert args[0] == ["docker", "info"]
        assert kwargs["capture_output"] is True
        assert kwargs["check"] is False
        assert "timeout" not in kwargs

    def test_missing_executable_is_config_error(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("nope")):
            with pytest.raises(ConfigError) as exc_info:
                SubprocessRunner().run("insmod", ["/x.ko"])
        assert "insmod" in str(exc_info.value)

    def test_real_true_command(self):
        """Smoke-test against a real, harmless executable."""
        result = SubprocessRunner().run("true")
        assert result.ok


class TestCommandResult:
    """Tests for CommandResult helpers."""

    def test_output_combines_streams(self):
        result = CommandResult("x", 1, stdout="a\n", stderr="b\n")
        assert result.output == "a\nb"
        assert result.ok is False

    def test_output_empty(self):
        assert CommandResult("x", 0).output == ""


class TestWriteStepLog:
    """Tests for write_step_log."""

    def test_log_layout(self, tmp_path):
        started = datetime(2024, 1, 1, tzinfo=timezone.utc)
        finished = started + timedelta(seconds=12.5)
        result = CommandResult("make modules", 2, stdout="compiling", stderr="boom")

        log_path = write_step_log(tmp_path / "logs" / "build.log", result, started, finished)

        content = log_path.read_text()
        assert content.startswith("# Command: make modules\n")
        assert "# Started: 2024-01-01T00:00:00+00:00" in content
        assert "compiling\nboom" in content
        assert "# Exit code: 2" in content
        assert "# Duration: 12.5s" in content

