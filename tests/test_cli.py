"""Unit tests for CLI functionality."""

import sys
from unittest.mock import patch

import pytest

from flakebot.cli import main
from flakebot.models import Operation


class StubFlakeBot:
    """Stub FlakeBot class for testing CLI."""

    def __init__(self, repo_path=".", build_flags=None, verbose=False, gofmt=None):
        self.repo_path = repo_path
        self.build_flags = build_flags
        self.verbose = verbose
        self.gofmt = gofmt
        self.run_called = False
        self.run_args = None

    def run(self, operation, targets, write=False, commit=False, markdown=None):
        """Record that the method was called with the given parameters."""
        self.run_called = True
        self.run_args = {
            "operation": operation,
            "targets": targets,
            "write": write,
            "commit": commit,
            "markdown": markdown,
        }


def _run_main(test_args):
    bots = []
    constructor_kwargs = {}

    def mock_bot_class(**kwargs):
        constructor_kwargs.update(kwargs)
        bots.append(StubFlakeBot(**kwargs))
        return bots[-1]

    with patch.object(sys, "argv", test_args):
        main(mock_bot_class)
    return bots[0], constructor_kwargs


def test_cli_default_args():
    """Test CLI with only the required arguments."""
    stub_bot, kwargs = _run_main(
        ["flakebot", "quarantine", "--targets", "example.com/m/pkg.TestA"]
    )

    assert kwargs == {"repo_path": ".", "build_flags": [], "verbose": False, "gofmt": None}
    assert stub_bot.run_called is True
    assert stub_bot.run_args == {
        "operation": Operation.QUARANTINE,
        "targets": ["example.com/m/pkg.TestA"],
        "write": False,
        "commit": False,
        "markdown": None,
    }


def test_cli_all_args():
    """Test CLI with all arguments specified."""
    stub_bot, kwargs = _run_main(
        [
            "flakebot",
            "unquarantine",
            "--repo",
            "/src/repo",
            "--targets",
            "example.com/m/a.TestA, example.com/m/b.TestB,",
            "--tags",
            "integration,e2e",
            "--write",
            "--commit",
            "--gofmt",
            "--markdown",
            "owner/repo@flaky-fixes",
            "--verbose",
        ]
    )

    assert kwargs == {
        "repo_path": "/src/repo",
        "build_flags": ["-tags", "integration,e2e"],
        "verbose": True,
        "gofmt": True,
    }
    assert stub_bot.run_args == {
        "operation": Operation.UNQUARANTINE,
        "targets": ["example.com/m/a.TestA", "example.com/m/b.TestB"],
        "write": True,
        "commit": True,
        "markdown": ("owner", "repo", "flaky-fixes"),
    }


def test_cli_short_args():
    """Test CLI with short argument forms."""
    stub_bot, kwargs = _run_main(
        ["flakebot", "quarantine", "-t", "example.com/m/pkg.TestA", "-v"]
    )

    assert kwargs["verbose"] is True
    assert stub_bot.run_args["targets"] == ["example.com/m/pkg.TestA"]


def test_cli_no_gofmt():
    """gofmt can be turned off explicitly."""
    _, kwargs = _run_main(
        ["flakebot", "quarantine", "-t", "example.com/m/pkg.TestA", "--no-gofmt"]
    )

    assert kwargs["gofmt"] is False


def test_cli_version():
    """Test CLI version argument."""
    with patch.object(sys, "argv", ["flakebot", "--version"]):
        with pytest.raises(SystemExit) as exc_info:
            main(StubFlakeBot)

        # Version argument causes SystemExit with code 0
        assert exc_info.value.code == 0


def test_cli_help():
    """Test CLI help argument."""
    with patch.object(sys, "argv", ["flakebot", "--help"]):
        with pytest.raises(SystemExit) as exc_info:
            main(StubFlakeBot)

        assert exc_info.value.code == 0


@pytest.mark.parametrize(
    "test_args",
    [
        ["flakebot", "quarantine"],
        ["flakebot", "delete", "--targets", "example.com/m/pkg.TestA"],
        ["flakebot", "quarantine", "--targets", "a.TestA", "--markdown", "owner-repo"],
        ["flakebot", "quarantine", "--targets", "a.TestA", "--markdown", "owner/repo"],
    ],
)
def test_cli_invalid_args(test_args):
    """Invalid arguments exit with a usage error."""
    with patch.object(sys, "argv", test_args):
        with pytest.raises(SystemExit) as exc_info:
            main(StubFlakeBot)

        assert exc_info.value.code == 2


def test_package_exports_entry_points():
    """The package exposes the CLI entry point and the bot class."""
    import flakebot
    from flakebot.cli import main as cli_main
    from flakebot.flakebot import FlakeBot

    assert flakebot.main is cli_main
    assert flakebot.FlakeBot is FlakeBot
