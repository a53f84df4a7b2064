"""
Tests for CLI argument parser.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from swiftsdkgen.cli.parser import CLI, main


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_no_command_shows_help(self, capsys):
        """Test that running without command shows help."""
        cli = CLI()
        result = cli.run([])

        assert result == 1
        captured = capsys.readouterr()
        assert "usage:" in captured.out.lower()

    def test_version_flag(self, capsys):
        """Test --version flag."""
        cli = CLI()

        with pytest.raises(SystemExit) as exc_info:
            cli.run(["--version"])

        assert exc_info.value.code == 0
        captured = capsys.readouterr()
        assert "swift-sdk-gen" in captured.out

    def test_global_config(self):
        """Test --config is parsed as a path."""
        args = CLI().parse_args(["--config", "sdk.yaml", "generate"])

        assert args.config == Path("sdk.yaml")


class TestGenerateCommand:
    """Test generate command parsing."""

    def test_generate_basic(self):
        """Test flags default to None so file values are kept."""
        args = CLI().parse_args(["generate"])

        assert args.command == "generate"
        assert args.target is None
        assert args.swift_version is None
        assert args.incremental is None
        assert args.docker is None

    def test_generate_all_options(self):
        """Test generate with all options."""
        args = CLI().parse_args(
            [
                "generate",
                "--target", "aarch64-unknown-linux-gnu",
                "--host", "arm64-apple-macosx",
                "--distribution-name", "rhel",
                "--distribution-version", "ubi9",
                "--swift-version", "5.9-RELEASE",
                "--swift-branch", "swift-5.9-release",
                "--lld-version", "16.0.5",
                "--artifact-id", "my-sdk",
                "--source-root", "out",
                "--incremental",
                "--with-docker",
                "--base-docker-image", "swift:5.9-rhel-ubi9",
            ]
        )

        assert args.target == "aarch64-unknown-linux-gnu"
        assert args.host == "arm64-apple-macosx"
        assert args.distribution_name == "rhel"
        assert args.distribution_version == "ubi9"
        assert args.swift_branch == "swift-5.9-release"
        assert args.artifact_id == "my-sdk"
        assert args.source_root == "out"
        assert args.incremental is True
        assert args.docker is True
        assert args.base_docker_image == "swift:5.9-rhel-ubi9"

    def test_unknown_flag(self):
        """Test unknown flags exit with a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            CLI().parse_args(["generate", "--compiler", "gcc"])

        assert exc_info.value.code == 2


class TestDispatch:
    """Test command dispatch and exit codes."""

    @pytest.fixture(autouse=True)
    def keep_log_handlers(self):
        """Leave pytest's capture handlers installed."""
        with patch.object(CLI, "_configure_logging"):
            yield

    @patch("swiftsdkgen.cli.commands.generate.run", return_value=0)
    def test_dispatch_generate(self, mock_run):
        """Test generate is routed to its command module."""
        assert CLI().run(["generate"]) == 0
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0].command == "generate"

    @patch("swiftsdkgen.cli.commands.generate.run", side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt(self, mock_run):
        """Test Ctrl-C exits with 130."""
        assert CLI().run(["generate"]) == 130

    @patch("swiftsdkgen.cli.commands.generate.run", side_effect=RuntimeError("boom"))
    def test_unexpected_error(self, mock_run, caplog):
        """Test unexpected errors are logged and exit with 1."""
        assert CLI().run(["generate"]) == 1
        assert "boom" in caplog.text

    @patch("swiftsdkgen.cli.commands.generate.run", return_value=1)
    def test_main_exits_with_code(self, mock_run):
        """Test the console entry point exits with the command's code."""
        with pytest.raises(SystemExit) as exc_info:
            main(["generate"])

        assert exc_info.value.code == 1


class TestLogging:
    """Test logging configuration."""

    @pytest.mark.parametrize(
        "flags,level",
        [
            ([], logging.INFO),
            (["--verbose"], logging.DEBUG),
            (["-q"], logging.ERROR),
        ],
    )
    def test_log_level(self, flags, level):
        """Test verbosity flags set the root logger level."""
        cli = CLI()
        args = cli.parse_args(flags + ["generate"])

        with patch("swiftsdkgen.cli.parser.logging.basicConfig") as basic_config:
            cli._configure_logging(args)

        assert basic_config.call_args.kwargs["level"] == level
        assert basic_config.call_args.kwargs["force"] is True
