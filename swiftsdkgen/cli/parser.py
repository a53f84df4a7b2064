"""
Swift SDK generator CLI argument parser.

This module implements the command-line interface using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

try:
    from importlib.metadata import version

    __version__ = version("swift-sdk-generator")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """Swift SDK generator command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="swift-sdk-gen",
            description="Generate Swift SDKs for cross-compiling to Linux",
            epilog='Use "swift-sdk-gen COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"swift-sdk-gen {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./swift-sdk-gen.yaml)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_generate_command(subparsers)

        return parser

    def _add_generate_command(self, subparsers):
        """Add 'generate' subcommand."""
        parser = subparsers.add_parser(
            "generate",
            help="Generate a Swift SDK bundle",
            description=(
                "Assemble an .artifactbundle with a host Swift toolchain, a "
                "target sysroot and the LLD linker"
            ),
        )
        parser.add_argument(
            "--target",
            metavar="TRIPLE",
            help="Target triple (default: host CPU, unknown-linux-gnu)",
        )
        parser.add_argument(
            "--host",
            metavar="TRIPLE",
            help="Host triple (default: detected)",
        )
        parser.add_argument(
            "--distribution-name",
            metavar="NAME",
            help="Linux distribution of the target (ubuntu|rhel) [default: ubuntu]",
        )
        parser.add_argument(
            "--distribution-version",
            metavar="VERSION",
            help="Release of the distribution [default: 22.04]",
        )
        parser.add_argument(
            "--swift-version",
            metavar="VERSION",
            help="Swift release, e.g. 5.9-RELEASE",
        )
        parser.add_argument(
            "--swift-branch",
            metavar="BRANCH",
            help="download.swift.org branch (default: derived from the version)",
        )
        parser.add_argument(
            "--lld-version",
            metavar="VERSION",
            help="LLVM release to take lld from, e.g. 16.0.5",
        )
        parser.add_argument(
            "--artifact-id",
            metavar="ID",
            help="Artifact ID of the generated SDK",
        )
        parser.add_argument(
            "--source-root",
            metavar="DIR",
            help="Directory to generate the bundle in (default: current directory)",
        )
        parser.add_argument(
            "--incremental",
            action="store_true",
            default=None,
            help="Keep results of a previous run instead of starting clean",
        )
        parser.add_argument(
            "--with-docker",
            dest="docker",
            action="store_true",
            default=None,
            help="Copy the target sysroot out of a Docker image",
        )
        parser.add_argument(
            "--base-docker-image",
            metavar="IMAGE",
            help="Docker image to copy the sysroot from",
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,
        )

    def _dispatch_command(self, args) -> int:
        command_map = {
            "generate": "swiftsdkgen.cli.commands.generate",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main(args: Optional[List[str]] = None):
    """Console script entry point."""
    sys.exit(CLI().run(args))


if __name__ == "__main__":
    main()
