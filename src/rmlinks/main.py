"""Main entry point for rmlinks."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import RmlinksConfig, RunConfig
from .errors import ExitStatus, RmlinksError
from .output import OutputSink
from .supervisor import Supervisor

DESCRIPTION = """\
Search DIRECTORY for hard links to FILE and remove them.

DIRECTORY must be a directory and FILE must be a regular file.
FILE itself is never removed."""

VERSION_BANNER = f"""\
rmlinks version {__version__}
Copyright (C) 2014 Chris Morrison
License GPLv3+: GNU GPL version 3 or later <https://www.gnu.org/licenses/gpl-3.0.html>
This is free software: you are free to change and redistribute it.
There is NO WARRANTY, to the extent permitted by law.

Written by Chris Morrison <chris-morrison@cyberservices.com>"""


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser.

    Returns:
        Configured parser.

    """
    parser = argparse.ArgumentParser(
        prog="rmlinks",
        usage="rmlinks [options] DIRECTORY FILE",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("directory", metavar="DIRECTORY", help="Directory to search")
    parser.add_argument("file", metavar="FILE", help="File whose extra links are removed")
    parser.add_argument(
        "-r",
        action="store_true",
        dest="recursive",
        help="Recurse sub-directories while searching.",
    )
    parser.add_argument(
        "-s",
        action="store_true",
        dest="softlinks",
        help="Remove symbolic links to FILE as well as hard links.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=VERSION_BANNER,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=None,
        help="Number of traversal worker threads (1 = single thread, 0 = auto)",
    )

    return parser


def setup_logging(config: RmlinksConfig) -> logging.Logger:
    """Set up logging for a run.

    Args:
        config: Settings holding the log level and optional log file.

    Returns:
        Configured logger instance.

    """
    logger = logging.getLogger("rmlinks")
    logger.setLevel(getattr(logging, config.log_level))

    # Clear existing handlers to avoid duplicates across runs in one process
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(getattr(logging, config.log_level))
    logger.addHandler(console_handler)

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        logger.addHandler(file_handler)

    return logger


def run(args: argparse.Namespace, sink: OutputSink) -> int:
    """Execute a run for parsed arguments.

    Args:
        args: Parsed arguments.
        sink: Output for all user-visible lines.

    Returns:
        Exit code.

    """
    config = RmlinksConfig.load(args.config)
    if args.jobs is not None:
        config.workers = args.jobs
    config.validate()

    logger = setup_logging(config)
    run_config = RunConfig.resolve(
        args.directory,
        args.file,
        recursive=args.recursive,
        softlinks=args.softlinks,
    )

    supervisor = Supervisor(run_config, config, sink, logger)
    report = asyncio.run(supervisor.run())
    return int(report.exit_status)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command line arguments. Uses ``sys.argv`` if None.

    Returns:
        Exit code.

    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 for -h/-v and 2 for usage errors
        return int(e.code or 0)

    sink = OutputSink()
    try:
        return run(args, sink)
    except RmlinksError as e:
        sink.fatal(str(e))
        return int(e.exit_status)
    except KeyboardInterrupt:
        sink.fatal("rmlinks: interrupted.")
        return int(ExitStatus.FATAL)


if __name__ == "__main__":
    sys.exit(main())
