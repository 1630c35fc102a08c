"""Error taxonomy for rmlinks runs."""

from __future__ import annotations

from enum import IntEnum


class ExitStatus(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    NONFATAL = 1
    FATAL = 2


class RmlinksError(Exception):
    """Base class for errors that end a run."""

    exit_status: ExitStatus = ExitStatus.FATAL


class ConfigurationError(RmlinksError):
    """Bad arguments, unusable paths or invalid settings."""


class NoHardLinksError(ConfigurationError):
    """The target has no links besides itself."""

    exit_status = ExitStatus.NONFATAL


class RootTraversalError(RmlinksError):
    """The search root could not be listed."""


class ReStatError(RmlinksError):
    """The target could not be re-inspected while supervising the run."""


class WorkerStartError(RmlinksError):
    """The traversal workers could not be started."""


class SpawnError(Exception):
    """A traversal task could not be started for a subdirectory."""
