"""Line-serialized progress and error reporting shared by all traversal tasks."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import IO

from rich.console import Console

PROGRAM = "rmlinks"


def _plain_console(file: IO[str] | None, *, stderr: bool) -> Console:
    """Create a console with markup, emoji, highlighting and wrapping disabled."""
    return Console(
        file=file,
        stderr=stderr,
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
    )


class OutputSink:
    """Writes whole lines to stdout/stderr so concurrent tasks never interleave output."""

    def __init__(self, out: IO[str] | None = None, err: IO[str] | None = None) -> None:
        """Initialize the sink.

        Args:
            out: Stream for progress lines. Uses ``sys.stdout`` if None.
            err: Stream for error lines. Uses ``sys.stderr`` if None.

        """
        self._lock = threading.Lock()
        self._out = _plain_console(out, stderr=False)
        self._err = _plain_console(err, stderr=True)
        self.removed = 0
        self.errors = 0

    def _emit(self, console: Console, line: str) -> None:
        """Write one finished line to the console's stream. Caller holds the lock.

        Lines skip rich rendering so tabs and control characters in paths are kept.
        Byte streams get the line through ``os.fsencode`` so undecodable file
        names come out as their original bytes.
        """
        file = console.file
        buffer = getattr(file, "buffer", None)
        if buffer is None:
            file.write(f"{line}\n")
            file.flush()
            return
        file.flush()
        buffer.write(os.fsencode(line) + b"\n")
        buffer.flush()

    def _write(self, console: Console, line: str) -> None:
        with self._lock:
            self._emit(console, line)

    def info(self, line: str) -> None:
        """Print a progress line on stdout."""
        self._write(self._out, line)

    def error(self, line: str) -> None:
        """Print an error line on stderr."""
        with self._lock:
            self.errors += 1
            self._emit(self._err, line)

    def fatal(self, message: str) -> None:
        """Print a fatal message on stderr as-is."""
        self._write(self._err, message)

    def unlinked(self, path: Path) -> None:
        with self._lock:
            self.removed += 1
            self._emit(self._out, f"Unlinked {path}")

    def removed_symlink(self, path: Path) -> None:
        with self._lock:
            self.removed += 1
            self._emit(self._out, f"Removed symbolic link {path}")

    def failure(self, action: str, path: Path, exc: OSError) -> None:
        """Report a failed filesystem operation on one path.

        Args:
            action: What was attempted, e.g. ``"failed to unlink"``.
            path: Path the operation was attempted on.
            exc: Error raised by the operation.

        """
        reason = exc.strerror or str(exc)
        self.error(f"{PROGRAM}: {action} {path} ({reason}).")

    def summary(self, removed: int, eligible: int) -> None:
        self.info(f"Successfully removed {removed} of {eligible} links")
