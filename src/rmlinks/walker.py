"""Traversal of a single directory: match entries against the target and remove links."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from .errors import RootTraversalError, SpawnError

if TYPE_CHECKING:
    from .identity import TargetIdentity
    from .output import OutputSink
    from .state import RunState

logger = logging.getLogger("rmlinks")


@dataclass(frozen=True)
class WorkItem:
    """A pending directory, owned by the task that processes it."""

    path: Path
    is_root: bool = False


class DirectoryWalker:
    """Processes one directory per call to :meth:`walk`.

    Every :class:`WorkItem` handed to ``walk`` must already be registered with the
    run's worker registry; ``walk`` deregisters it exactly once, whichever way it
    exits. Subdirectories are handed to ``spawn``, which registers and schedules
    them according to the execution strategy in use.
    """

    def __init__(
        self,
        identity: TargetIdentity,
        state: RunState,
        sink: OutputSink,
        spawn: Callable[[WorkItem], None],
        *,
        recursive: bool,
        softlinks: bool,
    ) -> None:
        """Initialize the walker.

        Args:
            identity: Target the entries are matched against.
            state: Shared registry and cancellation token.
            sink: Output for progress and error lines.
            spawn: Schedules a traversal task for a subdirectory. Raises
                ``SpawnError`` if the task cannot be started.
            recursive: Whether to descend into subdirectories.
            softlinks: Whether to remove symbolic links to the target.

        """
        self.identity = identity
        self.state = state
        self.sink = sink
        self.spawn = spawn
        self.recursive = recursive
        self.softlinks = softlinks

    @property
    def _stopping(self) -> bool:
        return self.state.token.is_stop_requested()

    def walk(self, item: WorkItem) -> None:
        """Scan one directory, removing matches and spawning tasks for subdirectories.

        Args:
            item: Registered directory to process.

        """
        try:
            if self._stopping:
                return
            self._scan(item)
        finally:
            self.state.registry.deregister()

    def _scan(self, item: WorkItem) -> None:
        try:
            with os.scandir(item.path) as entries:
                for entry in entries:
                    if self._stopping:
                        logger.debug("Stop requested, abandoning %s", item.path)
                        return
                    self._process_entry(entry)
        except OSError as e:
            self.sink.failure("could not search", item.path, e)
            if item.is_root:
                self.state.fail(
                    RootTraversalError(f"rmlinks: aborting, the search root {item.path} could not be listed.")
                )

    def _process_entry(self, entry: os.DirEntry[str]) -> None:
        path = Path(entry.path)

        try:
            st = entry.stat(follow_symlinks=False)
        except OSError as e:
            self.sink.failure("failed to stat", path, e)
            return

        if stat.S_ISDIR(st.st_mode):
            if self.recursive and not self._stopping:
                self._spawn_child(path)
        elif stat.S_ISREG(st.st_mode):
            if self.identity.is_hard_link_match(st, path):
                self._remove(path, symlink=False)
        elif stat.S_ISLNK(st.st_mode) and self.softlinks:
            try:
                resolved = Path(os.path.realpath(path, strict=True))
            except OSError:
                # Dangling or unreadable links are not errors
                return
            if self.identity.is_soft_link_match(resolved):
                self._remove(path, symlink=True)

    def _spawn_child(self, path: Path) -> None:
        try:
            self.spawn(WorkItem(path))
        except SpawnError as e:
            if self._stopping:
                # The run is ending and the scheduler refused new work
                logger.debug("Skipping %s after stop request (%s)", path, e)
                return
            self.sink.error(f"rmlinks: failed to start worker for directory {path} ({e}).")

    def _remove(self, path: Path, *, symlink: bool) -> None:
        try:
            path.unlink()
        except OSError as e:
            action = "failed to remove symbolic link" if symlink else "failed to unlink"
            self.sink.failure(action, path, e)
            return

        if symlink:
            self.sink.removed_symlink(path)
        else:
            self.sink.unlinked(path)
