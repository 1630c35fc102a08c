"""File system watcher that wakes the supervisor when the target changes."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from watchdog.events import FileSystemEvent


class TargetEventHandler(FileSystemEventHandler):
    """Calls back on any event that concerns the target path."""

    def __init__(self, target: Path, callback: Callable[[], None], logger: logging.Logger) -> None:
        """Initialize the event handler.

        Args:
            target: Canonical path of the target file.
            callback: Function to call when the target is touched.
            logger: Logger instance.

        """
        super().__init__()
        self.target = target
        self.callback = callback
        self.logger = logger

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle every event type.

        Args:
            event: File system event.

        """
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(p and Path(os.fsdecode(p)) == self.target for p in paths):
            self.logger.debug("Target event: %s", event.event_type)
            self.callback()


class TargetWatcher:
    """Watches the target's directory so link count changes are noticed between polls."""

    def __init__(self, target: Path, callback: Callable[[], None], logger: logging.Logger) -> None:
        """Initialize the watcher.

        Args:
            target: Canonical path of the target file.
            callback: Function to call when the target is touched. Called from the
                observer thread.
            logger: Logger instance.

        """
        self.target = target
        self.callback = callback
        self.logger = logger
        self._observer: Observer | None = None

    def start(self) -> bool:
        """Start watching the target's parent directory.

        Returns:
            True if the observer is running. Failures are logged and leave the
            run relying on polling alone.

        """
        if self._observer is not None:
            return True

        observer = Observer()
        handler = TargetEventHandler(self.target, self.callback, self.logger)
        try:
            observer.schedule(handler, str(self.target.parent), recursive=False)
            observer.start()
        except (OSError, RuntimeError) as e:
            self.logger.warning("Could not watch %s, polling only: %s", self.target.parent, e)
            return False

        self._observer = observer
        self.logger.debug("Watching %s", self.target.parent)
        return True

    def stop(self) -> None:
        """Stop watching."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None
            self.logger.debug("Target watcher stopped")

    @property
    def is_running(self) -> bool:
        """Check if watcher is running."""
        return self._observer is not None
