"""Shared run state: the active task counter and the cancellation flag."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import RmlinksError


class CancellationToken:
    """Monotonic stop flag polled cooperatively by traversal tasks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def request_stop(self) -> None:
        """Ask all traversal tasks to stop at their next poll point."""
        self._event.set()

    def is_stop_requested(self) -> bool:
        """Check whether a stop has been requested."""
        return self._event.is_set()


class WorkerRegistry:
    """Counter of traversal tasks that have been registered and not yet finished."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0

    def register(self) -> None:
        """Record a new active task."""
        with self._lock:
            self._count += 1

    def deregister(self) -> None:
        """Record that a registered task has finished.

        Must only be called once per prior ``register()``.
        """
        with self._lock:
            assert self._count > 0, "deregister() without matching register()"
            self._count -= 1

    def current_count(self) -> int:
        """Snapshot of the number of active tasks."""
        with self._lock:
            return self._count


@dataclass
class RunState:
    """Handle on the state shared between the supervisor and all traversal tasks."""

    registry: WorkerRegistry = field(default_factory=WorkerRegistry)
    token: CancellationToken = field(default_factory=CancellationToken)
    failure: RmlinksError | None = None
    _failure_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def fail(self, error: RmlinksError) -> None:
        """Record a run-fatal error and request every task to stop.

        Only the first recorded error is kept.

        Args:
            error: Fatal error raised by a traversal task.

        """
        with self._failure_lock:
            if self.failure is None:
                self.failure = error
        self.token.request_stop()
