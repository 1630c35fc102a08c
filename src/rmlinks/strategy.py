"""Execution strategies that schedule traversal tasks for the directory walker."""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import TYPE_CHECKING, Protocol

from .errors import SpawnError, WorkerStartError

if TYPE_CHECKING:
    from .state import WorkerRegistry
    from .walker import DirectoryWalker, WorkItem

logger = logging.getLogger("rmlinks")


class ExecutionStrategy(Protocol):
    """How traversal tasks are run: started once, fed work items, then closed."""

    def start(self, walker: DirectoryWalker, root: WorkItem) -> None:
        """Begin traversal at ``root`` without blocking the caller."""
        ...

    def submit(self, item: WorkItem) -> None:
        """Register ``item`` and schedule it. Raises ``SpawnError`` on failure."""
        ...

    def close(self) -> None:
        """Release worker threads once no tasks remain."""
        ...


class InlineStrategy:
    """Single traversal thread; subdirectories are walked by immediate recursive calls."""

    def __init__(self, registry: WorkerRegistry, max_depth: int | None = None) -> None:
        """Initialize the strategy.

        Args:
            registry: Registry every walked item is registered with.
            max_depth: Deepest subdirectory nesting walked below the root. Defaults
                to a depth that stays clear of the interpreter's recursion limit.

        """
        self.registry = registry
        # Each nesting level costs a handful of frames (submit, walk, scan, entry, spawn)
        self.max_depth = max_depth if max_depth is not None else (sys.getrecursionlimit() - 100) // 6
        self._depth = 0
        self._walker: DirectoryWalker | None = None
        self._thread: threading.Thread | None = None

    def start(self, walker: DirectoryWalker, root: WorkItem) -> None:
        self._walker = walker
        self.registry.register()
        self._thread = threading.Thread(
            target=walker.walk,
            args=(root,),
            name="rmlinks-walker",
            daemon=True,
        )
        try:
            self._thread.start()
        except RuntimeError as e:
            self.registry.deregister()
            raise WorkerStartError(f"rmlinks: failed to start the traversal thread ({e}).") from e

    def submit(self, item: WorkItem) -> None:
        if self._walker is None:
            raise SpawnError("strategy not started")
        if self._depth >= self.max_depth:
            raise SpawnError("maximum directory depth exceeded")
        self.registry.register()
        self._depth += 1
        try:
            self._walker.walk(item)
        except RecursionError as e:
            raise SpawnError("maximum recursion depth exceeded") from e
        finally:
            self._depth -= 1

    def close(self) -> None:
        if self._thread is not None:
            self._thread.join()
            self._thread = None


class WorkerPool:
    """Fixed number of worker threads consuming a queue of pending directories."""

    def __init__(self, registry: WorkerRegistry, workers: int) -> None:
        """Initialize the pool.

        Args:
            registry: Registry every queued item is registered with.
            workers: Number of worker threads, at least 1.

        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.registry = registry
        self.workers = workers
        self._pending: queue.Queue[WorkItem | None] = queue.Queue()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._closed = False

    def start(self, walker: DirectoryWalker, root: WorkItem) -> None:
        for i in range(self.workers):
            thread = threading.Thread(
                target=self._run,
                args=(walker,),
                name=f"rmlinks-worker-{i}",
                daemon=True,
            )
            try:
                thread.start()
            except RuntimeError as e:
                self.close()
                raise WorkerStartError(f"rmlinks: failed to start worker threads ({e}).") from e
            self._threads.append(thread)

        logger.debug("Started %d traversal workers", len(self._threads))
        self.submit(root)

    def submit(self, item: WorkItem) -> None:
        with self._lock:
            if self._closed:
                raise SpawnError("worker pool is closed")
            self.registry.register()
            self._pending.put(item)

    def _run(self, walker: DirectoryWalker) -> None:
        while (item := self._pending.get()) is not None:
            try:
                walker.walk(item)
            except Exception:
                # Keep the worker alive so queued items still drain
                logger.exception("Unexpected error while searching %s", item.path)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._threads:
            self._pending.put(None)
        for thread in self._threads:
            thread.join()
        self._threads.clear()
