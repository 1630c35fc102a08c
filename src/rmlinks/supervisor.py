"""Supervisor: runs the traversal, watches the target's link count and reports."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import ExitStatus, ReStatError
from .output import OutputSink
from .state import RunState
from .strategy import InlineStrategy, WorkerPool
from .walker import DirectoryWalker, WorkItem
from .watcher import TargetWatcher

if TYPE_CHECKING:
    from .config import RmlinksConfig, RunConfig
    from .strategy import ExecutionStrategy


class RunPhase(Enum):
    """Run-level state; transitions only move forward."""

    INIT = "init"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass(frozen=True)
class Report:
    """Outcome of a completed run."""

    removed: int
    eligible: int
    final_link_count: int
    exit_status: ExitStatus


class Supervisor:
    """Orchestrates one run: start the walk, poll the target, drain, report."""

    def __init__(
        self,
        run_config: RunConfig,
        settings: RmlinksConfig,
        sink: OutputSink | None = None,
        logger: logging.Logger | None = None,
        strategy: ExecutionStrategy | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            run_config: Resolved search root, target and flags.
            settings: Tunables (poll interval, workers, watcher).
            sink: Output for progress, error and summary lines.
            logger: Logger instance.
            strategy: Execution strategy. Chosen from ``settings.workers`` if None.

        """
        self.run_config = run_config
        self.settings = settings
        self.sink = sink or OutputSink()
        self.logger = logger or logging.getLogger("rmlinks")
        self.state = RunState()
        self.strategy = strategy or self._make_strategy()
        self.walker = DirectoryWalker(
            run_config.target,
            self.state,
            self.sink,
            self.strategy.submit,
            recursive=run_config.recursive,
            softlinks=run_config.softlinks,
        )
        self.phase = RunPhase.INIT
        self._wake: asyncio.Event | None = None

    def _make_strategy(self) -> ExecutionStrategy:
        workers = self.settings.effective_workers
        if workers == 1:
            return InlineStrategy(self.state.registry)
        return WorkerPool(self.state.registry, workers)

    def _set_phase(self, phase: RunPhase) -> None:
        self.logger.debug("Run phase: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def _restat(self) -> int:
        """Re-inspect the target's link count.

        Raises:
            ReStatError: If the target can no longer be inspected.

        """
        path = self.run_config.target.canonical_path
        try:
            return path.stat().st_nlink
        except OSError as e:
            raise ReStatError(
                f"rmlinks: could not re-stat the original search file {path} ({e.strerror or e})."
            ) from e

    async def _sleep(self) -> None:
        """Wait one poll interval, or less if the watcher saw the target change."""
        assert self._wake is not None
        with contextlib.suppress(TimeoutError):
            async with asyncio.timeout(self.settings.poll_interval):
                await self._wake.wait()
        self._wake.clear()

    def _start_watcher(self) -> TargetWatcher | None:
        if not self.settings.watch_target:
            return None

        loop = asyncio.get_running_loop()
        wake = self._wake
        assert wake is not None
        watcher = TargetWatcher(
            self.run_config.target.canonical_path,
            lambda: loop.call_soon_threadsafe(wake.set),
            self.logger,
        )
        return watcher if watcher.start() else None

    async def _supervise(self) -> None:
        token = self.state.token
        registry = self.state.registry

        while True:
            if not token.is_stop_requested():
                if self._restat() == 1:
                    self.logger.debug("Only the target remains, requesting stop")
                    token.request_stop()
            if token.is_stop_requested() and self.phase is RunPhase.RUNNING:
                self._set_phase(RunPhase.DRAINING)

            await self._sleep()
            if registry.current_count() == 0:
                break

    async def run(self) -> Report:
        """Run the search to completion.

        Returns:
            Final report. The summary line has already been printed.

        Raises:
            RootTraversalError: If the search root could not be listed.
            ReStatError: If the target could not be re-inspected.
            WorkerStartError: If no traversal task could be started.

        """
        self._wake = asyncio.Event()
        root = WorkItem(self.run_config.search_root, is_root=True)
        self.logger.debug(
            "Searching %s for links to %s (recursive=%s, softlinks=%s)",
            root.path,
            self.run_config.target,
            self.run_config.recursive,
            self.run_config.softlinks,
        )

        self.strategy.start(self.walker, root)
        self._set_phase(RunPhase.RUNNING)
        watcher = self._start_watcher()

        try:
            await self._supervise()
        finally:
            # Stop any remaining tasks before releasing their threads
            if self.state.registry.current_count():
                self.state.token.request_stop()
            await asyncio.to_thread(self.strategy.close)
            if watcher is not None:
                watcher.stop()
            self._set_phase(RunPhase.DONE)

        if self.state.failure is not None:
            raise self.state.failure

        final_link_count = self._restat()
        eligible = self.run_config.initial_link_count - 1
        removed = eligible - (final_link_count - 1)
        exit_status = ExitStatus.SUCCESS if final_link_count == 1 else ExitStatus.FATAL

        self.sink.summary(removed, eligible)
        self.logger.debug(
            "Run finished: removed=%d eligible=%d remaining=%d errors=%d",
            removed,
            eligible,
            final_link_count - 1,
            self.sink.errors,
        )

        return Report(
            removed=removed,
            eligible=eligible,
            final_link_count=final_link_count,
            exit_status=exit_status,
        )
