"""Folder watch engine: keeps the session in sync with the target folder."""

from __future__ import annotations

import asyncio
import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .decoder import detect_file
from .errors import AlreadyWatchingError, NotFoundError, PipelineError
from .fileops import FileOps
from .models import DetectedFile, WatchSession, WatchStatus
from .pipeline import BulkResult, ProcessingPipeline
from .policy import PolicyStore, WorkflowPolicy
from .throttle import ThrottledLogger
from .watcher import EventKind, FileEvent, FolderWatcher

if TYPE_CHECKING:
    from .config import WatcherConfig


class WatchEngine:
    """Owns the single watch session and drives the processing pipeline.

    Two producers feed one event queue: the native file watch and the
    reconciliation poll. A single consumer applies the events to the
    session, so deduplication by file name happens in one place. Each file
    name has at most one pending or running pipeline task.
    """

    def __init__(
        self,
        config: WatcherConfig,
        logger: logging.Logger,
        file_ops: FileOps | None = None,
        pipeline: ProcessingPipeline | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Watcher configuration.
            logger: Logger instance.
            file_ops: File operations; created from the logger if None.
            pipeline: Processing pipeline; created from ``file_ops`` if None.

        """
        self.config = config
        self.logger = logger
        self.file_ops = file_ops or FileOps(logger)
        self.pipeline = pipeline or ProcessingPipeline(self.file_ops, logger)

        initial = config.initial_policy()
        self.session = WatchSession(
            target_dir=config.target_dir,
            backup_dir=config.backup_dir,
            auto_processing=initial.auto_processing,
        )
        self.policy = PolicyStore(initial, on_change=self._on_policy_change)

        self._empty_log = ThrottledLogger(logger, config.empty_log_interval)
        self._watcher: FolderWatcher | None = None
        self._events: asyncio.Queue[FileEvent] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._poller: asyncio.Task[None] | None = None
        self._scheduled: dict[str, asyncio.Task[None]] = {}
        # Names whose run has left its delay and is touching the file
        self._running: set[str] = set()

    # Lifecycle

    async def start(self) -> WatchStatus:
        """Start a new watch session.

        Creates both folders, scans existing files, then installs the file
        watch and the reconciliation poll.

        Returns:
            Status of the new session.

        Raises:
            AlreadyWatchingError: If a session is already active.
            OSError: If a folder cannot be created.

        """
        if self.session.is_active:
            raise AlreadyWatchingError(str(self.session.target_dir))

        target_dir = self.config.target_dir
        backup_dir = self.config.backup_dir
        self.file_ops.ensure_folder(target_dir)
        self.file_ops.ensure_folder(backup_dir)

        self.session = WatchSession(
            target_dir=target_dir,
            backup_dir=backup_dir,
            is_active=True,
            auto_processing=self.policy.get().auto_processing,
        )
        self._events = asyncio.Queue()
        self._empty_log.reset()

        await self._initial_scan()

        self._watcher = FolderWatcher(target_dir, self._enqueue, self.logger)
        self._watcher.start(asyncio.get_running_loop())
        self._consumer = asyncio.create_task(self._consume(), name="csv-watcher-events")
        self._poller = asyncio.create_task(self._poll_loop(), name="csv-watcher-poll")

        self.logger.info("Started watching %s (backups in %s)", target_dir, backup_dir)
        return self.status()

    async def stop(self) -> WatchStatus:
        """Stop the session; runs already working on a file are awaited.

        Returns:
            Status of the (now inactive) session.

        """
        if not self.session.is_active:
            return self.status()

        self.session.is_active = False
        self.session.touch()

        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

        tasks = [task for task in (self._poller, self._consumer) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._cancel_scheduled()

        self._poller = None
        self._consumer = None
        self._events = None
        self.logger.info(
            "Stopped watching %s. Stats: processed=%d, failed=%d",
            self.session.target_dir,
            self.session.processed_count,
            self.session.failed_count,
        )
        return self.status()

    async def join(self) -> None:
        """Wait until queued events and scheduled pipeline runs are done."""
        while True:
            if self._events is not None:
                await self._events.join()
            if not self._scheduled:
                return
            await asyncio.gather(*list(self._scheduled.values()), return_exceptions=True)

    # Queries and control

    def status(self) -> WatchStatus:
        """Return a snapshot of the session."""
        return self.session.snapshot()

    def get_file_details(self, file_name: str) -> DetectedFile:
        """Return a copy of the tracked entry for ``file_name``.

        Raises:
            NotFoundError: If the file is not tracked.

        """
        try:
            return copy.deepcopy(self.session.detected_files[file_name])
        except KeyError:
            raise NotFoundError(file_name) from None

    def reset_counters(self) -> None:
        self.session.reset_counters()
        self.logger.info("Processing counters reset")

    async def process_all_now(self) -> BulkResult:
        """Back up and delete every eligible file right away.

        Scheduled runs still waiting out their delay are cancelled and runs
        already working on a file are awaited first; processed files are
        dropped from the session.

        Returns:
            Names of processed and failed files.

        """
        await self._cancel_scheduled()

        result = await asyncio.to_thread(
            self.pipeline.process_all,
            self.session.target_dir,
            self.session.backup_dir,
        )
        for name in result.processed:
            self.session.forget(name)
        return result

    def _on_policy_change(self, policy: WorkflowPolicy) -> None:
        self.session.auto_processing = policy.auto_processing
        self.session.touch()
        self.logger.info("Workflow config updated: %s", policy)

    # Discovery

    async def _initial_scan(self) -> None:
        """Track files already in the folder and stagger their processing."""
        session = self.session
        files = await asyncio.to_thread(self.file_ops.list_csv_files, session.target_dir)
        auto = self.policy.get().auto_processing

        for index, info in enumerate(files):
            if (detected := await self._detect(info.path)) is None:
                continue
            session.track(detected)
            if auto:
                delay = self.config.initial_delay + index * self.config.stagger_step
                self._schedule(info.path, delay)

        session.is_paused = not files
        session.touch()
        self.logger.info("Initial scan found %d CSV files in %s", len(files), session.target_dir)

    async def _detect(self, path: Path) -> DetectedFile | None:
        try:
            detected = await asyncio.to_thread(detect_file, path)
        except OSError as e:
            self.logger.warning("Cannot inspect %s: %s", path.name, e)
            return None
        if detected.parse_error:
            self.logger.warning("Parse problem in %s: %s", path.name, detected.parse_error)
        return detected

    def _enqueue(self, event: FileEvent) -> None:
        if self._events is None or not self.session.is_active:
            return
        self._events.put_nowait(event)

    async def _consume(self) -> None:
        """Apply queued events to the session, one at a time."""
        events = self._events
        assert events is not None
        while True:
            event = await events.get()
            try:
                await self._handle_event(event)
            finally:
                events.task_done()

    async def _handle_event(self, event: FileEvent) -> None:
        session = self.session
        if not session.is_active:
            return

        name = event.path.name

        if event.kind is EventKind.REMOVE:
            if session.forget(name):
                self.logger.info("File removed: %s", name)
            return

        if event.kind is EventKind.CHANGE:
            if name not in session.detected_files:
                return
            if (detected := await self._detect(event.path)) is not None:
                session.track(detected)
                self.logger.info("File changed: %s", name)
            return

        if name in session.detected_files or name in self._scheduled:
            self.logger.debug("Already tracked, ignoring %s from %s", name, event.source)
            return

        if (detected := await self._detect(event.path)) is None:
            return
        session.track(detected)
        self.logger.info("New CSV file detected via %s: %s", event.source, name)

        policy = self.policy.get()
        if policy.auto_processing:
            self._schedule(event.path, policy.process_delay_seconds)

    async def _poll_loop(self) -> None:
        """Reconcile with the folder on a fixed interval."""
        while True:
            await asyncio.sleep(self.config.poll_interval)
            if not self.session.is_active:
                return
            if not self.policy.get().auto_processing:
                continue
            try:
                await self.poll_once()
            except OSError as e:
                self.logger.error("Poll of %s failed: %s", self.session.target_dir, e)

    async def poll_once(self) -> None:
        """Run one reconciliation cycle.

        An empty folder clears the detected files and pauses the session;
        files the watch missed are queued as arrivals.
        """
        session = self.session
        files = await asyncio.to_thread(self.file_ops.list_csv_files, session.target_dir)
        if not session.is_active:
            return

        if not files:
            session.detected_files.clear()
            session.is_paused = True
            session.touch()
            self._empty_log.info("No CSV files in %s, auto-processing paused", session.target_dir)
            return

        if session.is_paused:
            session.is_paused = False
            session.touch()
            self._empty_log.reset()
            self.logger.info("CSV files found, auto-processing resumed")

        present = {info.name for info in files}
        for name in [n for n in session.detected_files if n not in present]:
            session.forget(name)
            self.logger.info("File no longer present: %s", name)

        for info in files:
            if info.name not in session.detected_files and info.name not in self._scheduled:
                self._enqueue(FileEvent(EventKind.ADD, info.path, source="poll"))

    # Scheduling

    def _schedule(self, path: Path, delay: float) -> bool:
        """Schedule a pipeline run for ``path`` after ``delay`` seconds.

        Returns:
            False if a run for the same file name is already pending.

        """
        name = path.name
        if name in self._scheduled:
            return False
        self._scheduled[name] = asyncio.create_task(
            self._run_scheduled(path, delay),
            name=f"csv-watcher-process:{name}",
        )
        self.logger.info("Scheduled %s for processing in %.1fs", name, delay)
        return True

    async def _run_scheduled(self, path: Path, delay: float) -> None:
        name = path.name
        try:
            await asyncio.sleep(delay)
            self._running.add(name)
            try:
                await self.pipeline.process(path, self.session, self.policy.get())
            except PipelineError as e:
                self.logger.error("Failed to process %s: %s", name, e)
        finally:
            self._running.discard(name)
            if self._scheduled.get(name) is asyncio.current_task():
                del self._scheduled[name]

    async def _cancel_scheduled(self) -> None:
        """Cancel runs still in their delay and wait for runs already under way.

        A run inside the worker thread cannot be interrupted, so it is left
        to finish and account for its file.
        """
        tasks = list(self._scheduled.values())
        for name, task in self._scheduled.items():
            if name not in self._running:
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
