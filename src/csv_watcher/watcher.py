"""Native file system watch on the target folder using watchdog."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .fileops import is_candidate, is_eligible

if TYPE_CHECKING:
    from watchdog.events import FileSystemEvent


class EventKind(Enum):
    """Kinds of file arrival signals."""

    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"


@dataclass(frozen=True)
class FileEvent:
    """A signal about one CSV path, from the watch or from the poll."""

    kind: EventKind
    path: Path
    source: str = "watch"


def _to_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw))


class CsvEventHandler(FileSystemEventHandler):
    """Turns watchdog events on the target folder into ``FileEvent``s."""

    def __init__(
        self,
        root: Path,
        callback: Callable[[FileEvent], None],
        logger: logging.Logger,
    ) -> None:
        """Initialize the event handler.

        Args:
            root: Watched folder.
            callback: Receives every relevant event.
            logger: Logger instance.

        """
        super().__init__()
        self.root = root
        self.callback = callback
        self.logger = logger

    def on_created(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileCreatedEvent) and not event.is_directory:
            self._emit_if(EventKind.ADD, _to_path(event.src_path), is_eligible)

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileModifiedEvent) and not event.is_directory:
            self._emit_if(EventKind.CHANGE, _to_path(event.src_path), is_eligible)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if isinstance(event, FileDeletedEvent) and not event.is_directory:
            self._emit_if(EventKind.REMOVE, _to_path(event.src_path), is_candidate)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle renames as a removal of the source plus an arrival of the destination."""
        if isinstance(event, FileMovedEvent) and not event.is_directory:
            self._emit_if(EventKind.REMOVE, _to_path(event.src_path), is_candidate)
            self._emit_if(EventKind.ADD, _to_path(event.dest_path), is_eligible)

    def _emit_if(
        self,
        kind: EventKind,
        path: Path,
        check: Callable[[Path, Path | None], bool],
    ) -> None:
        if not check(path, self.root):
            return
        self.logger.debug("File %s: %s", kind.value, path.name)
        self.callback(FileEvent(kind, path))


class FolderWatcher:
    """Watches the target folder and forwards events to the event loop."""

    def __init__(
        self,
        target_dir: Path,
        callback: Callable[[FileEvent], None],
        logger: logging.Logger,
    ) -> None:
        """Initialize the folder watcher.

        Args:
            target_dir: Folder to watch (not recursive).
            callback: Called on the event loop thread for every event.
            logger: Logger instance.

        """
        self.target_dir = target_dir
        self.callback = callback
        self.logger = logger
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._running = False

    def _dispatch(self, event: FileEvent) -> None:
        """Hand an event from the observer thread over to the event loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.callback, event)
        except RuntimeError as e:
            self.logger.warning("Dropping %s event for %s: %s", event.kind.value, event.path.name, e)

    def start(self, loop: asyncio.AbstractEventLoop) -> bool:
        """Start the observer.

        Failures are logged and leave the watcher stopped.

        Args:
            loop: Event loop that receives the callbacks.

        Returns:
            True if the native watch is running.

        """
        if self._observer is not None:
            return self._running

        self._loop = loop
        self._observer = Observer()
        handler = CsvEventHandler(self.target_dir, self._dispatch, self.logger)

        try:
            self._observer.schedule(handler, str(self.target_dir), recursive=False)
            self._observer.start()
        except OSError as e:
            self.logger.error("File watch unavailable for %s: %s", self.target_dir, e)
            self._observer = None
            self._running = False
            return False

        self._running = True
        self.logger.info("Watching directory: %s", self.target_dir)
        return True

    def stop(self) -> None:
        """Stop the observer; no callbacks are delivered afterwards."""
        observer = self._observer
        self._observer = None
        self._loop = None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            self._running = False
            self.logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        """Check if watcher is running."""
        return self._running
