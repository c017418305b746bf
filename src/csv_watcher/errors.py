"""Error types for the CSV folder watcher.

Pipeline errors abort a single file's workflow run; they are counted and
logged by the engine and never stop the watch session.
"""

from __future__ import annotations


class CsvWatcherError(Exception):
    """Base exception for all watcher failures."""


class AlreadyWatchingError(CsvWatcherError):
    """Raised when a watch session is started while one is active."""

    def __init__(self, target_dir: str) -> None:
        self.target_dir = target_dir
        super().__init__(f"Already watching: {target_dir}")


class NotFoundError(CsvWatcherError):
    """Raised when a file name is not tracked by the session."""

    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"File not found: {file_name}")


class PipelineError(CsvWatcherError):
    """Base exception for per-file processing failures."""

    step = "process"

    def __init__(self, file_name: str, reason: str) -> None:
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"{self.step} failed for {file_name}: {reason}")


class ReadError(PipelineError):
    """The source file could not be read."""

    step = "read"


class ParseError(PipelineError):
    """The decoder reported a row-level error."""

    step = "parse"


class EmptyFileError(PipelineError):
    """The file decoded to zero data rows."""

    step = "parse"


class BackupError(PipelineError):
    """The backup copy could not be created."""

    step = "backup"


class DeleteError(PipelineError):
    """The source file could not be deleted."""

    step = "delete"
