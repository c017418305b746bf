"""Watch session state and the status snapshot handed to callers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

CellValue = str


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class DetectedFile:
    """A CSV file known to the session, as seen at detection time."""

    file_name: str
    file_path: Path
    size: int
    last_modified: datetime
    parsed_rows: list[dict[str, CellValue]] | None = None
    headers: list[str] | None = None
    parse_error: str | None = None

    @property
    def row_count(self) -> int:
        return len(self.parsed_rows) if self.parsed_rows is not None else 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "fileName": self.file_name,
            "filePath": str(self.file_path),
            "size": self.size,
            "lastModified": self.last_modified.isoformat(),
        }
        if self.parsed_rows is not None:
            data["data"] = self.parsed_rows
        if self.headers is not None:
            data["headers"] = self.headers
        if self.parse_error is not None:
            data["error"] = self.parse_error
        return data


@dataclass(frozen=True)
class WatchStatus:
    """Immutable snapshot of a watch session."""

    is_watching: bool
    folder_path: Path
    backup_folder_path: Path
    files_detected: tuple[DetectedFile, ...]
    last_update: datetime
    auto_processing: bool
    processed_count: int
    failed_count: int
    is_paused: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "isWatching": self.is_watching,
            "folderPath": str(self.folder_path),
            "backupFolderPath": str(self.backup_folder_path),
            "filesDetected": [f.to_dict() for f in self.files_detected],
            "lastUpdate": self.last_update.isoformat(),
            "autoProcessing": self.auto_processing,
            "processedCount": self.processed_count,
            "failedCount": self.failed_count,
            "isPaused": self.is_paused,
        }


@dataclass
class WatchSession:
    """Mutable state of the single watch session.

    ``detected_files`` keeps discovery order; keys are file names.
    """

    target_dir: Path
    backup_dir: Path
    is_active: bool = False
    is_paused: bool = False
    auto_processing: bool = True
    detected_files: dict[str, DetectedFile] = field(default_factory=dict)
    processed_count: int = 0
    failed_count: int = 0
    last_update: datetime = field(default_factory=_now)

    def touch(self) -> None:
        self.last_update = _now()

    def track(self, detected: DetectedFile) -> None:
        """Add or replace an entry; a replaced entry keeps its position."""
        self.detected_files[detected.file_name] = detected
        self.touch()

    def forget(self, file_name: str) -> bool:
        if self.detected_files.pop(file_name, None) is None:
            return False
        self.touch()
        return True

    def forget_path(self, path: Path) -> bool:
        """Remove the entry whose path matches ``path``."""
        for name, detected in list(self.detected_files.items()):
            if detected.file_path == path:
                return self.forget(name)
        return False

    def record_success(self) -> None:
        self.processed_count += 1
        self.touch()

    def record_failure(self) -> None:
        self.failed_count += 1
        self.touch()

    def reset_counters(self) -> None:
        self.processed_count = 0
        self.failed_count = 0
        self.touch()

    def snapshot(self) -> WatchStatus:
        """Return a deep copy that later mutations cannot reach."""
        return WatchStatus(
            is_watching=self.is_active,
            folder_path=self.target_dir,
            backup_folder_path=self.backup_dir,
            files_detected=tuple(copy.deepcopy(list(self.detected_files.values()))),
            last_update=self.last_update,
            auto_processing=self.auto_processing,
            processed_count=self.processed_count,
            failed_count=self.failed_count,
            is_paused=self.is_paused,
        )
