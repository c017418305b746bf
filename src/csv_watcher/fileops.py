"""File system operations on the target and backup folders."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

CSV_EXTENSION = ".csv"

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a single directory entry."""

    name: str
    path: Path
    size: int
    last_modified: datetime
    is_directory: bool
    extension: str


def default_target_dir() -> Path:
    """Folder users drop CSV files into."""
    return Path.home() / "Desktop" / "simple_csv"


def default_backup_dir() -> Path:
    """Folder that receives backup copies."""
    return Path.home() / "Desktop" / "simple_csv_bk"


def is_candidate(path: Path, root: Path | None = None) -> bool:
    """Check the name-based part of eligibility.

    A candidate has a ``.csv`` extension (any case) and no dot-prefixed
    segment below ``root``. Used for paths that may no longer exist.

    Args:
        path: Path to check.
        root: Watched directory; only segments below it are inspected.

    Returns:
        True if the path looks like an eligible CSV file.

    """
    if path.suffix.lower() != CSV_EXTENSION:
        return False

    parts: tuple[str, ...] = (path.name,)
    if root is not None:
        try:
            parts = path.relative_to(root).parts
        except ValueError:
            pass

    return not any(part.startswith(".") for part in parts)


def is_eligible(path: Path, root: Path | None = None) -> bool:
    """Check that ``path`` is an existing, regular, non-hidden CSV file."""
    return is_candidate(path, root) and path.is_file()


def format_file_size(size: int) -> str:
    """Format a byte count for humans, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[index]}"


def backup_timestamp(moment: datetime | None = None) -> str:
    """ISO 8601 UTC timestamp with ``:`` and ``.`` replaced by ``-``."""
    moment = (moment or datetime.now(UTC)).astimezone(UTC)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def backup_name(file_name: str, moment: datetime | None = None) -> str:
    """Build ``<stem>_<timestamp><ext>`` for a backup copy."""
    path = Path(file_name)
    return f"{path.stem}_{backup_timestamp(moment)}{path.suffix}"


class FileOps:
    """Thin wrapper around the file system used by the pipeline.

    Methods raise ``OSError`` on failure; callers decide how to classify it.
    """

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize file operations.

        Args:
            logger: Logger instance.

        """
        self.logger = logger

    def ensure_folder(self, folder: Path) -> Path:
        """Create ``folder`` (and parents) if it does not exist."""
        if not folder.exists():
            folder.mkdir(parents=True, exist_ok=True)
            self.logger.info("Created folder: %s", folder)
        return folder

    @staticmethod
    def path_exists(path: Path) -> bool:
        try:
            return path.exists()
        except OSError:
            return False

    @staticmethod
    def get_file_info(path: Path) -> FileInfo:
        stat = path.stat()
        return FileInfo(
            name=path.name,
            path=path,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime).astimezone(),
            is_directory=path.is_dir(),
            extension=path.suffix.lower(),
        )

    def list_csv_files(self, folder: Path) -> list[FileInfo]:
        """List eligible CSV files directly inside ``folder``.

        Args:
            folder: Directory to list.

        Returns:
            File infos sorted by name; empty if the folder is missing.

        """
        if not folder.exists():
            return []

        files: list[FileInfo] = []
        for path in sorted(folder.iterdir()):
            if not is_eligible(path, folder):
                continue
            try:
                files.append(self.get_file_info(path))
            except FileNotFoundError:
                # Removed between listing and stat
                continue
        return files

    @staticmethod
    def read_text(path: Path) -> str:
        return path.read_text(encoding="utf-8-sig")

    @staticmethod
    def write_text(path: Path, content: str) -> None:
        path.write_text(content, encoding="utf-8")

    def delete_file(self, path: Path) -> None:
        path.unlink()
        self.logger.info("Deleted file: %s", path)

    def folder_size(self, folder: Path) -> int:
        """Total size in bytes of all files below ``folder``."""
        total = 0
        for entry in folder.iterdir():
            if entry.is_symlink():
                continue
            if entry.is_file():
                total += entry.stat().st_size
            elif entry.is_dir():
                total += self.folder_size(entry)
        return total

    def copy_to_backup(self, path: Path, backup_folder: Path) -> Path:
        """Copy ``path`` into ``backup_folder`` under a timestamped name.

        Args:
            path: File to back up.
            backup_folder: Destination folder, created if missing.

        Returns:
            Path of the backup copy.

        """
        self.ensure_folder(backup_folder)
        first = backup_folder / backup_name(path.name)
        backup_path = first
        counter = 1
        # Same name within the same millisecond
        while backup_path.exists():
            backup_path = first.with_name(f"{first.stem}_{counter}{first.suffix}")
            counter += 1
        shutil.copy2(path, backup_path)
        self.logger.info("Copied file to backup: %s -> %s", path.name, backup_path)
        return backup_path
