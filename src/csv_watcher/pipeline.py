"""Per-file processing workflow: read, decode, back up, delete."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .decoder import decode_csv
from .errors import BackupError, DeleteError, PipelineError, ReadError
from .fileops import format_file_size
from .policy import WorkflowPolicy

if TYPE_CHECKING:
    from .fileops import FileOps
    from .models import CellValue, WatchSession

PREVIEW_CHARS = 200

# Bulk mode ignores the backup and cleanup switches
_BULK_POLICY = WorkflowPolicy(enable_backup=True, enable_cleanup=True)


@dataclass
class ProcessingResult:
    """Outcome of a successful pipeline run."""

    file_name: str
    path: Path
    rows: list[dict[str, CellValue]]
    headers: list[str]
    backup_path: Path | None = None
    deleted: bool = False

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass
class BulkResult:
    """Outcome of processing every file in the folder at once."""

    total_files: int = 0
    processed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "processed": list(self.processed),
            "failed": list(self.failed),
        }


class ProcessingPipeline:
    """Runs the read, backup and cleanup steps for one file."""

    def __init__(self, file_ops: FileOps, logger: logging.Logger) -> None:
        """Initialize the pipeline.

        Args:
            file_ops: File system operations.
            logger: Logger instance.

        """
        self.file_ops = file_ops
        self.logger = logger

    def run_steps(self, path: Path, backup_dir: Path, policy: WorkflowPolicy) -> ProcessingResult:
        """Execute the workflow for ``path`` without touching session state.

        Blocking; call from a worker thread when running under the event loop.

        Args:
            path: CSV file to process.
            backup_dir: Folder receiving the backup copy.
            policy: Switches for the backup and cleanup steps.

        Returns:
            Result of the run.

        Raises:
            ReadError: If the file cannot be read.
            ParseError: If the decoder rejects a row.
            EmptyFileError: If the file has no data rows.
            BackupError: If the backup copy fails.
            DeleteError: If the source file cannot be deleted.

        """
        name = path.name

        # 1. Read and decode
        try:
            info = self.file_ops.get_file_info(path)
            text = self.file_ops.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(name, str(e)) from e

        self.logger.debug(
            "File: %s | Size: %s | Modified: %s",
            name,
            format_file_size(info.size),
            info.last_modified.isoformat(),
        )
        preview = text[:PREVIEW_CHARS] + ("..." if len(text) > PREVIEW_CHARS else "")
        self.logger.debug("Content preview: %s", preview)

        decoded = decode_csv(text, name)
        self.logger.info(
            "Parsed %s: %d rows, columns: %s",
            name,
            decoded.row_count,
            ", ".join(decoded.headers),
        )
        result = ProcessingResult(
            file_name=name,
            path=path,
            rows=decoded.rows,
            headers=decoded.headers,
        )

        # 2. Backup
        if policy.enable_backup:
            try:
                result.backup_path = self.file_ops.copy_to_backup(path, backup_dir)
            except OSError as e:
                raise BackupError(name, str(e)) from e

        # 3. Cleanup
        if policy.enable_cleanup:
            try:
                self.file_ops.delete_file(path)
            except OSError as e:
                raise DeleteError(name, str(e)) from e
            result.deleted = True

        return result

    async def process(
        self,
        path: Path,
        session: WatchSession,
        policy: WorkflowPolicy,
    ) -> ProcessingResult:
        """Run the workflow for ``path`` and account for it on ``session``.

        Args:
            path: CSV file to process.
            session: Session whose counters and detected files are updated.
            policy: Policy in effect for this run.

        Returns:
            Result of the run.

        Raises:
            PipelineError: After ``failed_count`` was incremented.

        """
        try:
            result = await asyncio.to_thread(self.run_steps, path, session.backup_dir, policy)
        except PipelineError:
            session.record_failure()
            raise

        if result.deleted:
            session.forget_path(path)
        session.record_success()
        self.logger.info("Successfully processed: %s", result.file_name)
        return result

    def process_all(self, target_dir: Path, backup_dir: Path) -> BulkResult:
        """Back up and delete every eligible file in ``target_dir``.

        Args:
            target_dir: Folder to drain.
            backup_dir: Folder receiving backup copies.

        Returns:
            Names of processed and failed files.

        """
        files = self.file_ops.list_csv_files(target_dir)
        result = BulkResult(total_files=len(files))
        self.logger.info("Found %d CSV files to process in %s", len(files), target_dir)

        for info in files:
            try:
                self.run_steps(info.path, backup_dir, _BULK_POLICY)
            except PipelineError as e:
                self.logger.error("Failed to process %s: %s", info.name, e)
                result.failed.append(info.name)
                continue
            result.processed.append(info.name)

        self.logger.info(
            "Processing summary: total=%d, processed=%d, failed=%d",
            result.total_files,
            len(result.processed),
            len(result.failed),
        )
        return result
