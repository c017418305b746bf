"""Tests for the per-file processing pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from csv_watcher.decoder import detect_file
from csv_watcher.errors import (
    BackupError,
    DeleteError,
    EmptyFileError,
    ParseError,
    PipelineError,
    ReadError,
)
from csv_watcher.fileops import FileOps
from csv_watcher.models import WatchSession
from csv_watcher.pipeline import ProcessingPipeline
from csv_watcher.policy import WorkflowPolicy


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("test-pipeline")


@pytest.fixture
def pipeline(logger: logging.Logger) -> ProcessingPipeline:
    """Create a pipeline over real file operations."""
    return ProcessingPipeline(FileOps(logger), logger)


@pytest.fixture
def folders(tmp_path: Path) -> tuple[Path, Path]:
    target = tmp_path / "inbox"
    backup = tmp_path / "backup"
    target.mkdir()
    return target, backup


def write_csv(folder: Path, name: str, text: str = "name,age\nalice,30\n") -> Path:
    path = folder / name
    path.write_text(text)
    return path


class TestRunSteps:
    """Tests for the synchronous workflow steps."""

    def test_backs_up_and_deletes(
        self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]
    ) -> None:
        """Test the full read, backup and delete sequence."""
        target, backup = folders
        path = write_csv(target, "people.csv")

        result = pipeline.run_steps(path, backup, WorkflowPolicy())

        assert result.file_name == "people.csv"
        assert result.headers == ["name", "age"]
        assert result.row_count == 1
        assert result.deleted
        assert not path.exists()
        assert result.backup_path is not None
        assert result.backup_path.parent == backup
        assert result.backup_path.read_text() == "name,age\nalice,30\n"

    def test_backup_disabled(self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]) -> None:
        target, backup = folders
        path = write_csv(target, "people.csv")

        result = pipeline.run_steps(path, backup, WorkflowPolicy(enable_backup=False))

        assert result.backup_path is None
        assert not backup.exists()
        assert not path.exists()

    def test_cleanup_disabled(self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]) -> None:
        """Test that the source stays in place when cleanup is off."""
        target, backup = folders
        path = write_csv(target, "people.csv")

        result = pipeline.run_steps(path, backup, WorkflowPolicy(enable_cleanup=False))

        assert not result.deleted
        assert path.exists()
        assert len(list(backup.iterdir())) == 1

    def test_missing_file_is_read_error(
        self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]
    ) -> None:
        target, backup = folders
        with pytest.raises(ReadError) as exc_info:
            pipeline.run_steps(target / "gone.csv", backup, WorkflowPolicy())
        assert exc_info.value.step == "read"
        assert exc_info.value.file_name == "gone.csv"

    def test_empty_file_is_not_backed_up(
        self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]
    ) -> None:
        """Test that a header-only file stops the workflow before any side effect."""
        target, backup = folders
        path = write_csv(target, "empty.csv", "name,age\n")

        with pytest.raises(EmptyFileError):
            pipeline.run_steps(path, backup, WorkflowPolicy())

        assert path.exists()
        assert not backup.exists()

    def test_malformed_file_is_parse_error(
        self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]
    ) -> None:
        target, backup = folders
        path = write_csv(target, "broken.csv", 'a,b\n1,"2\n')

        with pytest.raises(ParseError):
            pipeline.run_steps(path, backup, WorkflowPolicy())

        assert path.exists()

    def test_backup_failure_keeps_source(
        self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]
    ) -> None:
        target, backup = folders
        path = write_csv(target, "people.csv")

        with patch.object(pipeline.file_ops, "copy_to_backup", side_effect=OSError("disk full")):
            with pytest.raises(BackupError, match="disk full"):
                pipeline.run_steps(path, backup, WorkflowPolicy())

        assert path.exists()

    def test_delete_failure(self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]) -> None:
        """Test that a failed delete is reported after the backup was written."""
        target, backup = folders
        path = write_csv(target, "people.csv")

        with patch.object(pipeline.file_ops, "delete_file", side_effect=PermissionError("locked")):
            with pytest.raises(DeleteError) as exc_info:
                pipeline.run_steps(path, backup, WorkflowPolicy())

        assert str(exc_info.value) == "delete failed for people.csv: locked"
        assert len(list(backup.iterdir())) == 1


class TestProcess:
    """Tests for session accounting around a run."""

    @pytest.fixture
    def session(self, folders: tuple[Path, Path]) -> WatchSession:
        target, backup = folders
        return WatchSession(target_dir=target, backup_dir=backup, is_active=True)

    @pytest.mark.asyncio
    async def test_success_updates_session(
        self, pipeline: ProcessingPipeline, session: WatchSession
    ) -> None:
        path = write_csv(session.target_dir, "people.csv")
        session.track(detect_file(path))

        result = await pipeline.process(path, session, WorkflowPolicy())

        assert result.deleted
        assert session.processed_count == 1
        assert session.failed_count == 0
        assert "people.csv" not in session.detected_files

    @pytest.mark.asyncio
    async def test_kept_file_stays_tracked(
        self, pipeline: ProcessingPipeline, session: WatchSession
    ) -> None:
        path = write_csv(session.target_dir, "people.csv")
        session.track(detect_file(path))

        await pipeline.process(path, session, WorkflowPolicy(enable_cleanup=False))

        assert session.processed_count == 1
        assert "people.csv" in session.detected_files

    @pytest.mark.asyncio
    async def test_failure_updates_session(
        self, pipeline: ProcessingPipeline, session: WatchSession
    ) -> None:
        """Test that a failed run is counted and re-raised."""
        path = write_csv(session.target_dir, "empty.csv", "a,b\n")
        session.track(detect_file(path))

        with pytest.raises(PipelineError):
            await pipeline.process(path, session, WorkflowPolicy())

        assert session.failed_count == 1
        assert session.processed_count == 0
        assert "empty.csv" in session.detected_files


class TestProcessAll:
    """Tests for bulk processing."""

    def test_processes_every_file(
        self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]
    ) -> None:
        target, backup = folders
        write_csv(target, "a.csv")
        write_csv(target, "b.csv")
        write_csv(target, "bad.csv", "a,b\n")
        (target / "notes.txt").write_text("skip me")

        result = pipeline.process_all(target, backup)

        assert result.total_files == 3
        assert result.processed == ["a.csv", "b.csv"]
        assert result.failed == ["bad.csv"]
        assert sorted(p.name for p in target.iterdir()) == ["bad.csv", "notes.txt"]
        assert len(list(backup.iterdir())) == 2

    def test_empty_folder(self, pipeline: ProcessingPipeline, folders: tuple[Path, Path]) -> None:
        target, backup = folders
        assert pipeline.process_all(target, backup).to_dict() == {
            "totalFiles": 0,
            "processed": [],
            "failed": [],
        }
