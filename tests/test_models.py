"""Tests for session state and status snapshots."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from csv_watcher.models import DetectedFile, WatchSession


def make_detected(folder: Path, name: str, rows: int = 1) -> DetectedFile:
    return DetectedFile(
        file_name=name,
        file_path=folder / name,
        size=10,
        last_modified=datetime.now().astimezone(),
        parsed_rows=[{"a": str(i)} for i in range(rows)],
        headers=["a"],
    )


@pytest.fixture
def session(tmp_path: Path) -> WatchSession:
    return WatchSession(target_dir=tmp_path / "in", backup_dir=tmp_path / "bk", is_active=True)


class TestWatchSession:
    """Tests for WatchSession bookkeeping."""

    def test_track_replaces_in_place(self, session: WatchSession, tmp_path: Path) -> None:
        """Test that re-tracking a name keeps a single entry at its position."""
        session.track(make_detected(tmp_path, "a.csv"))
        session.track(make_detected(tmp_path, "b.csv"))
        session.track(make_detected(tmp_path, "a.csv", rows=3))

        assert list(session.detected_files) == ["a.csv", "b.csv"]
        assert session.detected_files["a.csv"].row_count == 3

    def test_forget(self, session: WatchSession, tmp_path: Path) -> None:
        session.track(make_detected(tmp_path, "a.csv"))

        assert session.forget("a.csv")
        assert not session.forget("a.csv")

    def test_forget_path(self, session: WatchSession, tmp_path: Path) -> None:
        session.track(make_detected(tmp_path, "a.csv"))

        assert not session.forget_path(tmp_path / "other" / "a.csv")
        assert session.forget_path(tmp_path / "a.csv")
        assert session.detected_files == {}

    def test_counters(self, session: WatchSession) -> None:
        session.record_success()
        session.record_success()
        session.record_failure()
        assert (session.processed_count, session.failed_count) == (2, 1)

        session.reset_counters()
        assert (session.processed_count, session.failed_count) == (0, 0)

    def test_mutations_touch_last_update(self, session: WatchSession) -> None:
        session.last_update = session.last_update - timedelta(hours=1)
        before = session.last_update

        session.record_failure()

        assert session.last_update > before


class TestWatchStatus:
    """Tests for snapshots."""

    def test_snapshot_is_detached(self, session: WatchSession, tmp_path: Path) -> None:
        session.track(make_detected(tmp_path, "a.csv"))
        status = session.snapshot()

        session.detected_files["a.csv"].parsed_rows.append({"a": "99"})
        session.record_success()

        assert status.files_detected[0].row_count == 1
        assert status.processed_count == 0

    def test_to_dict(self, session: WatchSession, tmp_path: Path) -> None:
        session.track(make_detected(tmp_path, "a.csv"))
        data = session.snapshot().to_dict()

        assert data["isWatching"] is True
        assert data["folderPath"] == str(tmp_path / "in")
        assert data["backupFolderPath"] == str(tmp_path / "bk")
        assert data["filesDetected"][0]["fileName"] == "a.csv"
        assert data["filesDetected"][0]["data"] == [{"a": "0"}]
        assert set(data) == {
            "isWatching",
            "folderPath",
            "backupFolderPath",
            "filesDetected",
            "lastUpdate",
            "autoProcessing",
            "processedCount",
            "failedCount",
            "isPaused",
        }

    def test_detected_file_error_key(self, tmp_path: Path) -> None:
        detected = DetectedFile("x.csv", tmp_path / "x.csv", 0, datetime.now().astimezone(), parse_error="bad")
        data = detected.to_dict()
        assert data["error"] == "bad"
        assert "data" not in data
        assert detected.row_count == 0
