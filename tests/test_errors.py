"""Tests for the error taxonomy."""

from __future__ import annotations

import pytest

from csv_watcher.errors import (
    AlreadyWatchingError,
    BackupError,
    CsvWatcherError,
    DeleteError,
    EmptyFileError,
    NotFoundError,
    ParseError,
    PipelineError,
    ReadError,
)


@pytest.mark.parametrize(
    "error_class,step",
    [
        (ReadError, "read"),
        (ParseError, "parse"),
        (EmptyFileError, "parse"),
        (BackupError, "backup"),
        (DeleteError, "delete"),
    ],
)
def test_pipeline_errors_name_their_step(error_class: type[PipelineError], step: str) -> None:
    error = error_class("a.csv", "boom")

    assert isinstance(error, PipelineError)
    assert isinstance(error, CsvWatcherError)
    assert error.step == step
    assert error.file_name == "a.csv"
    assert error.reason == "boom"
    assert str(error) == f"{step} failed for a.csv: boom"


def test_not_found_message() -> None:
    error = NotFoundError("missing.csv")
    assert str(error) == "File not found: missing.csv"
    assert error.file_name == "missing.csv"


def test_already_watching_is_not_a_pipeline_error() -> None:
    error = AlreadyWatchingError("/tmp/inbox")
    assert not isinstance(error, PipelineError)
    assert "/tmp/inbox" in str(error)
