from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from attr_ingest.models.processing_result import ProcessingResult
from attr_ingest.services.progress import ProgressTracker, is_tty_enabled
from attr_ingest.services.summary import _format_seconds, render_summary_line


def _result(**overrides) -> ProcessingResult:
    now = datetime.now(UTC)
    values = dict(
        success_files=2,
        failed_files=1,
        total_products=6,
        total_discarded_rows=1,
        total_matched_keys=3,
        total_unmatched_keys=2,
        start_time=now,
        end_time=now,
        elapsed_seconds=1.234,
    )
    values.update(overrides)
    return ProcessingResult(**values)


@pytest.mark.parametrize(
    "value,expected",
    [(0, "0"), (2.0, "2"), (1.234, "1.23"), (0.5, "0.5"), (0.001, "0.001")],
)
def test_format_seconds(value, expected):
    assert _format_seconds(value) == expected


def test_render_summary_line():
    line = render_summary_line(3, _result())
    assert line == (
        "SUMMARY files=3/3 success=2 failed=1 products=6 discarded_rows=1 "
        "matched=3 unmatched=2 elapsed_sec=1.23"
    )


def test_render_summary_line_partial_progress():
    line = render_summary_line(5, _result(success_files=1, failed_files=0))
    assert line.startswith("SUMMARY files=1/5 ")


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_progress_tracker_counts_without_tty():
    with patch("attr_ingest.services.progress.is_tty_enabled", return_value=False):
        tracker = ProgressTracker(3)
    assert tracker.enabled is False
    assert tracker.pbar is None
    tracker.start_file(Path("a.csv"))
    tracker.finish_file(True, products=4)
    tracker.start_file(Path("b.csv"))
    tracker.finish_file(False, products=9)
    tracker.close()
    assert tracker.current_file == 2
    assert (tracker.ok, tracker.failed, tracker.products) == (1, 1, 4)


def test_progress_tracker_tty_enabled():
    mock_pbar = Mock()
    with patch("attr_ingest.services.progress.is_tty_enabled", return_value=True), \
         patch("attr_ingest.services.progress.tqdm", return_value=mock_pbar) as mock_tqdm:
        with ProgressTracker(3, description="Files") as tracker:
            tracker.start_file(Path("loja.csv"))
            mock_pbar.set_description.assert_called_with("Files (loja.csv)")
            tracker.finish_file(True, products=2)
            mock_pbar.set_postfix.assert_called_once_with(ok=1, failed=0, products=2)
            mock_pbar.update.assert_called_once_with(1)
            mock_pbar.set_description.assert_called_with("Files")

    mock_tqdm.assert_called_once_with(
        total=3,
        desc="Files",
        unit="file",
        leave=True,
        position=0,
        ncols=80,
        ascii=True,
    )
    mock_pbar.close.assert_called_once()
    assert tracker.pbar is None
