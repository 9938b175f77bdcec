from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY files={done}/{total} success={success} failed={failed} products={n}
    discarded_rows={n} matched={n} unmatched={n} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_products=120,
        ...     total_discarded_rows=3, total_matched_keys=100, total_unmatched_keys=20,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 products=120 discarded_rows=3 matched=100 unmatched=20 elapsed_sec=2'
    """
    done = result.success_files + result.failed_files
    return (
        f"SUMMARY files={done}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"products={result.total_products} "
        f"discarded_rows={result.total_discarded_rows} "
        f"matched={result.total_matched_keys} "
        f"unmatched={result.total_unmatched_keys} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
