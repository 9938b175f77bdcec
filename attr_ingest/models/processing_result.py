from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for batch runs.

FileStat holds per-file numbers, ProcessingResult the aggregate used for the
SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success/failed
    products: int  # 出力行数 (pivoted products or generic rows)
    discarded_rows: int
    elapsed_seconds: float
    matched_keys: int = 0
    unmatched_keys: int = 0
    reconciled: bool = False
    export_path: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of one batch run."""
    success_files: int
    failed_files: int
    total_products: int
    total_discarded_rows: int
    total_matched_keys: int
    total_unmatched_keys: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None
