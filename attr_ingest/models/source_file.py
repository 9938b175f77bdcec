from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .analysis_result import AnalysisResult
from .match_result import ReconciliationOutcome

"""SourceFile domain model and FileStatus enum.

A SourceFile is the processing context of one uploaded export inside a batch
run, from discovery to success/failed.
"""


class FileStatus(Enum):
    """Lifecycle: pending → processing → (success | failed)."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceFile:
    """Processing context for a single export file."""
    path: Path
    name: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    analysis: AnalysisResult | None = None
    reconciliation: ReconciliationOutcome | None = None
    export_path: Path | None = None
    exported_rows: int = 0
    error: str | None = None
