from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Row/file level error log for batch runs.

Records collected during a run are written as JSON Lines to
``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC). No file is created for a clean run.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Collects ErrorRecords in memory; ``flush`` appends them to the run's log file.

    シリアル実行前提 (スレッド安全性不要)
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir or LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._path: Path | None = None

    @property
    def file_path(self) -> Path:
        # 初回アクセス時に確定 (1 実行 1 ファイル)
        if self._path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._path = self.logs_dir / f"errors-{stamp}.log"
        return self._path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        self._records.extend(records)

    def counts_by_type(self) -> dict[str, int]:
        """Pending records per error_type, most frequent first."""
        return dict(Counter(r.error_type for r in self._records).most_common())

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write pending records; None when there was nothing to write."""
        if not self._records:
            return None
        path = self.file_path
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = "".join(r.to_json_line() + "\n" for r in self._records)
        with path.open("a", encoding="utf-8") as f:
            f.write(lines)
        self._records.clear()
        return path
