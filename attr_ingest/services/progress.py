from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Per-file progress bar for batch runs (tqdm, TTY only).

The bar advances once per export file and carries running ok/failed/products
counters in its postfix. Without a TTY (CI, pipes) no bar is created, the
counters are still kept.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    def __init__(self, total_files: int, *, description: str = "Analyzing exports") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.ok = 0
        self.failed = 0
        self.products = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool, products: int = 0) -> None:
        """Count one finished file; ``products`` are exported rows of a successful file."""
        if success:
            self.ok += 1
            self.products += products
        else:
            self.failed += 1
        if self.pbar is not None:
            self.pbar.set_postfix(ok=self.ok, failed=self.failed, products=self.products)
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
