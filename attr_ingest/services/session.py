from __future__ import annotations

import itertools
import logging
import threading

from ..excel.reader import decode_upload
from ..models.config_models import IngestConfig
from .pipeline import PipelineOutput, run_pipeline
from .reconcile import KeyCatalog

"""Last-writer-wins holder for interactive analysis runs.

Each ``begin()`` hands out a new run token. A result published with a token
that is no longer the latest is dropped, so a slow earlier run can never
overwrite the result of a newer one. Runs are not interrupted, only ignored.
"""

__all__ = [
    "AnalysisSession",
]

logger = logging.getLogger(__name__)


class AnalysisSession:
    def __init__(self, config: IngestConfig | None = None, catalog: KeyCatalog | None = None) -> None:
        self.config = config or IngestConfig()
        self.catalog = catalog
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._latest = 0
        self._current: PipelineOutput | None = None

    def begin(self) -> int:
        with self._lock:
            self._latest = next(self._tokens)
            return self._latest

    def publish(self, token: int, output: PipelineOutput) -> bool:
        """Store ``output`` if ``token`` is still the latest run."""
        with self._lock:
            if token != self._latest:
                logger.debug("session: dropping stale result token=%d latest=%d", token, self._latest)
                return False
            self._current = output
            return True

    @property
    def current(self) -> PipelineOutput | None:
        with self._lock:
            return self._current

    def reset(self) -> None:
        with self._lock:
            self._latest = next(self._tokens)
            self._current = None

    def run(self, data: bytes, filename: str) -> PipelineOutput | None:
        """Decode, analyze and reconcile one upload.

        Returns the output, or None when a newer run started meanwhile.
        """
        token = self.begin()
        upload = decode_upload(data, filename)
        output = run_pipeline(upload, filename, self.config, self.catalog)
        return output if self.publish(token, output) else None
