from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from ..excel.reader import DecodedUpload
from ..models.analysis_result import AnalysisResult
from ..models.config_models import CatalogSettings, IngestConfig
from ..models.match_result import ReconciliationOutcome
from .analyzer import analyze
from .export import build_canonical_export
from .reconcile import KeyCatalog, Tier, default_tiers, reconcile

"""One full pipeline run for a decoded upload.

analyze -> (reconcile in a worker thread || build export) -> join.

Reconciliation only needs the key list, so it is started as soon as the
analysis is done and joined after the export text has been built.
"""

__all__ = [
    "PipelineOutput",
    "tiers_from_settings",
    "run_pipeline",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutput:
    analysis: AnalysisResult
    export_text: str
    reconciliation: ReconciliationOutcome | None = None  # None: no catalog configured

    @property
    def exported_rows(self) -> int:
        # header line excluded
        return max(self.export_text.count("\n") - 1, 0)


def tiers_from_settings(settings: CatalogSettings) -> list[Tier]:
    return default_tiers(settings.strip_prefixes, settings.strip_suffixes)


def run_pipeline(
    upload: DecodedUpload,
    filename: str,
    config: IngestConfig | None = None,
    catalog: KeyCatalog | None = None,
) -> PipelineOutput:
    config = config or IngestConfig()
    analysis = analyze(
        upload.text,
        filename,
        config,
        source_format=upload.source_format,
        sheet_name=upload.sheet_name,
    )

    if catalog is None:
        return PipelineOutput(analysis=analysis, export_text=build_canonical_export(analysis, config))

    settings = config.catalog
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="reconcile") as pool:
        future = pool.submit(
            reconcile,
            analysis.keys,
            catalog,
            tiers_from_settings(settings),
            settings.max_attempts,
            settings.backoff_seconds,
        )
        export_text = build_canonical_export(analysis, config)
        outcome = future.result()

    return PipelineOutput(analysis=analysis, export_text=export_text, reconciliation=outcome)
