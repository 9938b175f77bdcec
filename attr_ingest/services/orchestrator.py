from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.attribute_store import AttributeStoreError, replace_attributes
from ..errors import EmptyInputError, UnsupportedFormatError
from ..excel.reader import ACCEPTED_EXTENSIONS, extension_of, read_upload
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import IngestConfig
from ..models.processing_result import FileStat, ProcessingResult
from ..models.source_file import FileStatus, SourceFile
from .export import build_export_records
from .pipeline import PipelineOutput, run_pipeline
from .progress import ProgressTracker
from .reconcile import KeyCatalog

logger = logging.getLogger(__name__)

"""Batch orchestration.

Scans the source directory (non-recursive) for csv/txt/xls/xlsx files and runs
the pipeline for each one:

    decode -> analyze -> (reconcile || export) -> write canonical file
           -> optionally replace persisted records (one transaction per file)

A failing file is recorded in the error log and processing continues with
the next one.
"""

CANONICAL_SUFFIX = ".canonical.csv"


class ProcessingError(Exception):
    """Fatal error preventing the batch from running at all."""


def scan_source_files(directory: Path) -> list[Path]:
    """Supported files in ``directory`` (non-recursive, sorted by name).

    Raises:
        ProcessingError: directory missing or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file()
            and extension_of(p.name) in ACCEPTED_EXTENSIONS
            and not p.name.endswith(CANONICAL_SUFFIX)
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def process_all(
    config: IngestConfig,
    files: list[Path] | None = None,
    catalog: KeyCatalog | None = None,
    cursor: Any = None,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Run the pipeline for every file and aggregate the results.

    Args:
        config: ingestion configuration
        files: explicit file list; scans ``config.source_directory`` when None
        catalog: key catalog for reconciliation (None = skip reconciliation)
        cursor: database cursor for persisted records (None = export files only)
        error_log: buffer receiving row/file level error records

    Raises:
        ProcessingError: source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    file_paths = files if files is not None else scan_source_files(Path(config.source_directory))
    output_dir = Path(config.output_directory)

    file_stats: list[FileStat] = []
    total_discarded = 0
    total_matched = 0
    total_unmatched = 0

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            source = _process_single_file(file_path, config, catalog, cursor, error_log, output_dir)
            ok = source.status == FileStatus.SUCCESS

            discarded = source.analysis.discarded_count if source.analysis else 0
            match = source.reconciliation.match if source.reconciliation else None
            if ok:
                total_discarded += discarded
                if match is not None:
                    total_matched += match.matched_count
                    total_unmatched += match.unmatched_count
            progress.finish_file(ok, source.exported_rows)

            elapsed = 0.0
            if source.start_time and source.end_time:
                elapsed = (source.end_time - source.start_time).total_seconds()
            file_stats.append(
                FileStat(
                    file_name=file_path.name,
                    status=source.status.value,
                    products=source.exported_rows,
                    discarded_rows=discarded,
                    elapsed_seconds=elapsed,
                    matched_keys=match.matched_count if match else 0,
                    unmatched_keys=match.unmatched_count if match else 0,
                    reconciled=bool(source.reconciliation and source.reconciliation.completed),
                    export_path=str(source.export_path) if source.export_path else None,
                )
            )

    counts = error_log.counts_by_type()
    try:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(
                "error log written: %s (%s)",
                log_path,
                ", ".join(f"{k}={v}" for k, v in counts.items()),
            )
    except OSError as e:
        # error log の書き込み失敗で全体を失敗させない
        logger.warning("failed to write error log: %s", e)

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=progress.ok,
        failed_files=progress.failed,
        total_products=progress.products,
        total_discarded_rows=total_discarded,
        total_matched_keys=total_matched,
        total_unmatched_keys=total_unmatched,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )


def _record_analysis_issues(file_name: str, output: PipelineOutput, error_log: ErrorLogBuffer) -> None:
    analysis = output.analysis
    for line_no in analysis.table.discarded_lines:
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                row=line_no,
                error_type="ROW_SHAPE_MISMATCH",
                message=f"field count does not match header width {analysis.table.width}",
            )
        )
    if analysis.invalid_key_rows:
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                row=-1,
                error_type="INVALID_KEY",
                message=f"{analysis.invalid_key_rows} row(s) skipped: empty, overlong or markup key",
            )
        )
    outcome = output.reconciliation
    if outcome is not None and not outcome.completed:
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                row=-1,
                error_type="RECONCILIATION_UNAVAILABLE",
                message=outcome.error or "catalog unavailable",
            )
        )


def _store_records(cursor: Any, config: IngestConfig, output: PipelineOutput) -> int:
    """Replace persisted records for this file inside one transaction."""
    products = build_export_records(output.analysis, config)
    cursor.execute("BEGIN")
    try:
        result = replace_attributes(cursor, config.database.table, products)
        cursor.execute("COMMIT")
    except AttributeStoreError:
        cursor.execute("ROLLBACK")
        raise
    return result.written_rows


def _process_single_file(
    file_path: Path,
    config: IngestConfig,
    catalog: KeyCatalog | None,
    cursor: Any,
    error_log: ErrorLogBuffer,
    output_dir: Path,
) -> SourceFile:
    start_time = datetime.now(UTC)
    try:
        upload = read_upload(file_path)
        output = run_pipeline(upload, file_path.name, config, catalog)
        _record_analysis_issues(file_path.name, output, error_log)

        output_dir.mkdir(parents=True, exist_ok=True)
        export_path = output_dir / f"{file_path.stem}{CANONICAL_SUFFIX}"
        export_path.write_text(output.export_text, encoding="utf-8")
        logger.debug("file=%s export=%s rows=%d", file_path.name, export_path, output.exported_rows)

        if cursor is not None:
            written = _store_records(cursor, config, output)
            logger.info("file=%s stored %d attribute record(s)", file_path.name, written)

        return SourceFile(
            path=file_path,
            name=file_path.name,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.SUCCESS,
            analysis=output.analysis,
            reconciliation=output.reconciliation,
            export_path=export_path,
            exported_rows=output.exported_rows,
        )
    except Exception as e:
        if isinstance(e, UnsupportedFormatError):
            error_type = "UNSUPPORTED_FORMAT"
        elif isinstance(e, EmptyInputError):
            error_type = "EMPTY_INPUT"
        elif isinstance(e, AttributeStoreError):
            error_type = "STORE_ERROR"
        else:
            error_type = "PROCESSING_ERROR"
        logger.error("file=%s failed: %s", file_path.name, e)
        error_log.append(
            ErrorRecord.create(file=file_path.name, row=-1, error_type=error_type, message=str(e))
        )
        return SourceFile(
            path=file_path,
            name=file_path.name,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.FAILED,
            error=str(e),
        )
