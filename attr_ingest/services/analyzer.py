from __future__ import annotations

import logging
from collections import Counter

from ..errors import EmptyInputError, UnsupportedFormatError
from ..excel.reader import ACCEPTED_EXTENSIONS, decode_upload, extension_of
from ..models.analysis_result import AnalysisResult
from ..models.config_models import IngestConfig
from ..parsing.delimiter import delimiter_label
from ..parsing.schema import TableSchema, classify, is_valid_key
from ..parsing.tokenizer import tokenize
from .pivot import pivot_products
from .profiler import profile_columns

"""Structural analysis: decoded text -> AnalysisResult.

``analyze`` is a pure function of its arguments (no module state), so the
same call serves the batch orchestrator, an HTTP handler or a test.
"""

__all__ = [
    "analyze",
    "analyze_upload",
]

logger = logging.getLogger(__name__)


def analyze(
    decoded_text: str,
    filename_hint: str,
    config: IngestConfig | None = None,
    *,
    source_format: str | None = None,
    sheet_name: str | None = None,
) -> AnalysisResult:
    """Detect structure, then pivot (platform export) or profile (generic).

    Raises:
        UnsupportedFormatError: filename hint extension not accepted
        EmptyInputError: decoded text has no content
    """
    config = config or IngestConfig()
    ext = extension_of(filename_hint)
    if ext not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFormatError(f"unsupported format '{ext or '<none>'}' for {filename_hint}")
    if not decoded_text.strip():
        raise EmptyInputError(f"{filename_hint} is empty")

    table = tokenize(decoded_text)
    schema = classify(table.headers, config.slots, config.keys)

    notes: list[str] = []
    if not schema.key_column_found:
        fallback = table.headers[0] if table.headers else ""
        notes.append(f"no key column matched, using column 0 ({fallback!r})")
        logger.info("%s: no key column matched, falling back to column 0 (%r)", filename_hint, fallback)
    if table.discarded_count:
        notes.append(f"{table.discarded_count} row(s) discarded: field count does not match header")
        logger.warning(
            "%s: discarded %d row(s) with unexpected field count",
            filename_hint,
            table.discarded_count,
        )

    common = dict(
        filename=filename_hint,
        delimiter=table.delimiter,
        table=table,
        key_column=schema.key_column,
        slots=schema.slots,
        source_format=source_format or ext.upper(),
        sheet_name=sheet_name,
    )

    if schema.is_platform_export:
        result = _analyze_platform(schema, table, config, notes, common)
    else:
        result = _analyze_generic(schema, table, config, notes, common)

    logger.info(
        "%s: delimiter=%s rows=%d columns=%d platform_export=%s keys=%d discarded=%d",
        filename_hint,
        delimiter_label(table.delimiter),
        len(table.rows),
        table.width,
        result.is_platform_export,
        len(result.keys),
        table.discarded_count,
    )
    return result


def _analyze_platform(schema: TableSchema, table, config: IngestConfig, notes: list[str], common: dict) -> AnalysisResult:
    pivot = pivot_products(
        table.rows,
        schema.slots,
        schema.key_column,
        schema.name_column,
        key_settings=config.keys,
        sample_limit=config.profile.attribute_sample_limit,
    )
    if pivot.invalid_key_rows:
        notes.append(f"{pivot.invalid_key_rows} row(s) skipped: invalid key")

    slot_columns: set[int] = set()
    for slot in schema.slots:
        slot_columns |= slot.columns
    metadata_columns = [
        h for i, h in enumerate(table.headers)
        if i != schema.key_column and i not in slot_columns
    ]
    return AnalysisResult(
        is_platform_export=True,
        unique_attributes=pivot.unique_attributes,
        products=pivot.products,
        metadata_columns=metadata_columns,
        keys=[p.key for p in pivot.products],
        duplicate_keys=pivot.duplicate_keys,
        invalid_key_rows=pivot.invalid_key_rows,
        notes=notes,
        **common,
    )


def _analyze_generic(schema: TableSchema, table, config: IngestConfig, notes: list[str], common: dict) -> AnalysisResult:
    key_idx = schema.key_column
    valid_rows = []
    invalid = 0
    for row in table.rows:
        if is_valid_key(row[key_idx].strip() if key_idx < len(row) else "", config.keys):
            valid_rows.append(row)
        else:
            invalid += 1
    if invalid:
        notes.append(f"{invalid} row(s) skipped: invalid key")

    key_counts = Counter(row[key_idx].strip() for row in valid_rows)
    return AnalysisResult(
        is_platform_export=False,
        generic_columns=profile_columns(
            table.headers,
            valid_rows,
            key_idx,
            sample_limit=config.profile.column_sample_limit,
        ),
        keys=list(key_counts),
        duplicate_keys=[k for k, c in key_counts.items() if c > 1],
        invalid_key_rows=invalid,
        notes=notes,
        **common,
    )


def analyze_upload(data: bytes, filename: str, config: IngestConfig | None = None) -> AnalysisResult:
    """Decode uploaded bytes and analyze them."""
    upload = decode_upload(data, filename)
    return analyze(
        upload.text,
        filename,
        config,
        source_format=upload.source_format,
        sheet_name=upload.sheet_name,
    )
