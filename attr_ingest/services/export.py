from __future__ import annotations

import logging
import re
from collections.abc import Collection, Sequence

from ..models.analysis_result import AnalysisResult
from ..models.attributes import GenericColumnStat, PivotedProduct, UniqueAttribute
from ..models.config_models import ExportSettings, IngestConfig, KeySettings
from ..models.table import DecodedTable
from ..parsing.delimiter import CANDIDATES
from ..parsing.schema import is_valid_key
from ..parsing.tokenizer import tokenize
from .profiler import looks_multi_value

"""Canonical export builder and reader.

Canonical format (also the persisted storage shape):

    SKU;Cor;Tamanho
    ABC-1;Vermelho;M

- ``;``-delimited UTF-8, one header line then one line per product/row
- the key is always the first column
- a field containing a delimiter character or a quote is wrapped in double
  quotes with inner quotes doubled, so the text re-tokenizes with zero
  discarded rows
"""

__all__ = [
    "quote_field",
    "build_platform_export",
    "build_generic_export",
    "build_canonical_export",
    "build_export_records",
    "load_canonical_export",
]

logger = logging.getLogger(__name__)

_NEEDS_QUOTING = set(CANDIDATES) | {'"'}
_LETTERS = re.compile(r"[^a-z]")


def quote_field(value: str, delimiter: str = ";") -> str:
    if delimiter in value or any(ch in _NEEDS_QUOTING for ch in value):
        return '"' + value.replace('"', '""') + '"'
    return value


def _join(fields: Sequence[str], delimiter: str) -> str:
    return delimiter.join(quote_field(f, delimiter) for f in fields)


def _platform_attribute_names(
    unique_attributes: Sequence[UniqueAttribute],
    settings: ExportSettings,
    enabled: Collection[str] | None = None,
) -> list[str]:
    if enabled is None:
        return [
            a.name
            for a in unique_attributes
            if a.enabled and a.name not in settings.exclude_attributes
        ]
    wanted = set(enabled)
    return [a.name for a in unique_attributes if a.name in wanted]


def _generic_active_columns(
    columns: Sequence[GenericColumnStat],
    key_column: int,
    settings: ExportSettings,
) -> list[GenericColumnStat]:
    return sorted(
        (c for c in columns
         if c.enabled and c.column_index != key_column and c.name not in settings.exclude_columns),
        key=lambda c: c.column_index,
    )


def build_platform_export(
    products: Sequence[PivotedProduct],
    unique_attributes: Sequence[UniqueAttribute],
    settings: ExportSettings | None = None,
    enabled: Collection[str] | None = None,
) -> str:
    """Pivoted products as ``KEY;<enabled attributes in unique-attribute order>``.

    Args:
        enabled: attribute names to keep; defaults to every attribute with
            ``enabled=True`` that is not listed in ``settings.exclude_attributes``
    """
    settings = settings or ExportSettings()
    names = _platform_attribute_names(unique_attributes, settings, enabled)

    d = settings.delimiter
    lines = [_join([settings.key_header, *names], d)]
    for product in products:
        lines.append(_join([product.key, *(product.attributes.get(n, "") for n in names)], d))
    logger.debug("export(platform): products=%d attributes=%d", len(products), len(names))
    return "\n".join(lines) + "\n"


def build_generic_export(
    table: DecodedTable,
    key_column: int,
    columns: Sequence[GenericColumnStat],
    settings: ExportSettings | None = None,
    key_settings: KeySettings | None = None,
) -> str:
    """Generic rows as ``KEY;<enabled columns in original order>``.

    The key column is moved first whatever its original position; rows whose
    key fails validation are left out.
    """
    settings = settings or ExportSettings()
    key_settings = key_settings or KeySettings()
    active = _generic_active_columns(columns, key_column, settings)

    d = settings.delimiter
    lines = [_join([settings.key_header, *(c.name for c in active)], d)]
    written = 0
    for row in table.rows:
        key = row[key_column].strip() if key_column < len(row) else ""
        if not is_valid_key(key, key_settings):
            continue
        lines.append(_join([key, *(row[c.column_index] for c in active)], d))
        written += 1
    logger.debug("export(generic): rows=%d columns=%d", written, len(active))
    return "\n".join(lines) + "\n"


def build_canonical_export(result: AnalysisResult, config: IngestConfig | None = None) -> str:
    """Canonical export for either analysis path."""
    config = config or IngestConfig()
    if result.is_platform_export:
        return build_platform_export(result.products, result.unique_attributes, config.export)
    return build_generic_export(
        result.table,
        result.key_column,
        result.generic_columns,
        config.export,
        config.keys,
    )


def build_export_records(result: AnalysisResult, config: IngestConfig | None = None) -> list[PivotedProduct]:
    """One record per exported line, carrying the exported attributes.

    Same key and attribute selection as ``build_canonical_export``; values are
    kept as exported text (``12,5`` stays ``12,5``), empty cells are left out.
    """
    config = config or IngestConfig()
    records: list[PivotedProduct] = []
    if result.is_platform_export:
        names = _platform_attribute_names(result.unique_attributes, config.export)
        for product in result.products:
            attrs = {n: product.attributes[n] for n in names if product.attributes.get(n)}
            records.append(PivotedProduct(key=product.key, display_name=product.display_name, attributes=attrs))
        return records

    active = _generic_active_columns(result.generic_columns, result.key_column, config.export)
    for row in result.table.rows:
        key = row[result.key_column].strip() if result.key_column < len(row) else ""
        if not is_valid_key(key, config.keys):
            continue
        attrs = {c.name: row[c.column_index] for c in active if row[c.column_index]}
        records.append(PivotedProduct(key=key, attributes=attrs))
    return records


def load_canonical_export(text: str) -> dict[str, dict[str, str | list[str]]]:
    """Read a canonical export back into ``key -> {attribute: value}``.

    Comma-packed values become lists (decimal numbers like ``12,5`` do not);
    empty cells are skipped and keys without any attribute are left out. The
    key column is the one whose letters-only lowercase header is ``sku``, else
    the first column.
    """
    table = tokenize(text)
    key_idx = next(
        (i for i, h in enumerate(table.headers) if _LETTERS.sub("", h.lower()) == "sku"),
        0,
    )
    result: dict[str, dict[str, str | list[str]]] = {}
    for row in table.rows:
        key = row[key_idx].strip()
        if not key:
            continue
        attributes: dict[str, str | list[str]] = {}
        for idx, header in enumerate(table.headers):
            if idx == key_idx:
                continue
            name = header.strip()
            value = row[idx].strip()
            if not name or not value:
                continue
            if looks_multi_value(value):
                parts = [p.strip() for p in value.split(",") if p.strip()]
                if len(parts) > 1:
                    attributes[name] = parts
                elif parts:
                    attributes[name] = parts[0]
            else:
                attributes[name] = value
        if attributes:
            result[key] = attributes
    return result
