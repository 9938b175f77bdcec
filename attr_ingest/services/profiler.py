from __future__ import annotations

import re
from collections.abc import Sequence

from ..models.attributes import GenericColumnStat
from .pivot import percent

"""Generic column profiler (non platform-export tables).

Gives the operator enough per-column information (fill rate, cardinality,
samples, packed-list heuristic) to choose which columns become attributes.
"""

__all__ = [
    "looks_multi_value",
    "profile_columns",
]

_NUMERIC = re.compile(r"^\d+([.,]\d+)?$")

DEFAULT_SAMPLE_LIMIT = 5


def looks_multi_value(value: str) -> bool:
    """True for comma-packed lists; decimal numbers like ``12,5`` are not lists."""
    return "," in value and not _NUMERIC.match(value)


def profile_columns(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    key_column: int,
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> list[GenericColumnStat]:
    """One GenericColumnStat per non-key column, in original column order."""
    stats: list[GenericColumnStat] = []
    total = len(rows)
    for col_idx, name in enumerate(headers):
        if col_idx == key_column:
            continue
        filled = [v for v in (_value(row, col_idx) for row in rows) if v]
        # dict preserves encounter order for the samples
        distinct = list(dict.fromkeys(filled))
        stats.append(
            GenericColumnStat(
                name=name,
                column_index=col_idx,
                filled_count=len(filled),
                distinct_count=len(distinct),
                sample_values=distinct[:sample_limit],
                is_multi_value=any(looks_multi_value(v) for v in filled),
                enabled=True,
                filled_percent=percent(len(filled), total),
            )
        )
    return stats


def _value(row: Sequence[str], idx: int) -> str:
    return row[idx].strip() if idx < len(row) else ""
