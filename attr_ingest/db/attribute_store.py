from __future__ import annotations

import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extras import Json, execute_values

from ..models.attributes import PivotedProduct

"""Persisted attribute records.

One row per key: ``(sku text primary key, attributes jsonb, updated_at)``.
Writing a key that already exists replaces its whole attribute map; merging
only ever happens inside a single pivot run.
"""

__all__ = [
    "AttributeStoreError",
    "StoreMetrics",
    "StoreResult",
    "replace_attributes",
]

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class AttributeStoreError(Exception):
    pass


@dataclass(frozen=True)
class StoreMetrics:
    """Timing of one execute_values call."""
    batch_size: int
    elapsed_seconds: float


@dataclass(frozen=True)
class StoreResult:
    written_rows: int


def replace_attributes(
    cursor: Any,
    table: str,
    products: Sequence[PivotedProduct],
    page_size: int = 1000,
    metrics_callback: Callable[[StoreMetrics], None] | None = None,
) -> StoreResult:
    """Upsert one record per product key, fully replacing existing maps.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction handled by the caller)
    table: target table name
    products: products to write; a later duplicate key wins
    page_size: execute_values page size
    metrics_callback: receives StoreMetrics (not called for empty input)
    """
    if not _TABLE_NAME.match(table):
        raise AttributeStoreError(f"invalid table name: {table!r}")

    by_key = {p.key: p.attributes for p in products}
    if not by_key:
        return StoreResult(written_rows=0)

    rows = [(key, Json(attrs)) for key, attrs in by_key.items()]
    sql = (
        f'INSERT INTO {table} ("sku", "attributes", "updated_at") VALUES %s '
        'ON CONFLICT ("sku") DO UPDATE SET "attributes" = EXCLUDED."attributes", '
        '"updated_at" = EXCLUDED."updated_at"'
    )
    start = time.time()
    try:
        execute_values(cursor, sql, rows, template="(%s, %s, now())", page_size=page_size)
    except psycopg2.Error as e:
        raise AttributeStoreError(str(e)) from e
    finally:
        if metrics_callback is not None:
            metrics_callback(StoreMetrics(batch_size=len(rows), elapsed_seconds=time.time() - start))

    return StoreResult(written_rows=len(rows))
