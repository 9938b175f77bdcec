from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..models.attributes import PivotedProduct, UniqueAttribute
from ..models.config_models import KeySettings
from ..models.table import AttributeSlot
from ..parsing.delimiter import CANDIDATES
from ..parsing.schema import is_valid_key

"""Attribute pivoter for the platform-export path.

Collapses the numbered name/value slot columns of every row into one
``PivotedProduct`` per key, merging rows that share a key, and aggregates the
``UniqueAttribute`` list at the same time.
"""

__all__ = [
    "PivotResult",
    "clean_attribute_name",
    "unescape_value",
    "pivot_products",
]

logger = logging.getLogger(__name__)

_TRAILING_COLON = re.compile(r":\s*$")

DEFAULT_SAMPLE_LIMIT = 30


@dataclass(frozen=True)
class PivotResult:
    products: list[PivotedProduct]
    unique_attributes: list[UniqueAttribute]
    invalid_key_rows: int = 0
    duplicate_keys: list[str] = field(default_factory=list)


@dataclass
class _AttributeAccumulator:
    product_count: int = 0
    samples: list[str] = field(default_factory=list)
    distinct: set[str] = field(default_factory=set)

    def add(self, value: str, limit: int) -> None:
        if value in self.distinct:
            return
        self.distinct.add(value)
        if len(self.samples) < limit:
            self.samples.append(value)


def clean_attribute_name(raw: str) -> str:
    """Strip surrounding whitespace and one trailing colon (``Cor:`` -> ``Cor``)."""
    return _TRAILING_COLON.sub("", raw.strip()).strip()


def unescape_value(raw: str) -> str:
    """Undo backslash-escaped delimiters (``P\\, M\\, G`` -> ``P, M, G``)."""
    value = raw
    for delimiter in CANDIDATES:
        value = value.replace("\\" + delimiter, delimiter)
    return value.strip()


def _cell(row: Sequence[str], idx: int | None) -> str:
    if idx is None or idx < 0 or idx >= len(row):
        return ""
    return row[idx].strip()


def pivot_products(
    rows: Sequence[Sequence[str]],
    slots: Sequence[AttributeSlot],
    key_column: int,
    name_column: int | None = None,
    key_settings: KeySettings | None = None,
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> PivotResult:
    """Pivot slot rows into products keyed by ``key_column``.

    - rows whose key fails ``is_valid_key`` are skipped and counted
    - slots with an empty name or value are ignored
    - rows with no attribute left are dropped (no empty products)
    - a repeated key merges into the first product: same-name values are
      overwritten, an empty display name is backfilled
    """
    key_settings = key_settings or KeySettings()
    by_key: dict[str, PivotedProduct] = {}
    names: dict[str, None] = {}  # first-seen order
    rows_per_key: dict[str, int] = {}
    invalid_keys = 0

    for row in rows:
        key = _cell(row, key_column)
        if not is_valid_key(key, key_settings):
            invalid_keys += 1
            continue

        display_name = _cell(row, name_column)
        attributes: dict[str, str] = {}
        for slot in slots:
            raw_name = _cell(row, slot.name_column)
            raw_value = _cell(row, slot.value_column)
            if not raw_name or not raw_value:
                continue
            name = clean_attribute_name(raw_name)
            value = unescape_value(raw_value)
            if not name or not value:
                continue
            attributes[name] = value
            names.setdefault(name, None)

        if not attributes:
            continue

        rows_per_key[key] = rows_per_key.get(key, 0) + 1
        existing = by_key.get(key)
        if existing is not None:
            existing.merge(attributes, display_name)
        else:
            by_key[key] = PivotedProduct(key=key, display_name=display_name, attributes=attributes)

    products = list(by_key.values())
    unique_attributes = _aggregate(products, names, sample_limit)
    duplicates = [k for k, count in rows_per_key.items() if count > 1]

    logger.debug(
        "pivot: products=%d attributes=%d invalid_keys=%d merged_keys=%d",
        len(products),
        len(unique_attributes),
        invalid_keys,
        len(duplicates),
    )
    return PivotResult(
        products=products,
        unique_attributes=unique_attributes,
        invalid_key_rows=invalid_keys,
        duplicate_keys=duplicates,
    )


def _aggregate(
    products: Sequence[PivotedProduct],
    names: dict[str, None],
    sample_limit: int,
) -> list[UniqueAttribute]:
    # merged products only: values overwritten by a later row are not counted
    accumulators = {name: _AttributeAccumulator() for name in names}
    for product in products:
        for name, value in product.attributes.items():
            acc = accumulators[name]
            acc.product_count += 1
            acc.add(value, sample_limit)

    total = len(products)
    unique = [
        UniqueAttribute(
            name=name,
            product_count=acc.product_count,
            fill_percent=percent(acc.product_count, total),
            distinct_value_count=len(acc.distinct),
            sample_values=list(acc.samples),
        )
        for name, acc in accumulators.items()
    ]
    # sorted() is stable, ties keep first-seen order
    return sorted(unique, key=lambda a: a.product_count, reverse=True)


def percent(part: int, total: int) -> int:
    """Whole percentage rounded half-up (0 when total is 0)."""
    if not total:
        return 0
    return math.floor(part / total * 100 + 0.5)
