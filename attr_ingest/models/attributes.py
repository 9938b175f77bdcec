from __future__ import annotations

from dataclasses import dataclass, field

"""Attribute-level models for the two analysis paths.

- platform-export path: PivotedProduct + UniqueAttribute
- generic path: GenericColumnStat
"""

__all__ = [
    "PivotedProduct",
    "UniqueAttribute",
    "GenericColumnStat",
]


@dataclass
class PivotedProduct:
    """A product with its pivoted attributes.

    Mutable on purpose: rows sharing a key are merged into the same instance
    while pivoting.
    """
    key: str
    display_name: str = ""
    attributes: dict[str, str] = field(default_factory=dict)

    def merge(self, attributes: dict[str, str], display_name: str = "") -> None:
        """Overwrite same-name attributes and backfill an empty display name."""
        self.attributes.update(attributes)
        if not self.display_name and display_name:
            self.display_name = display_name


@dataclass(frozen=True)
class UniqueAttribute:
    """An attribute name discovered across all pivoted products."""
    name: str
    product_count: int
    fill_percent: int  # 0..100
    distinct_value_count: int
    sample_values: list[str]  # <= 30
    enabled: bool = True


@dataclass(frozen=True)
class GenericColumnStat:
    """Fill/cardinality profile of one non-key column (generic path)."""
    name: str
    column_index: int
    filled_count: int
    distinct_count: int
    sample_values: list[str]  # <= 5
    is_multi_value: bool
    enabled: bool = True
    filled_percent: int = 0
