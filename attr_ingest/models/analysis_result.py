from __future__ import annotations

from dataclasses import dataclass, field

from .attributes import GenericColumnStat, PivotedProduct, UniqueAttribute
from .table import AttributeSlot, DecodedTable

"""AnalysisResult: everything one structural analysis run produces."""

__all__ = [
    "AnalysisResult",
]


@dataclass(frozen=True)
class AnalysisResult:
    """Structure, pivot/profile and key list for a single decoded export."""
    filename: str
    delimiter: str
    table: DecodedTable
    key_column: int
    is_platform_export: bool
    slots: list[AttributeSlot] = field(default_factory=list)
    # platform-export path
    unique_attributes: list[UniqueAttribute] = field(default_factory=list)
    products: list[PivotedProduct] = field(default_factory=list)
    metadata_columns: list[str] = field(default_factory=list)
    # generic path
    generic_columns: list[GenericColumnStat] = field(default_factory=list)
    # shared
    keys: list[str] = field(default_factory=list)  # distinct, first-seen order
    duplicate_keys: list[str] = field(default_factory=list)
    invalid_key_rows: int = 0
    notes: list[str] = field(default_factory=list)
    source_format: str = "CSV"
    sheet_name: str | None = None

    @property
    def headers(self) -> list[str]:
        return self.table.headers

    @property
    def total_rows(self) -> int:
        return len(self.table.rows)

    @property
    def discarded_count(self) -> int:
        return self.table.discarded_count
