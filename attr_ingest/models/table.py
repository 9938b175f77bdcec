from __future__ import annotations

from dataclasses import dataclass

"""Tabular models produced by the tokenizer and the schema classifier."""

__all__ = [
    "DecodedTable",
    "AttributeSlot",
]


@dataclass(frozen=True)
class DecodedTable:
    """Header plus repaired data rows of one decoded export.

    Every entry of ``rows`` has exactly ``len(headers)`` fields.
    """
    headers: list[str]
    rows: list[list[str]]
    discarded_count: int = 0
    delimiter: str = ";"
    discarded_lines: tuple[int, ...] = ()  # 1-based line numbers of dropped rows

    @property
    def width(self) -> int:
        return len(self.headers)


@dataclass(frozen=True)
class AttributeSlot:
    """One repeated ``Nome do atributo N`` / ``Valores do atributo N`` column pair."""
    slot_index: int
    name_column: int
    value_column: int
    visibility_column: int | None = None
    global_flag_column: int | None = None

    @property
    def columns(self) -> set[int]:
        cols = {self.name_column, self.value_column}
        if self.visibility_column is not None:
            cols.add(self.visibility_column)
        if self.global_flag_column is not None:
            cols.add(self.global_flag_column)
        return cols
