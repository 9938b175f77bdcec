from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..models.config_models import KeySettings, SlotSettings
from ..models.table import AttributeSlot

"""Schema classification: key column guess and platform-export slot detection.

A platform export repeats each attribute as a pair of numbered columns
(``Nome do atributo 1`` / ``Valores do atributo 1`` ...). Anything with fewer
than ``min_slots`` pairs is handled as a generic table.
"""

__all__ = [
    "TableSchema",
    "guess_key_column",
    "find_name_column",
    "detect_slots",
    "is_valid_key",
    "classify",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSchema:
    key_column: int
    key_column_found: bool  # False -> fell back to column 0
    name_column: int | None
    slots: list[AttributeSlot]
    is_platform_export: bool


def guess_key_column(headers: Sequence[str], patterns: Sequence[str] | None = None) -> int | None:
    """Index of the first header matching the first matching pattern.

    Patterns are tried in order (``^sku$`` before ``^cod`` ...), so a later
    ``SKU`` column still beats an earlier ``Codigo`` one. None when no header
    matches.
    """
    if patterns is None:
        patterns = KeySettings().patterns
    for pattern in patterns:
        rx = re.compile(pattern, re.IGNORECASE)
        for idx, header in enumerate(headers):
            if rx.search(header.strip()):
                return idx
    return None


def find_name_column(headers: Sequence[str], names: Sequence[str] = ("nome", "name")) -> int | None:
    """Column literally named Nome/Name (case-insensitive)."""
    wanted = {n.lower() for n in names}
    for idx, header in enumerate(headers):
        if header.strip().lower() in wanted:
            return idx
    return None


def _first_index(headers: Sequence[str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for idx, header in enumerate(headers):
        index.setdefault(header, idx)
    return index


def detect_slots(headers: Sequence[str], settings: SlotSettings | None = None) -> list[AttributeSlot]:
    """Probe ``"<name label> N"`` / ``"<value label> N"`` pairs for N = 1..max_slot.

    Once at least one pair was found, ``early_stop`` consecutive missing
    numbers end the scan.
    """
    settings = settings or SlotSettings()
    index = _first_index(headers)
    slots: list[AttributeSlot] = []
    misses = 0
    for n in range(1, settings.max_slot + 1):
        name_idx = index.get(f"{settings.name_label} {n}")
        value_idx = index.get(f"{settings.value_label} {n}")
        if name_idx is None or value_idx is None:
            if slots:
                misses += 1
                if misses >= settings.early_stop:
                    break
            continue
        misses = 0
        slots.append(
            AttributeSlot(
                slot_index=n,
                name_column=name_idx,
                value_column=value_idx,
                visibility_column=index.get(f"{settings.visibility_label} {n}")
                if settings.visibility_label else None,
                global_flag_column=index.get(f"{settings.global_label} {n}")
                if settings.global_label else None,
            )
        )
    return slots


def is_valid_key(key: str, settings: KeySettings | None = None) -> bool:
    """Reject empty, overlong or markup/prose-looking keys.

    Such values mean the key column was misdetected (HTML description cells,
    URLs, ...).
    """
    settings = settings or KeySettings()
    if not key or len(key) > settings.max_length:
        return False
    return not any(marker in key for marker in settings.invalid_markers)


def classify(
    headers: Sequence[str],
    slot_settings: SlotSettings | None = None,
    key_settings: KeySettings | None = None,
) -> TableSchema:
    slot_settings = slot_settings or SlotSettings()
    key_settings = key_settings or KeySettings()

    guessed = guess_key_column(headers, key_settings.patterns)
    slots = detect_slots(headers, slot_settings)
    is_platform = len(slots) >= slot_settings.min_slots
    logger.debug(
        "classify: key_column=%s slots=%d platform_export=%s",
        guessed,
        len(slots),
        is_platform,
    )
    return TableSchema(
        key_column=guessed if guessed is not None else 0,
        key_column_found=guessed is not None,
        name_column=find_name_column(headers, key_settings.name_columns),
        slots=slots,
        is_platform_export=is_platform,
    )
