from __future__ import annotations

from dataclasses import dataclass, field

"""Key reconciliation results."""

__all__ = [
    "MatchResult",
    "ReconciliationOutcome",
]


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching discovered keys against the catalog key universe.

    ``matched_keys`` and ``unmatched_keys`` are disjoint and together hold
    every discovered key. ``tier_counts`` is keyed by tier name in cascade
    order; ``tier_by_key`` tells which tier resolved each matched key.
    """
    total_catalog_keys: int
    matched_keys: frozenset[str]
    unmatched_keys: frozenset[str]
    tier_counts: dict[str, int]
    tier_by_key: dict[str, str] = field(default_factory=dict)

    @property
    def matched_count(self) -> int:
        return len(self.matched_keys)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched_keys)


@dataclass(frozen=True)
class ReconciliationOutcome:
    """MatchResult plus completion flag.

    When the catalog could not be reached after the bounded retries,
    ``completed`` is False and ``match`` is None; structure analysis is still
    usable.
    """
    match: MatchResult | None
    completed: bool
    attempts: int = 0
    error: str | None = None
