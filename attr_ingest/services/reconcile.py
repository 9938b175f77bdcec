from __future__ import annotations

import logging
import time
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Protocol

import requests

from ..errors import ReconciliationUnavailable
from ..models.match_result import MatchResult, ReconciliationOutcome

"""Key reconciliation against the external catalog.

Matching is an ordered cascade of pure key normalizers. Each tier only sees
the keys no earlier tier resolved:

1. exact       - identity
2. normalized  - NFKC + case-fold, every non-alphanumeric character dropped
                 (dashes, dots, spaces, zero-width chars, NBSP, BOM)
3. aggressive  - normalized, configured prefixes/suffixes removed, then
                 leading zeros removed

Extra tiers can be appended to the list without touching callers.
"""

__all__ = [
    "Tier",
    "CatalogKeys",
    "KeyCatalog",
    "normalize_key",
    "aggressive_key",
    "default_tiers",
    "match_keys",
    "reconcile",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tier:
    name: str
    normalize: Callable[[str], str]


@dataclass(frozen=True)
class CatalogKeys:
    keys: frozenset[str]
    total: int  # size reported by the catalog (may exceed len(keys) with duplicates)


class KeyCatalog(Protocol):
    def fetch_keys(self) -> CatalogKeys: ...


def _identity(key: str) -> str:
    return key


def normalize_key(key: str) -> str:
    folded = unicodedata.normalize("NFKC", key).casefold()
    return "".join(ch for ch in folded if ch.isalnum())


def aggressive_key(
    key: str,
    prefixes: Sequence[str] = (),
    suffixes: Sequence[str] = (),
) -> str:
    """Normalized key without one known prefix/suffix and without leading zeros.

    A key made only of zeros keeps its normalized form.
    """
    value = normalize_key(key)
    for prefix in (normalize_key(p) for p in prefixes):
        if prefix and value.startswith(prefix) and len(value) > len(prefix):
            value = value[len(prefix):]
            break
    for suffix in (normalize_key(s) for s in suffixes):
        if suffix and value.endswith(suffix) and len(value) > len(suffix):
            value = value[: -len(suffix)]
            break
    return value.lstrip("0") or value


def default_tiers(prefixes: Sequence[str] = (), suffixes: Sequence[str] = ()) -> list[Tier]:
    return [
        Tier("exact", _identity),
        Tier("normalized", normalize_key),
        Tier("aggressive", partial(aggressive_key, prefixes=tuple(prefixes), suffixes=tuple(suffixes))),
    ]


def match_keys(
    keys: Iterable[str],
    catalog_keys: Iterable[str],
    tiers: Sequence[Tier] | None = None,
    total_catalog_keys: int | None = None,
) -> MatchResult:
    """Run the tier cascade over the discovered keys.

    Every discovered key ends in exactly one of matched/unmatched.
    """
    tiers = list(tiers) if tiers is not None else default_tiers()
    catalog = sorted(set(catalog_keys))
    remaining = list(dict.fromkeys(keys))
    tier_counts: dict[str, int] = {tier.name: 0 for tier in tiers}
    tier_by_key: dict[str, str] = {}

    for tier in tiers:
        if not remaining:
            break
        lookup: set[str] = set()
        for catalog_key in catalog:
            normalized = tier.normalize(catalog_key)
            if normalized:
                lookup.add(normalized)

        still_unmatched: list[str] = []
        for key in remaining:
            normalized = tier.normalize(key)
            if normalized and normalized in lookup:
                tier_by_key[key] = tier.name
                tier_counts[tier.name] += 1
            else:
                still_unmatched.append(key)
        remaining = still_unmatched

    return MatchResult(
        total_catalog_keys=total_catalog_keys if total_catalog_keys is not None else len(catalog),
        matched_keys=frozenset(tier_by_key),
        unmatched_keys=frozenset(remaining),
        tier_counts=tier_counts,
        tier_by_key=tier_by_key,
    )


def reconcile(
    keys: Sequence[str],
    catalog: KeyCatalog,
    tiers: Sequence[Tier] | None = None,
    max_attempts: int = 3,
    backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> ReconciliationOutcome:
    """Fetch the catalog key universe (bounded retry) and match ``keys`` against it.

    The catalog call is the only step allowed to fail transiently. After
    ``max_attempts`` failures the outcome is returned with ``completed=False``
    instead of raising, so the structural analysis stays usable.
    """
    last_error: str | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            catalog_keys = catalog.fetch_keys()
        except (ReconciliationUnavailable, requests.RequestException) as e:
            last_error = str(e)
            logger.warning(
                "reconcile: catalog lookup failed attempt=%d/%d error=%s",
                attempt,
                max_attempts,
                e,
            )
            if attempt < max_attempts:
                sleep(backoff_seconds * (2 ** (attempt - 1)))
            continue

        result = match_keys(keys, catalog_keys.keys, tiers, total_catalog_keys=catalog_keys.total)
        logger.info(
            "reconcile: catalog=%d matched=%d unmatched=%d tiers=%s",
            result.total_catalog_keys,
            result.matched_count,
            result.unmatched_count,
            result.tier_counts,
        )
        return ReconciliationOutcome(match=result, completed=True, attempts=attempt)

    logger.warning("reconcile: catalog unavailable after %d attempts, continuing without match", max_attempts)
    return ReconciliationOutcome(match=None, completed=False, attempts=max_attempts, error=last_error)
