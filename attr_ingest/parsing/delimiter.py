from __future__ import annotations

"""Field delimiter detection from the header line."""

__all__ = [
    "CANDIDATES",
    "detect_delimiter",
    "delimiter_label",
]

# Tie-break order: tab > semicolon > comma
CANDIDATES: tuple[str, ...] = ("\t", ";", ",")

_LABELS = {
    ";": "semicolon",
    ",": "comma",
    "\t": "tab",
}


def detect_delimiter(first_line: str) -> str:
    """Return the delimiter occurring most often outside quoted spans.

    Characters between double quotes are ignored, so ``"a;b",c`` counts one
    comma and no semicolon. A line without any candidate yields ``;``.
    """
    counts = dict.fromkeys(CANDIDATES, 0)
    in_quotes = False
    for ch in first_line:
        if ch == '"':
            in_quotes = not in_quotes
            continue
        if not in_quotes and ch in counts:
            counts[ch] += 1

    best = ";"
    best_count = 0
    for candidate in CANDIDATES:
        # strict ">" keeps the earlier (higher priority) candidate on ties
        if counts[candidate] > best_count:
            best = candidate
            best_count = counts[candidate]
    return best


def delimiter_label(delimiter: str) -> str:
    return _LABELS.get(delimiter, repr(delimiter))
