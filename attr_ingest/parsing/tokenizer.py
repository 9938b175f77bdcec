from __future__ import annotations

import logging
import re

from ..errors import EmptyInputError
from ..models.table import DecodedTable
from .delimiter import detect_delimiter

"""Quote-aware row tokenizer with row shape repair.

The first non-blank line is the header and fixes the expected width W.
Data rows are then:

- W fields: accepted
- W+1 fields with an empty last field: trailing delimiter, truncated
- W-2 or W-1 fields: padded with empty fields
- anything else: discarded and counted
"""

__all__ = [
    "split_lines",
    "tokenize_line",
    "tokenize",
    "repair_row",
]

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

# Rows this many fields short of the header are still padded
_MAX_PAD = 2


def split_lines(text: str) -> list[tuple[int, str]]:
    """Split on any line-ending style, dropping blank lines.

    Returns (1-based line number, line) pairs so discarded rows can be reported
    against the original text.
    """
    return [
        (idx, line)
        for idx, line in enumerate(_LINE_BREAK.split(text), start=1)
        if line.strip()
    ]


def tokenize_line(line: str, delimiter: str) -> list[str]:
    """Split one line into trimmed fields.

    A quote opens a quoted span only as the first non-blank character of a
    field; elsewhere (``15"``) it is kept literally. A doubled quote inside a
    quoted span is a literal quote; a delimiter inside a quoted span is not a
    field boundary.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and line[i + 1] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(ch)
        elif ch == '"' and not "".join(current).strip():
            in_quotes = True
        elif ch == delimiter:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def repair_row(fields: list[str], width: int) -> list[str] | None:
    """Fit a tokenized row to ``width`` fields, or return None to discard it."""
    count = len(fields)
    if count == width:
        return fields
    if count == width + 1 and fields[-1] == "":
        return fields[:width]
    if width - _MAX_PAD <= count < width:
        return fields + [""] * (width - count)
    return None


def tokenize(text: str, delimiter: str | None = None) -> DecodedTable:
    """Tokenize decoded text into a DecodedTable.

    Args:
        text: Decoded delimited text (header line + data lines)
        delimiter: Field delimiter; detected from the header line when None

    Raises:
        EmptyInputError: when the text has no non-blank line
    """
    lines = split_lines(text)
    if not lines:
        raise EmptyInputError("decoded text is empty")

    header_line = lines[0][1]
    if delimiter is None:
        delimiter = detect_delimiter(header_line)

    headers = tokenize_line(header_line, delimiter)
    width = len(headers)

    rows: list[list[str]] = []
    discarded: list[int] = []
    for line_no, line in lines[1:]:
        fields = repair_row(tokenize_line(line, delimiter), width)
        if fields is None:
            discarded.append(line_no)
            continue
        rows.append(fields)

    if discarded:
        logger.debug(
            "tokenize: discarded %d row(s) with unexpected field count (width=%d) lines=%s",
            len(discarded),
            width,
            discarded[:20],
        )

    return DecodedTable(
        headers=headers,
        rows=rows,
        discarded_count=len(discarded),
        delimiter=delimiter,
        discarded_lines=tuple(discarded),
    )
