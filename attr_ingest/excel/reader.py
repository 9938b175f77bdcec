from __future__ import annotations

import io
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import EmptyInputError, UnsupportedFormatError
from ..parsing.delimiter import detect_delimiter

"""Spreadsheet decoder: uploaded bytes -> one delimited text blob.

- xls / xlsx: first sheet read with pandas (openpyxl / xlrd engines), every
  cell rendered as text, written back as ``;``-delimited text; a cell
  holding ``;``, ``,``, tab or a quote is wrapped in double quotes with
  inner quotes doubled
- csv / txt: decoded as UTF-8 (BOM tolerated, latin-1 fallback)

In both cases line breaks inside a cell are flattened to a space so that
every record is exactly one line for the tokenizer.
"""

__all__ = [
    "ACCEPTED_EXTENSIONS",
    "DecodedUpload",
    "extension_of",
    "decode_upload",
    "read_upload",
]

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS = frozenset({"csv", "txt", "xls", "xlsx"})
SPREADSHEET_EXTENSIONS = frozenset({"xls", "xlsx"})

_ENGINES = {"xlsx": "openpyxl", "xls": "xlrd"}
_CELL_BREAK = re.compile(r"\r\n|\r|\n")
_QUOTE_TRIGGERS = frozenset(";,\t\"")


@dataclass(frozen=True)
class DecodedUpload:
    text: str
    source_format: str  # CSV / TXT / XLS / XLSX
    sheet_name: str | None = None
    size: int = 0


def extension_of(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        # Excel stores 5225 as 5225.0
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if not isinstance(value, str) and pd.isna(value):
        return ""
    if isinstance(value, datetime):
        return value.isoformat(sep=" ") if value.time() != datetime.min.time() else value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _CELL_BREAK.sub(" ", str(value)).strip()


def _quote_cell(value: str) -> str:
    if any(ch in _QUOTE_TRIGGERS for ch in value):
        return '"' + value.replace('"', '""') + '"'
    return value


def _decode_spreadsheet(data: bytes, ext: str) -> tuple[str, str | None]:
    xls = pd.ExcelFile(io.BytesIO(data), engine=_ENGINES[ext])
    if not xls.sheet_names:
        return "", None
    sheet_name = str(xls.sheet_names[0])
    df = xls.parse(xls.sheet_names[0], header=None, dtype=object, keep_default_na=False)
    if df.empty:
        return "", sheet_name
    df = df.map(_cell_text)
    # 全セル空の行はスキップ
    df = df[~(df == "").all(axis=1)]
    # any candidate delimiter in a cell is quoted, so detection on the header
    # line only ever sees the ";" boundaries
    lines = [";".join(_quote_cell(cell) for cell in row) for row in df.itertuples(index=False)]
    return "".join(line + "\n" for line in lines), sheet_name


def _flatten_quoted_breaks(text: str) -> str:
    """Replace line breaks inside quoted spans with a space.

    Only a quote at the start of a field (delimiter detected on the first
    line) opens a span, so ``15"`` does not. A span still open at the end of
    the text keeps its line breaks.
    """
    if '"' not in text:
        return text
    first_line = next((line for line in _CELL_BREAK.split(text) if line.strip()), "")
    delimiter = detect_delimiter(first_line)
    out: list[str] = []
    in_quotes = False
    at_field_start = True
    span_start = span_out = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    out.append('""')
                    i += 2
                    continue
                in_quotes = False
                out.append(ch)
            elif ch in "\r\n":
                # \r\n inside quotes becomes a single space
                if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                    i += 1
                out.append(" ")
            else:
                out.append(ch)
        else:
            if ch == '"' and at_field_start:
                in_quotes = True
                span_start, span_out = i, len(out)
            out.append(ch)
            if ch in "\r\n" or ch == delimiter:
                at_field_start = True
            elif not ch.isspace():
                at_field_start = False
        i += 1
    if in_quotes:
        logger.warning("unterminated quote at offset %d, line breaks kept", span_start)
        del out[span_out:]
        out.append(text[span_start:])
    return "".join(out)


def _decode_text(data: bytes) -> str:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("input is not valid UTF-8, decoding as latin-1")
        text = data.decode("latin-1")
    return _flatten_quoted_breaks(text)


def decode_upload(data: bytes, filename: str) -> DecodedUpload:
    """Decode an uploaded file into delimited text.

    Raises:
        UnsupportedFormatError: extension not in csv/txt/xls/xlsx
        EmptyInputError: the decoded text has no content
    """
    ext = extension_of(filename)
    if ext not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"unsupported format '{ext or '<none>'}' for {filename}; use CSV, TXT, XLS or XLSX"
        )

    sheet_name: str | None = None
    if ext in SPREADSHEET_EXTENSIONS:
        text, sheet_name = _decode_spreadsheet(data, ext)
    else:
        text = _decode_text(data)

    if not text.strip():
        raise EmptyInputError(f"{filename} is empty")

    return DecodedUpload(text=text, source_format=ext.upper(), sheet_name=sheet_name, size=len(data))


def read_upload(path: Path) -> DecodedUpload:
    """Read and decode a file from disk (batch mode)."""
    ext = extension_of(path.name)
    if ext not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFormatError(f"unsupported format '{ext or '<none>'}' for {path.name}")
    return decode_upload(path.read_bytes(), path.name)
