"""Spreadsheet -> canonical product attribute ingestion."""

from .errors import EmptyInputError, IngestError, ReconciliationUnavailable, UnsupportedFormatError
from .services.analyzer import analyze, analyze_upload
from .services.export import build_canonical_export, load_canonical_export
from .services.reconcile import match_keys, reconcile

__version__ = "0.1.0"

__all__ = [
    "analyze",
    "analyze_upload",
    "build_canonical_export",
    "load_canonical_export",
    "match_keys",
    "reconcile",
    "IngestError",
    "UnsupportedFormatError",
    "EmptyInputError",
    "ReconciliationUnavailable",
]
