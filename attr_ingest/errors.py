from __future__ import annotations

"""Exception hierarchy shared by the ingestion layers.

Only UnsupportedFormatError and EmptyInputError stop the analysis of a file.
Row shape problems are counted, a missing key column is a note, and
ReconciliationUnavailable is recovered inside the reconciliation service.
"""


class IngestError(Exception):
    """Base class for all ingestion errors."""


class UnsupportedFormatError(IngestError):
    """Raised when the file extension is not one of csv/txt/xls/xlsx."""


class EmptyInputError(IngestError):
    """Raised when the decoded text has no content."""


class ReconciliationUnavailable(IngestError):
    """Raised by a catalog lookup that could not be completed."""
