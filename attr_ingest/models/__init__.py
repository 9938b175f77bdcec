"""Domain models for the spreadsheet → canonical attribute pipeline."""

from .analysis_result import AnalysisResult
from .attributes import GenericColumnStat, PivotedProduct, UniqueAttribute
from .error_record import ErrorRecord
from .match_result import MatchResult, ReconciliationOutcome
from .processing_result import FileStat, ProcessingResult
from .source_file import FileStatus, SourceFile
from .table import AttributeSlot, DecodedTable

__all__ = [
    # Table structure
    "DecodedTable",
    "AttributeSlot",
    # Attributes
    "PivotedProduct",
    "UniqueAttribute",
    "GenericColumnStat",
    # Results
    "AnalysisResult",
    "MatchResult",
    "ReconciliationOutcome",
    "FileStat",
    "ProcessingResult",
    "FileStatus",
    "SourceFile",
    "ErrorRecord",
]
