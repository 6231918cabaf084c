"""
GL Engines - pure calculation and validation engines.

No I/O: collaborators (chart of accounts, FX policy, SoD authorizer, clock)
are passed in.  Every engine invocation emits a GL_ENGINE_TRACE record.
"""

from gl_engines.document_lines import LineValidation, validate_document_lines
from gl_engines.journal_validator import JournalValidator
from gl_engines.tax import DocumentTotals, compute_line_tax, totals, validate_line_tax

__all__ = [
    "DocumentTotals",
    "JournalValidator",
    "LineValidation",
    "compute_line_tax",
    "totals",
    "validate_document_lines",
    "validate_line_tax",
]
