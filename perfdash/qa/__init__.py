"""QA validation package for the performance dashboard.

Checks a normalized snapshot for month-day inconsistencies and duplicate
construct/date rows before it is published.
"""

from .validator import (
    Issue,
    QAResult,
    RecordValidator,
    validate_records,
)

__all__ = [
    "Issue",
    "QAResult",
    "RecordValidator",
    "validate_records",
]
