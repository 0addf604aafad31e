"""QA validator: integrity checks on a normalized record snapshot.

The metrics engine trusts its input: ``month_day`` is used as stored and
duplicate construct/date rows are summed.  This validator reports where a
snapshot breaks those assumptions so a refresh can flag bad exports:

- ``month_day_range``: month day outside 1..31 (error)
- ``month_day_mismatch``: month day differs from the date's day (warning)
- ``duplicate``: same category/market/service/currency/date twice (warning)
- ``mixed_month_day``: rows on one date disagree on month day (warning)

Usage::

    from perfdash.qa.validator import RecordValidator

    result = RecordValidator().validate(records)
    if not result.passed:
        print(result.report())
"""

from collections import defaultdict
from dataclasses import dataclass, field

from perfdash.errors import DataIntegrityError
from perfdash.schema.models import Record, ensure_records


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    row_index: int      # -1 for snapshot-level issues
    construct: str      # "category/market/service/currency", "" if n/a
    category: str       # e.g. "duplicate", "month_day_mismatch"
    message: str

    def __str__(self) -> str:
        loc = f"row {self.row_index}" if self.row_index >= 0 else "snapshot"
        if self.construct:
            loc += f" ({self.construct})"
        return f"[{self.severity.upper()}] {loc}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of QA validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def by_category(self, category: str) -> list[Issue]:
        return [i for i in self.issues if i.category == category]

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)

    def raise_for_errors(self) -> None:
        """Raise DataIntegrityError if any error-level issue was found."""
        if not self.passed:
            raise DataIntegrityError(self.report())


def _construct(record: Record) -> str:
    return "/".join(record.construct_key)


# ---------------------------------------------------------------------------
# RecordValidator
# ---------------------------------------------------------------------------

class RecordValidator:
    """Runs every integrity check over a record snapshot."""

    def validate(self, records) -> QAResult:
        records = ensure_records(records)
        result = QAResult()
        self._check_month_days(records, result)
        self._check_duplicates(records, result)
        self._check_mixed_month_days(records, result)
        return result

    def _check_month_days(self, records: list[Record], result: QAResult) -> None:
        for index, record in enumerate(records):
            if not 1 <= record.month_day <= 31:
                result.issues.append(Issue(
                    severity="error",
                    row_index=index,
                    construct=_construct(record),
                    category="month_day_range",
                    message=f"Month day {record.month_day} is outside 1..31",
                ))
                continue
            day = int(record.date[8:10])
            if record.month_day != day:
                result.issues.append(Issue(
                    severity="warning",
                    row_index=index,
                    construct=_construct(record),
                    category="month_day_mismatch",
                    message=(
                        f"Month day {record.month_day} does not match "
                        f"date {record.date}"
                    ),
                ))

    def _check_duplicates(self, records: list[Record], result: QAResult) -> None:
        seen: dict[tuple, int] = {}
        for index, record in enumerate(records):
            key = record.construct_key + (record.date,)
            if key in seen:
                result.issues.append(Issue(
                    severity="warning",
                    row_index=index,
                    construct=_construct(record),
                    category="duplicate",
                    message=(
                        f"Duplicate of row {seen[key]} on {record.date}; "
                        f"values will be summed"
                    ),
                ))
            else:
                seen[key] = index

    def _check_mixed_month_days(self, records: list[Record], result: QAResult) -> None:
        by_date: dict[str, set[int]] = defaultdict(set)
        for record in records:
            by_date[record.date].add(record.month_day)
        for date in sorted(by_date):
            days = by_date[date]
            if len(days) > 1:
                result.issues.append(Issue(
                    severity="warning",
                    row_index=-1,
                    construct="",
                    category="mixed_month_day",
                    message=(
                        f"Rows on {date} disagree on month day: "
                        f"{', '.join(str(d) for d in sorted(days))}"
                    ),
                ))


def validate_records(records) -> QAResult:
    """Convenience wrapper: ``RecordValidator().validate(records)``."""
    return RecordValidator().validate(records)
