"""Tests for the QA validator (perfdash.qa.validator).

Covers month day range and consistency checks, duplicate construct/date
detection, mixed month days on one date, and the QAResult helpers.
"""

import pytest

from perfdash.errors import DataIntegrityError
from perfdash.qa.validator import Issue, QAResult, RecordValidator, validate_records
from perfdash.schema.models import Record


def _rec(**kw):
    defaults = dict(category="Streaming", market="ZA", service="Basic",
                    currency="ZAR", date="2024-01-15", month_day=15)
    defaults.update(kw)
    return Record(**defaults)


# ---------------------------------------------------------------------------
# QAResult
# ---------------------------------------------------------------------------

class TestQAResult:
    def test_empty_passes(self):
        result = QAResult()
        assert result.passed
        assert result.error_count == 0
        assert result.summary() == "QA PASS: 0 error(s), 0 warning(s)"

    def test_warnings_do_not_fail(self):
        result = QAResult(issues=[Issue("warning", 0, "", "duplicate", "dup")])
        assert result.passed
        assert result.warning_count == 1

    def test_errors_fail(self):
        result = QAResult(issues=[Issue("error", 3, "a/b/c/d", "month_day_range", "bad")])
        assert not result.passed
        assert "FAIL" in result.summary()
        assert "[ERROR] row 3 (a/b/c/d): bad" in result.report()

    def test_snapshot_level_issue_str(self):
        issue = Issue("warning", -1, "", "mixed_month_day", "disagree")
        assert str(issue) == "[WARNING] snapshot: disagree"

    def test_raise_for_errors(self):
        QAResult().raise_for_errors()
        result = QAResult(issues=[Issue("error", 0, "", "month_day_range", "bad")])
        with pytest.raises(DataIntegrityError, match="bad"):
            result.raise_for_errors()


# ---------------------------------------------------------------------------
# RecordValidator
# ---------------------------------------------------------------------------

class TestRecordValidator:
    def test_clean_snapshot(self):
        records = [_rec(), _rec(market="NG"), _rec(date="2024-01-16", month_day=16)]
        result = RecordValidator().validate(records)
        assert result.passed
        assert result.issues == []

    def test_month_day_out_of_range(self):
        result = validate_records([_rec(month_day=0), _rec(month_day=32, market="NG")])
        issues = result.by_category("month_day_range")
        assert [i.row_index for i in issues] == [0, 1]
        assert not result.passed

    def test_month_day_mismatch(self):
        result = validate_records([_rec(month_day=14)])
        issues = result.by_category("month_day_mismatch")
        assert len(issues) == 1
        assert issues[0].severity == "warning"
        assert issues[0].construct == "Streaming/ZA/Basic/ZAR"
        assert result.passed

    def test_duplicate(self):
        records = [_rec(month_revenue=1.0), _rec(market="NG"), _rec(month_revenue=2.0)]
        issues = validate_records(records).by_category("duplicate")
        assert len(issues) == 1
        assert issues[0].row_index == 2
        assert "row 0" in issues[0].message
        assert "summed" in issues[0].message

    def test_same_construct_other_currency_not_duplicate(self):
        records = [_rec(currency="ZAR"), _rec(currency="USD")]
        assert validate_records(records).by_category("duplicate") == []

    def test_mixed_month_day(self):
        records = [_rec(month_day=15), _rec(market="NG", month_day=14)]
        result = validate_records(records)
        issues = result.by_category("mixed_month_day")
        assert len(issues) == 1
        assert issues[0].row_index == -1
        assert "14, 15" in issues[0].message

    def test_empty_snapshot(self):
        assert validate_records([]).passed
