"""End-to-end tests: raw export text through normalization, snapshot and
the dashboard view.

Each test starts from CSV text as the sheet export delivers it, so column
aliasing, numeric and date coercion, skip rows, grouping and the metrics
all run together.
"""

import pytest

from perfdash.generator.export import rows_to_csv
from perfdash.processor.dimensions import build_metadata, dimension_index
from perfdash.processor.ingestion import normalize_rows, read_csv_text
from perfdash.processor.metrics import compute_date_metrics
from perfdash.processor.state import initial_state, reduce
from perfdash.processor.transform import build_dashboard
from perfdash.qa.validator import validate_records
from perfdash.schema.loader import load_snapshot, save_snapshot
from perfdash.schema.models import FilterSpec, ViewMode


HEADER = ("Category,Market,Service,Month Day,Date,Currency,Daily Revenue,"
          "USD/ZAR,Month Revenue,Month Target\n")


def _records(body, skip_rows=(2,)):
    return normalize_rows(read_csv_text(HEADER + body), skip_rows=skip_rows).records


class TestDuplicateRows:
    BODY = (
        "x,x,x,,,,,,,\n"
        "Streaming,ZA,Basic,15,2024-01-15,ZAR,100,1,1000,2000\n"
        "Streaming,ZA,Basic,15,2024-01-15,ZAR,50,1,500,1000\n"
    )

    def test_duplicates_summed_everywhere(self):
        records = _records(self.BODY)
        assert len(records) == 2

        kpis = compute_date_metrics(records, "2024-01-15")
        assert kpis.mtd_revenue == pytest.approx(1500.0)
        assert kpis.month_target == pytest.approx(3000.0)
        assert kpis.daily_revenue_zar == pytest.approx(150.0)

        view = build_dashboard(records, FilterSpec(month="2024-01", date="2024-01-15"))
        assert len(view.detail_rows) == 1
        assert view.detail_rows[0].mtd_revenue == pytest.approx(1500.0)
        assert view.kpis == kpis

    def test_duplicates_flagged_by_qa(self):
        result = validate_records(_records(self.BODY))
        assert result.passed
        assert len(result.by_category("duplicate")) == 1


class TestRunRates:
    def test_non_leap_february(self):
        records = _records("x,x,x,,,,,,,\n"
                           "Streaming,ZA,Basic,10,2023-02-10,ZAR,0,1,1000,2000\n")
        kpis = compute_date_metrics(records, "2023-02-10")
        assert kpis.actual_run_rate == pytest.approx(100.0)
        assert kpis.days_in_month == 28
        assert kpis.remaining_days == 18
        assert kpis.required_run_rate == pytest.approx(1000.0 / 18)
        assert kpis.percent_to_target == pytest.approx(50.0)

    def test_leap_february(self):
        records = _records("x,x,x,,,,,,,\n"
                           "Streaming,ZA,Basic,10,2024-02-10,ZAR,0,1,1000,2000\n")
        kpis = compute_date_metrics(records, "2024-02-10")
        assert kpis.days_in_month == 29
        assert kpis.remaining_days == 19
        assert kpis.required_run_rate == pytest.approx(1000.0 / 19)


class TestCurrencyWeighting:
    def test_each_row_uses_its_own_rate(self):
        records = _records(
            "x,x,x,,,,,,,\n"
            "Streaming,ZA,Basic,15,2024-01-15,USD,100,18.5,0,0\n"
            "Streaming,ZA,Basic,15,2024-01-15,USD,50,19.0,0,0\n"
        )
        kpis = compute_date_metrics(records, "2024-01-15")
        assert kpis.daily_revenue_zar == pytest.approx(2800.0)

    def test_service_view_rolls_up(self):
        records = _records(
            "x,x,x,,,,,,,\n"
            "Streaming,ZA,Basic,15,2024-01-15,USD,100,18.5,0,0\n"
            "Streaming,ZA,Basic,15,2024-01-15,ZAR,950,1,0,0\n"
        )
        construct = build_dashboard(records, FilterSpec(date="2024-01-15"))
        service = build_dashboard(
            records, FilterSpec(view_mode=ViewMode.SERVICE, date="2024-01-15"))
        assert len(construct.detail_rows) == 2
        assert len(service.detail_rows) == 1
        assert service.detail_rows[0].daily_revenue_zar == pytest.approx(2800.0)


class TestCoercion:
    def test_numeric_strings(self):
        records = _records(
            "x,x,x,,,,,,,\n"
            'Streaming,ZA,Basic,15,2024-01-15,ZAR,"$1,234.56",1,R 500,\n'
            "Streaming,ZA,Basic,15,2024-01-15,ZAR,-45.2,1,,\n"
        )
        assert records[0].daily_revenue == pytest.approx(1234.56)
        assert records[0].month_revenue == 500.0
        assert records[0].month_target == 0.0
        assert records[1].daily_revenue == pytest.approx(-45.2)
        assert records[1].month_revenue == 0.0

    def test_dates(self):
        records = _records(
            "x,x,x,,,,,,,\n"
            "Streaming,ZA,Basic,15,2024-01-15,ZAR,1,1,1,1\n"
            "Streaming,NG,Basic,15,01/15/2024,ZAR,1,1,1,1\n"
            "Streaming,KE,Basic,15,not-a-date,ZAR,1,1,1,1\n"
        )
        assert [r.date for r in records] == ["2024-01-15", "2024-01-15"]
        assert [r.market for r in records] == ["ZA", "NG"]

    def test_missing_currency_defaults(self):
        records = _records("x,x,x,,,,,,,\n"
                           "Streaming,ZA,Basic,15,2024-01-15,,1,1,1,1\n")
        assert records[0].currency == "USD"


class TestSnapshotPipeline:
    BODY = (
        "Note,,,,,,,,,\n"
        "Streaming,ZA,Basic,1,2024-01-01,ZAR,100,1,100,3100\n"
        "Streaming,ZA,Basic,2,2024-01-02,ZAR,100,1,200,3100\n"
        "Streaming,NG,Premium,2,2024-01-02,USD,10,18.5,20,62\n"
        "Gaming,ZA,Pro,1,2024-02-01,ZAR,50,1,50,2900\n"
    )

    def test_refresh_then_dashboard(self, tmp_path):
        records = _records(self.BODY)
        save_snapshot(records, build_metadata(records), tmp_path)
        loaded, meta = load_snapshot(tmp_path)
        assert loaded == records
        assert meta.row_count == 4
        assert dimension_index(loaded)["months"] == ["2024-01", "2024-02"]

        state = initial_state(loaded, meta)
        assert state.filters.month == "2024-02"
        assert state.filters.date == "2024-02-01"

        state = reduce(state, {"type": "set_month", "value": "2024-01"})
        state = reduce(state, {"type": "toggle_target_to_date"})
        view = state.view()
        assert view.kpis.date == "2024-01-02"
        assert view.kpis.mtd_revenue == pytest.approx(220.0)
        assert view.kpis.daily_revenue_zar == pytest.approx(100.0 + 185.0)
        assert [m.date for m in view.month_series] == ["2024-01-01", "2024-01-02"]
        assert view.target_to_date == pytest.approx([100.0, 2 * 3162.0 / 31])

        text = rows_to_csv(view.detail_rows)
        assert text.splitlines()[1].startswith("Streaming,ZA,Basic,ZAR,200,")

    def test_skip_rows_follow_sheet_numbering(self):
        records = _records(self.BODY, skip_rows=(2, 4))
        assert [r.market for r in records] == ["ZA", "NG", "ZA"]
        assert records[0].date == "2024-01-01"
