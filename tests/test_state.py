"""Tests for the dashboard application state."""

import pytest

from perfdash.errors import ContractViolationError
from perfdash.processor.state import AppState, initial_state, reduce
from perfdash.schema.models import Metadata, Record, ViewMode


def _rec(**kw):
    defaults = dict(category="Streaming", market="ZA", service="Basic",
                    currency="ZAR", date="2024-01-15", month_day=15)
    defaults.update(kw)
    return Record(**defaults)


@pytest.fixture
def records():
    return [
        _rec(date="2024-01-30", month_day=30, month_revenue=3000.0,
             month_target=3100.0),
        _rec(date="2024-02-02", month_day=2, month_revenue=200.0,
             month_target=2900.0),
        _rec(date="2024-02-05", month_day=5, month_revenue=500.0,
             month_target=2900.0),
        _rec(market="NG", date="2024-02-05", month_day=5, month_revenue=50.0,
             month_target=290.0),
    ]


@pytest.fixture
def state(records):
    return initial_state(records, Metadata(row_count=len(records)))


class TestInitialState:
    def test_latest_month_and_date(self, state):
        assert state.filters.month == "2024-02"
        assert state.filters.date == "2024-02-05"
        assert state.filters.view_mode is ViewMode.CONSTRUCT
        assert not state.show_target_to_date

    def test_records_are_a_tuple(self, state):
        assert isinstance(state.records, tuple)
        assert state.metadata.row_count == 4

    def test_empty_snapshot(self):
        state = initial_state([])
        assert state.filters.month is None
        assert state.filters.date is None
        assert not state.view().has_data

    def test_rejects_non_records(self):
        with pytest.raises(ContractViolationError):
            initial_state([{"date": "2024-01-15"}])


class TestReduce:
    def test_set_filter(self, state):
        new = reduce(state, {"type": "set_filter", "field": "market", "value": "NG"})
        assert new.filters.market == "NG"
        assert state.filters.market == "All"

    def test_set_filter_date(self, state):
        new = reduce(state, {"type": "set_filter", "field": "date",
                             "value": "2024-02-02"})
        assert new.filters.date == "2024-02-02"
        assert new.filters.month == "2024-02"

    def test_unknown_filter_field(self, state):
        with pytest.raises(ValueError, match="Unknown filter field"):
            reduce(state, {"type": "set_filter", "field": "month", "value": "x"})

    def test_set_view_mode(self, state):
        new = reduce(state, {"type": "set_view_mode", "value": "service"})
        assert new.filters.view_mode is ViewMode.SERVICE

    def test_set_month_resets_date(self, state):
        new = reduce(state, {"type": "set_month", "value": "2024-01"})
        assert new.filters.month == "2024-01"
        assert new.filters.date == "2024-01-30"

    def test_set_month_without_data(self, state):
        new = reduce(state, {"type": "set_month", "value": "2023-06"})
        assert new.filters.month == "2023-06"
        assert new.filters.date is None

    def test_toggle_target_to_date(self, state):
        on = reduce(state, {"type": "toggle_target_to_date"})
        off = reduce(on, {"type": "toggle_target_to_date"})
        assert on.show_target_to_date
        assert not off.show_target_to_date

    def test_load_keeps_preferences(self, state):
        toggled = reduce(state, {"type": "toggle_target_to_date"})
        new = reduce(toggled, {"type": "load",
                               "records": [_rec(date="2024-03-01", month_day=1)]})
        assert new.filters.month == "2024-03"
        assert new.filters.date == "2024-03-01"
        assert new.show_target_to_date

    def test_unknown_action(self, state):
        with pytest.raises(ValueError, match="Unknown action type"):
            reduce(state, {"type": "refresh"})

    def test_state_is_frozen(self, state):
        with pytest.raises(AttributeError):
            state.show_target_to_date = True


class TestView:
    def test_view_follows_filters(self, state):
        view = state.view()
        assert view.kpis.mtd_revenue == pytest.approx(550.0)
        narrowed = reduce(state, {"type": "set_filter", "field": "market",
                                  "value": "ZA"}).view()
        assert narrowed.kpis.mtd_revenue == pytest.approx(500.0)

    def test_view_is_deterministic(self, state):
        assert state.view() == state.view()

    def test_default_state(self):
        assert not AppState().view().has_data
