"""Application state for the dashboard.

``AppState`` is an immutable value: the loaded snapshot, its metadata, the
current filters and the chart toggle.  Interactions produce a new state
through ``reduce(state, action)``; nothing is updated in place and no
module-level state is read by the engine.

Actions are plain dicts with a ``type`` key::

    {"type": "set_filter", "field": "market", "value": "ZA"}
    {"type": "set_view_mode", "value": "service"}
    {"type": "set_month", "value": "2024-02"}
    {"type": "toggle_target_to_date"}
"""

from dataclasses import dataclass, field, replace

from perfdash.schema.models import (
    FilterSpec,
    Metadata,
    Record,
    StatusThresholds,
    ViewMode,
    ensure_records,
)

from .dimensions import latest_date_in_month, latest_month
from .transform import DashboardTransformer, DashboardView


FILTER_FIELDS = ("category", "market", "service", "currency", "date")


@dataclass(frozen=True)
class AppState:
    records: tuple[Record, ...] = ()
    metadata: Metadata | None = None
    filters: FilterSpec = field(default_factory=FilterSpec)
    show_target_to_date: bool = False
    thresholds: StatusThresholds = field(default_factory=StatusThresholds)

    def view(self) -> DashboardView:
        """Recompute the dashboard for the current filters."""
        transformer = DashboardTransformer(
            self.filters,
            show_target_to_date=self.show_target_to_date,
            thresholds=self.thresholds,
        )
        return transformer.transform(self.records)


def initial_state(records, metadata: Metadata | None = None) -> AppState:
    """State for a freshly loaded snapshot: latest month, latest date in it."""
    records = tuple(ensure_records(records))
    month = latest_month(records)
    filters = FilterSpec(month=month, date=latest_date_in_month(records, month))
    return AppState(records=records, metadata=metadata, filters=filters)


# ---------------------------------------------------------------------------
# Reducers
# ---------------------------------------------------------------------------

def _set_filter(state: AppState, action: dict) -> AppState:
    name = action.get("field")
    if name not in FILTER_FIELDS:
        raise ValueError(
            f"Unknown filter field '{name}'. "
            f"Valid fields: {', '.join(FILTER_FIELDS)}"
        )
    filters = replace(state.filters, **{name: action.get("value")})
    return replace(state, filters=filters)


def _set_view_mode(state: AppState, action: dict) -> AppState:
    filters = replace(state.filters, view_mode=ViewMode(action["value"]))
    return replace(state, filters=filters)


def _set_month(state: AppState, action: dict) -> AppState:
    month = action.get("value") or None
    filters = replace(
        state.filters,
        month=month,
        date=latest_date_in_month(state.records, month),
    )
    return replace(state, filters=filters)


def _toggle_target_to_date(state: AppState, action: dict) -> AppState:
    return replace(state, show_target_to_date=not state.show_target_to_date)


def _load(state: AppState, action: dict) -> AppState:
    loaded = initial_state(action.get("records", ()), action.get("metadata"))
    return replace(
        loaded,
        show_target_to_date=state.show_target_to_date,
        thresholds=state.thresholds,
    )


REDUCERS = {
    "set_filter": _set_filter,
    "set_view_mode": _set_view_mode,
    "set_month": _set_month,
    "toggle_target_to_date": _toggle_target_to_date,
    "load": _load,
}


def reduce(state: AppState, action: dict) -> AppState:
    """Apply one action, returning a new state.

    Raises:
        ValueError: If the action type is not recognized.
    """
    action_type = action.get("type")
    if action_type not in REDUCERS:
        raise ValueError(
            f"Unknown action type '{action_type}'. "
            f"Valid types: {', '.join(sorted(REDUCERS))}"
        )
    return REDUCERS[action_type](state, action)
