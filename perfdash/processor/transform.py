"""Data transformation module for the performance dashboard.

Takes the loaded record snapshot and a ``FilterSpec`` and produces
everything the presentation layer renders for one filter state:

- the groups for the selected view mode
- the KPI block for the selected date (or None: "no data")
- the month time series for the trend and run-rate charts, with an
  optional target-to-date pacing line
- the detail table rows

The ``DashboardTransformer`` holds no state between calls; the same
snapshot and filters always produce the same view.

Usage::

    records, metadata = load_snapshot("public/data")
    filters = FilterSpec(month="2024-01", date="2024-01-15")
    view = DashboardTransformer(filters).transform(records)
    view.kpis          # DateMetrics | None
    view.detail_rows   # list[DetailRow]
"""

from dataclasses import dataclass, field

from perfdash.schema.design_system import DEFAULT_THRESHOLDS, classify, run_rate_on_track
from perfdash.schema.models import (
    DateMetrics,
    DetailRow,
    FilterSpec,
    Group,
    Record,
    Status,
    StatusThresholds,
    ViewMode,
    ensure_records,
)

from .filters import filter_records
from .grouping import flatten, group_records
from .metrics import compute_date_metrics, compute_month_metrics, target_to_date_series


# ---------------------------------------------------------------------------
# View payload
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DashboardView:
    """Everything rendered for one filter state."""
    filters: FilterSpec
    groups: list[Group] = field(default_factory=list)
    kpis: DateMetrics | None = None
    status: Status | None = None
    on_track: bool | None = None
    month_series: list[DateMetrics] = field(default_factory=list)
    target_to_date: list[float] | None = None
    detail_rows: list[DetailRow] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.kpis is not None

    @property
    def show_currency(self) -> bool:
        return self.filters.view_mode is ViewMode.CONSTRUCT

    def to_dict(self) -> dict:
        return {
            "filters": self.filters.to_dict(),
            "kpis": self.kpis.to_dict() if self.kpis else None,
            "status": self.status.value if self.status else None,
            "onTrack": self.on_track,
            "monthSeries": [m.to_dict() for m in self.month_series],
            "targetToDate": self.target_to_date,
            "detailRows": [r.to_dict() for r in self.detail_rows],
        }


# ---------------------------------------------------------------------------
# DashboardTransformer
# ---------------------------------------------------------------------------

class DashboardTransformer:
    """Turns a record snapshot into a dashboard view for one filter state.

    Args:
        filters: Filter bar selection.  ``filters.date`` picks the KPI date
            and ``filters.month`` the chart month.
        show_target_to_date: Include the pacing line with the month series.
        thresholds: Status band boundaries.
    """

    def __init__(self, filters: FilterSpec, show_target_to_date: bool = False,
                 thresholds: StatusThresholds = DEFAULT_THRESHOLDS):
        self.filters = filters
        self.show_target_to_date = show_target_to_date
        self.thresholds = thresholds

    def transform(self, records) -> DashboardView:
        records = ensure_records(records)
        filtered = filter_records(records, self.filters)
        groups = group_records(filtered, self.filters.view_mode)
        rows = flatten(groups)

        kpis = compute_date_metrics(rows, self.filters.date)
        series = compute_month_metrics(rows, self.filters.month)

        return DashboardView(
            filters=self.filters,
            groups=groups,
            kpis=kpis,
            status=classify(kpis.percent_to_target, self.thresholds) if kpis else None,
            on_track=(run_rate_on_track(kpis.actual_run_rate, kpis.required_run_rate)
                      if kpis else None),
            month_series=series,
            target_to_date=target_to_date_series(series) if self.show_target_to_date else None,
            detail_rows=self.detail_rows(groups),
        )

    def detail_rows(self, groups: list[Group]) -> list[DetailRow]:
        """One table row per group with data on the selected date."""
        table = []
        for group in groups:
            row = self._detail_row(group)
            if row is not None:
                table.append(row)
        return table

    def _detail_row(self, group: Group) -> DetailRow | None:
        metrics = compute_date_metrics(group.rows, self.filters.date)
        if metrics is None:
            return None
        series = compute_month_metrics(group.rows, self.filters.month)
        latest_mtd = series[-1].mtd_revenue if series else 0.0
        return DetailRow(
            category=group.category,
            market=group.market,
            service=group.service,
            currency=group.currency,
            mtd_revenue=metrics.mtd_revenue,
            month_target=metrics.month_target,
            percent_to_target=metrics.percent_to_target,
            actual_run_rate=metrics.actual_run_rate,
            required_run_rate=metrics.required_run_rate,
            total_base=metrics.total_base,
            net_adds_today=metrics.net_adds_today,
            daily_revenue_zar=metrics.daily_revenue_zar,
            net_adds_revenue_zar=metrics.net_adds_revenue_zar,
            latest_mtd=latest_mtd,
            target_variance=metrics.month_target - latest_mtd,
        )


def build_dashboard(records: list[Record], filters: FilterSpec,
                    show_target_to_date: bool = False) -> DashboardView:
    """Convenience wrapper: ``DashboardTransformer(filters).transform(records)``."""
    return DashboardTransformer(filters, show_target_to_date).transform(records)
