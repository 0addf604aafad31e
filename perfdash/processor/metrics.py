"""Metrics calculator: month-to-date KPIs and run rates for a record group.

``compute_date_metrics`` aggregates every row of a group on one date into
a ``DateMetrics`` block:

    mtd_revenue        = sum(month_revenue)
    month_target       = sum(month_target)
    total_base         = sum(total_subs)
    net_adds_today     = sum(new_subs)
    daily_revenue_zar  = sum(daily_revenue * usd_zar_rate)             per row
    net_adds_revenue_zar = sum(new_billed_revenue * usd_rate * usd_zar_rate)  per row
    actual_run_rate    = mtd_revenue / day_number                       (0 on day 0)
    required_run_rate  = max(0, (month_target - mtd_revenue) / remaining_days)
    percent_to_target  = mtd_revenue / month_target * 100               (0 on no target)

ZAR figures weight each row by its own exchange rate, so a multi-currency
group is never converted with a single blended rate.  Duplicate rows for
the same construct and date are summed like any other rows of the group.

``day_number`` comes from the first row of the date subset and
``days_in_month`` from the date itself; all rows on one date are expected
to share ``month_day``.  Pass ``strict=True`` to check that instead of
assuming it.
"""

import calendar

from perfdash.errors import DataIntegrityError
from perfdash.schema.models import DateMetrics, Record, ensure_records

from .dimensions import dates_for_month


def days_in_month(month: str) -> int:
    """Calendar length of ``YYYY-MM``."""
    year, mon = (int(part) for part in month.split("-"))
    return calendar.monthrange(year, mon)[1]


def _safe_div(numerator, denominator, default=0.0):
    """Divide, returning *default* when the denominator is not positive."""
    if denominator is None or denominator <= 0:
        return default
    return numerator / denominator


def _check_month_day(rows: list[Record], target_date: str) -> None:
    first = rows[0]
    for row in rows[1:]:
        if row.month_day != first.month_day:
            raise DataIntegrityError(
                f"Rows for {target_date} disagree on month day: "
                f"{first.month_day} vs {row.month_day} "
                f"({row.category}/{row.market}/{row.service}/{row.currency})"
            )


def compute_date_metrics(rows, target_date: str | None,
                         strict: bool = False) -> DateMetrics | None:
    """Aggregate a group's rows on *target_date* into a KPI block.

    Args:
        rows: Records of one group (or of the whole filtered selection).
        target_date: ``YYYY-MM-DD``.
        strict: Raise ``DataIntegrityError`` when the rows on the date
            disagree on their month day.

    Returns:
        DateMetrics, or None when no row falls on *target_date*.  None means
        "no data", which callers must not render as zeros.
    """
    rows = ensure_records(rows)
    if not target_date:
        return None
    subset = [r for r in rows if r.date == target_date]
    if not subset:
        return None
    if strict:
        _check_month_day(subset, target_date)

    mtd_revenue = sum(r.month_revenue for r in subset)
    month_target = sum(r.month_target for r in subset)
    total_base = sum(r.total_subs for r in subset)
    net_adds_today = sum(r.new_subs for r in subset)
    daily_revenue_zar = sum(r.daily_revenue * r.usd_zar_rate for r in subset)
    net_adds_revenue_zar = sum(
        r.new_billed_revenue * r.usd_rate * r.usd_zar_rate for r in subset
    )

    first = subset[0]
    day_number = first.month_day
    month_days = days_in_month(first.year_month)

    actual_run_rate = _safe_div(mtd_revenue, day_number)
    remaining_days = max(1, month_days - day_number)
    required_run_rate = max(0.0, (month_target - mtd_revenue) / remaining_days)
    percent_to_target = _safe_div(mtd_revenue, month_target) * 100

    return DateMetrics(
        date=target_date,
        day_number=day_number,
        days_in_month=month_days,
        remaining_days=remaining_days,
        mtd_revenue=mtd_revenue,
        month_target=month_target,
        percent_to_target=percent_to_target,
        actual_run_rate=actual_run_rate,
        required_run_rate=required_run_rate,
        total_base=total_base,
        net_adds_today=net_adds_today,
        daily_revenue_zar=daily_revenue_zar,
        net_adds_revenue_zar=net_adds_revenue_zar,
    )


def compute_month_metrics(rows, month: str | None,
                          strict: bool = False) -> list[DateMetrics]:
    """KPI blocks for every date of *month* present in *rows*, oldest first."""
    rows = ensure_records(rows)
    if not month:
        return []
    series = []
    for date in dates_for_month(rows, month):
        metrics = compute_date_metrics(rows, date, strict=strict)
        if metrics is not None:
            series.append(metrics)
    return series


def compute_target_to_date(month_target: float, days_in_month: int,
                           day_number: int) -> float:
    """Linear pacing benchmark: the share of target due by *day_number*."""
    return (month_target / days_in_month) * day_number


def target_to_date_series(series: list[DateMetrics]) -> list[float]:
    """Pacing line matching a month series point for point."""
    return [
        compute_target_to_date(m.month_target, m.days_in_month, m.day_number)
        for m in series
    ]
