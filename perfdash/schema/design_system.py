"""Design system utilities: status bands and value formatting.

Formatting rules used by the dashboard:
- Numbers: thousands separators, fixed decimals (default 0)
- Currency: "R " prefix on a formatted number (amounts are shown in ZAR)
- Percentages: X.X%
- Missing values (None / NaN) render as "-"

Status bands on percent-to-target:
- >= 100 -> green
- >= 80  -> amber
- else   -> red
"""

import calendar
import math

from .models import Status, StatusThresholds


DEFAULT_THRESHOLDS = StatusThresholds()

STATUS_CSS_CLASSES = {
    Status.GREEN: "status-good",
    Status.AMBER: "status-warning",
    Status.RED: "status-danger",
}


def classify(percent_to_target: float,
             thresholds: StatusThresholds = DEFAULT_THRESHOLDS) -> Status:
    """Map a percent-to-target value to its status band.

    Boundaries are closed: a value exactly on a threshold takes the higher
    band.
    """
    if percent_to_target >= thresholds.green:
        return Status.GREEN
    if percent_to_target >= thresholds.amber:
        return Status.AMBER
    return Status.RED


def status_css_class(status: Status) -> str:
    return STATUS_CSS_CLASSES[status]


def run_rate_on_track(actual_run_rate: float, required_run_rate: float) -> bool:
    """True when the month is pacing at or above the required daily rate."""
    return actual_run_rate >= required_run_rate


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_number(value: float | int | None, decimals: int = 0) -> str:
    """Format a number with comma separators and fixed decimals."""
    if _is_missing(value):
        return "-"
    return f"{value:,.{decimals}f}"


def format_currency(value: float | int | None, decimals: int = 0) -> str:
    """Format a ZAR amount as ``R 1,234``."""
    if _is_missing(value):
        return "-"
    return "R " + format_number(value, decimals)


def format_percent(value: float | int | None, decimals: int = 1) -> str:
    """Format a percentage as ``X.X%``."""
    if _is_missing(value):
        return "-"
    return format_number(value, decimals) + "%"


def format_month(year_month: str) -> str:
    """``2024-01`` -> ``Jan 2024``."""
    year, month = year_month.split("-")
    return f"{calendar.month_abbr[int(month)]} {year}"
