"""Data processor module for the performance dashboard."""

from .dimensions import (
    available_months,
    build_metadata,
    dates_for_month,
    dimension_index,
    latest_date_in_month,
    latest_month,
    unique_values,
)
from .filters import filter_records
from .grouping import flatten, group_by_construct, group_by_service, group_records
from .ingestion import (
    NormalizationResult,
    clean_columns,
    detect_encoding,
    fetch_sheet_csv,
    normalize_rows,
    parse_date,
    parse_numeric,
    read_csv_auto,
    read_csv_text,
    read_tabular,
    sheet_csv_url,
)
from .metrics import (
    compute_date_metrics,
    compute_month_metrics,
    compute_target_to_date,
    days_in_month,
    target_to_date_series,
)
from .state import AppState, initial_state, reduce
from .transform import (
    DashboardTransformer,
    DashboardView,
    build_dashboard,
)
