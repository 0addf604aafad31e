"""Schema package: typed models, formatting and persistence.

- models.py: Record, FilterSpec, Group, DateMetrics, Metadata, config
- design_system.py: status bands and value formatting
- loader.py: YAML config and JSON snapshot serialization
"""

from .design_system import (
    classify,
    format_currency,
    format_month,
    format_number,
    format_percent,
    run_rate_on_track,
    status_css_class,
)
from .loader import (
    load_config,
    load_metadata,
    load_records,
    load_snapshot,
    save_config,
    save_snapshot,
)
from .models import (
    ALL,
    MULTIPLE_CURRENCIES,
    DashboardConfig,
    DateMetrics,
    DetailRow,
    FilterSpec,
    Group,
    Metadata,
    Record,
    Status,
    StatusThresholds,
    ViewMode,
)

__all__ = [
    # Models
    "ALL",
    "MULTIPLE_CURRENCIES",
    "DashboardConfig",
    "DateMetrics",
    "DetailRow",
    "FilterSpec",
    "Group",
    "Metadata",
    "Record",
    "Status",
    "StatusThresholds",
    "ViewMode",
    # Loader
    "load_config",
    "load_metadata",
    "load_records",
    "load_snapshot",
    "save_config",
    "save_snapshot",
    # Formatting
    "classify",
    "format_currency",
    "format_month",
    "format_number",
    "format_percent",
    "run_rate_on_track",
    "status_css_class",
]
