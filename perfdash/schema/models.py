"""Typed models shared by the ingestion, metrics and presentation layers.

Defines the canonical record produced by the normalizer, the filter
selection supplied by the presentation layer, the groups and derived
metrics the engine hands back, and the snapshot metadata / configuration
documents.  JSON documents use the camelCase keys of the exported
snapshot; the Python attributes are snake_case.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from perfdash.errors import ContractViolationError


ALL = "All"
MULTIPLE_CURRENCIES = "Multiple"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ViewMode(Enum):
    """How records are grouped for the table and charts."""
    CONSTRUCT = "construct"    # category + market + service + currency
    SERVICE = "service"        # category + market + service, currencies rolled up


class Status(Enum):
    """Three-tier percent-to-target band."""
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------

def to_camel(name: str) -> str:
    """``usd_zar_rate`` -> ``usdZarRate``."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

NUMERIC_FIELDS = (
    "unsubscribed",
    "active_subs",
    "new_subs",
    "total_subs",
    "new_paid",
    "renewals_paid",
    "total_paid",
    "new_billed_revenue",
    "renewal_revenue",
    "usd_rate",
    "daily_revenue",
    "month_cumm",
    "usd_zar_rate",
    "month_revenue",
    "month_target",
    "target_run_rate",
    "actual_run_rate",
    "required_run_rate",
)

DIMENSION_FIELDS = ("category", "market", "service", "currency")


@dataclass(frozen=True)
class Record:
    """One row of the export: a category/market/service/currency on a date.

    ``date`` is always ``YYYY-MM-DD``.  ``month_day`` is stored as read from
    the source and is not re-derived from ``date``.
    """
    category: str
    market: str
    service: str
    currency: str
    date: str
    month_day: int = 0
    unsubscribed: float = 0.0
    active_subs: float = 0.0
    new_subs: float = 0.0
    total_subs: float = 0.0
    new_paid: float = 0.0
    renewals_paid: float = 0.0
    total_paid: float = 0.0
    new_billed_revenue: float = 0.0
    renewal_revenue: float = 0.0
    usd_rate: float = 0.0
    daily_revenue: float = 0.0
    month_cumm: float = 0.0
    usd_zar_rate: float = 0.0
    month_revenue: float = 0.0
    month_target: float = 0.0
    target_run_rate: float = 0.0
    actual_run_rate: float = 0.0
    required_run_rate: float = 0.0

    @property
    def year_month(self) -> str:
        return self.date[:7]

    @property
    def construct_key(self) -> tuple[str, str, str, str]:
        return (self.category, self.market, self.service, self.currency)

    def to_dict(self) -> dict:
        return {to_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Record":
        """Build a Record from a snapshot dict (camelCase keys).

        Raises:
            ContractViolationError: If *d* is not a mapping or has no date.
        """
        if not isinstance(d, Mapping):
            raise ContractViolationError(
                f"Expected a record mapping, got {type(d).__name__}"
            )
        date = d.get("date")
        if not isinstance(date, str) or not date:
            raise ContractViolationError(f"Record has no date: {dict(d)!r}")
        kwargs: dict[str, Any] = {
            name: str(d.get(name) or "") for name in DIMENSION_FIELDS
        }
        kwargs["date"] = date
        kwargs["month_day"] = int(d.get("monthDay") or 0)
        for name in NUMERIC_FIELDS:
            kwargs[name] = float(d.get(to_camel(name)) or 0.0)
        return cls(**kwargs)


def ensure_records(records) -> list[Record]:
    """Materialize *records* as a list, failing fast on anything not a Record.

    Raises:
        ContractViolationError: If *records* is not an iterable of Record.
    """
    if isinstance(records, (str, bytes, Mapping)):
        raise ContractViolationError(
            f"Expected a collection of records, got {type(records).__name__}"
        )
    try:
        items = list(records)
    except TypeError as exc:
        raise ContractViolationError(
            f"Expected a collection of records, got {type(records).__name__}"
        ) from exc
    for item in items:
        if not isinstance(item, Record):
            raise ContractViolationError(
                f"Expected Record, got {type(item).__name__}"
            )
    return items


# ---------------------------------------------------------------------------
# Filters and groups
# ---------------------------------------------------------------------------

def is_constrained(value: str | None) -> bool:
    """True when a filter value narrows the selection (not empty, not ``All``)."""
    return bool(value) and value != ALL


@dataclass(frozen=True)
class FilterSpec:
    """The dashboard's filter bar state.

    ``All`` or an empty value means "no constraint".  ``currency`` only
    applies in construct view.  ``date`` selects the KPI date and does not
    narrow the record set.
    """
    category: str = ALL
    market: str = ALL
    service: str = ALL
    currency: str = ALL
    view_mode: ViewMode = ViewMode.CONSTRUCT
    month: str | None = None
    date: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "view_mode", ViewMode(self.view_mode))

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "market": self.market,
            "service": self.service,
            "currency": self.currency,
            "viewMode": self.view_mode.value,
            "month": self.month,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "FilterSpec":
        return cls(
            category=d.get("category") or ALL,
            market=d.get("market") or ALL,
            service=d.get("service") or ALL,
            currency=d.get("currency") or ALL,
            view_mode=ViewMode(d.get("viewMode", d.get("view_mode", "construct"))),
            month=d.get("month") or None,
            date=d.get("date") or None,
        )


@dataclass(frozen=True)
class Group:
    """A partition of records sharing a construct (or service roll-up) key."""
    category: str
    market: str
    service: str
    currency: str
    rows: tuple[Record, ...] = ()

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.category, self.market, self.service, self.currency)


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------

_METRIC_KEYS = {
    "date": "date",
    "day_number": "dayNumber",
    "days_in_month": "daysInMonth",
    "remaining_days": "remainingDays",
    "mtd_revenue": "mtdRevenue",
    "month_target": "monthTarget",
    "percent_to_target": "percentToTarget",
    "actual_run_rate": "actualRunRate",
    "required_run_rate": "requiredRunRate",
    "total_base": "totalBase",
    "net_adds_today": "netAddsToday",
    "daily_revenue_zar": "dailyRevenueZAR",
    "net_adds_revenue_zar": "netAddsRevenueZAR",
}


@dataclass(frozen=True)
class DateMetrics:
    """KPI block for one group of records on one date."""
    date: str
    day_number: int
    days_in_month: int
    remaining_days: int
    mtd_revenue: float
    month_target: float
    percent_to_target: float
    actual_run_rate: float
    required_run_rate: float
    total_base: float
    net_adds_today: float
    daily_revenue_zar: float
    net_adds_revenue_zar: float

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in _METRIC_KEYS.items()}


_DETAIL_KEYS = {
    "category": "category",
    "market": "market",
    "service": "service",
    "currency": "currency",
    "mtd_revenue": "mtdRevenue",
    "month_target": "monthTarget",
    "percent_to_target": "percentToTarget",
    "actual_run_rate": "actualRunRate",
    "required_run_rate": "requiredRunRate",
    "total_base": "totalBase",
    "net_adds_today": "netAddsToday",
    "daily_revenue_zar": "dailyRevenueZAR",
    "net_adds_revenue_zar": "netAddsRevenueZAR",
    "latest_mtd": "latestMTD",
    "target_variance": "targetVariance",
}


@dataclass(frozen=True)
class DetailRow:
    """One line of the detail table: a group's KPIs on the selected date."""
    category: str
    market: str
    service: str
    currency: str
    mtd_revenue: float
    month_target: float
    percent_to_target: float
    actual_run_rate: float
    required_run_rate: float
    total_base: float
    net_adds_today: float
    daily_revenue_zar: float
    net_adds_revenue_zar: float
    latest_mtd: float
    target_variance: float

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in _DETAIL_KEYS.items()}


# ---------------------------------------------------------------------------
# Snapshot metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Metadata:
    """Summary document written alongside the record snapshot."""
    last_updated: str | None = None
    row_count: int = 0
    date_min: str | None = None
    date_max: str | None = None
    categories: tuple[str, ...] = ()
    markets: tuple[str, ...] = ()
    services: tuple[str, ...] = ()
    currencies: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "lastUpdated": self.last_updated,
            "rowCount": self.row_count,
            "dateRange": {"min": self.date_min, "max": self.date_max},
            "dimensions": {
                "categories": list(self.categories),
                "markets": list(self.markets),
                "services": list(self.services),
                "currencies": list(self.currencies),
            },
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Metadata":
        date_range = d.get("dateRange") or {}
        dims = d.get("dimensions") or {}
        return cls(
            last_updated=d.get("lastUpdated"),
            row_count=int(d.get("rowCount", 0)),
            date_min=date_range.get("min"),
            date_max=date_range.get("max"),
            categories=tuple(dims.get("categories", ())),
            markets=tuple(dims.get("markets", ())),
            services=tuple(dims.get("services", ())),
            currencies=tuple(dims.get("currencies", ())),
        )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatusThresholds:
    """Lower bounds (inclusive) of the green and amber bands, in percent."""
    green: float = 100.0
    amber: float = 80.0

    def to_dict(self) -> dict:
        return {"green": self.green, "amber": self.amber}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "StatusThresholds":
        return cls(
            green=float(d.get("green", 100.0)),
            amber=float(d.get("amber", 80.0)),
        )


@dataclass(frozen=True)
class DashboardConfig:
    """Where the export comes from and where the snapshot goes."""
    sheet_id: str = ""
    sheet_name: str = "Sheet1"
    gid: str = "0"
    skip_rows: tuple[int, ...] = (2,)
    output_dir: str = "public/data"
    status_thresholds: StatusThresholds = field(default_factory=StatusThresholds)

    def to_dict(self) -> dict:
        return {
            "sheet_id": self.sheet_id,
            "sheet_name": self.sheet_name,
            "gid": self.gid,
            "skip_rows": list(self.skip_rows),
            "output_dir": self.output_dir,
            "status_thresholds": self.status_thresholds.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "DashboardConfig":
        return cls(
            sheet_id=str(d.get("sheet_id", "")),
            sheet_name=str(d.get("sheet_name", "Sheet1")),
            gid=str(d.get("gid", "0")),
            skip_rows=tuple(int(r) for r in d.get("skip_rows", [2]) or []),
            output_dir=str(d.get("output_dir", "public/data")),
            status_thresholds=StatusThresholds.from_dict(
                d.get("status_thresholds") or {}
            ),
        )
