"""Dimension indexer: unique values, months and dates present in a snapshot.

Feeds the filter bar (dropdown options), picks default filter state
(latest month, latest date in that month) and builds the metadata
document written alongside each snapshot.
"""

from datetime import datetime, timezone

from perfdash.schema.models import DIMENSION_FIELDS, Metadata, Record, ensure_records


def unique_values(records, field_name: str) -> list[str]:
    """Sorted unique non-empty values of a dimension field."""
    if field_name not in DIMENSION_FIELDS:
        raise ValueError(
            f"Unknown dimension '{field_name}'. "
            f"Valid dimensions: {', '.join(DIMENSION_FIELDS)}"
        )
    values = {getattr(r, field_name) for r in ensure_records(records)}
    return sorted(v for v in values if v)


def available_months(records) -> list[str]:
    """Sorted ``YYYY-MM`` strings present in the records."""
    return sorted({r.year_month for r in ensure_records(records)})


def dates_for_month(records, month: str) -> list[str]:
    """Sorted distinct dates within *month* (``YYYY-MM``)."""
    return sorted({r.date for r in ensure_records(records) if r.year_month == month})


def latest_month(records) -> str | None:
    months = available_months(records)
    return months[-1] if months else None


def latest_date_in_month(records, month: str | None) -> str | None:
    if not month:
        return None
    dates = dates_for_month(records, month)
    return dates[-1] if dates else None


def dimension_index(records) -> dict[str, list[str]]:
    """All filter-bar options in one pass over the snapshot."""
    records = ensure_records(records)
    return {
        "categories": unique_values(records, "category"),
        "markets": unique_values(records, "market"),
        "services": unique_values(records, "service"),
        "currencies": unique_values(records, "currency"),
        "months": available_months(records),
    }


def build_metadata(records: list[Record], now: datetime | None = None) -> Metadata:
    """Summarize a snapshot for meta.json."""
    records = ensure_records(records)
    now = now or datetime.now(timezone.utc)
    dates = sorted(r.date for r in records)
    index = dimension_index(records)
    return Metadata(
        last_updated=now.isoformat(),
        row_count=len(records),
        date_min=dates[0] if dates else None,
        date_max=dates[-1] if dates else None,
        categories=tuple(index["categories"]),
        markets=tuple(index["markets"]),
        services=tuple(index["services"]),
        currencies=tuple(index["currencies"]),
    )
