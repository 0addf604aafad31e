"""Filter engine: narrows a record collection to the filter bar selection."""

from perfdash.schema.models import FilterSpec, Record, ViewMode, ensure_records, is_constrained


def matches(record: Record, spec: FilterSpec) -> bool:
    """True when *record* satisfies every active constraint in *spec*."""
    if is_constrained(spec.category) and record.category != spec.category:
        return False
    if is_constrained(spec.market) and record.market != spec.market:
        return False
    if is_constrained(spec.service) and record.service != spec.service:
        return False
    # Currency only narrows the construct view; the service view rolls it up.
    if (spec.view_mode is ViewMode.CONSTRUCT
            and is_constrained(spec.currency)
            and record.currency != spec.currency):
        return False
    if is_constrained(spec.month) and record.year_month != spec.month:
        return False
    return True


def filter_records(records, spec: FilterSpec | None = None) -> list[Record]:
    """Order-preserving subset of *records* matching *spec*.

    A missing spec (or one with every field ``All``) returns all records.
    """
    records = ensure_records(records)
    if spec is None:
        return records
    return [r for r in records if matches(r, spec)]
