"""Grouping engine: partitions records into constructs or service roll-ups.

Groups are returned in the order their key is first seen in the input,
so table and chart ordering follows the export unless the caller sorts.
"""

from perfdash.schema.models import (
    MULTIPLE_CURRENCIES,
    Group,
    Record,
    ViewMode,
    ensure_records,
)


def _group(records, key_func, currency_func) -> list[Group]:
    buckets: dict[tuple, list[Record]] = {}
    heads: dict[tuple, Record] = {}
    for record in ensure_records(records):
        key = key_func(record)
        if key not in buckets:
            buckets[key] = []
            heads[key] = record
        buckets[key].append(record)

    return [
        Group(
            category=heads[key].category,
            market=heads[key].market,
            service=heads[key].service,
            currency=currency_func(heads[key]),
            rows=tuple(rows),
        )
        for key, rows in buckets.items()
    ]


def group_by_construct(records) -> list[Group]:
    """One group per (category, market, service, currency)."""
    return _group(records, lambda r: r.construct_key, lambda r: r.currency)


def group_by_service(records) -> list[Group]:
    """One group per (category, market, service); currency is ``Multiple``."""
    return _group(
        records,
        lambda r: (r.category, r.market, r.service),
        lambda r: MULTIPLE_CURRENCIES,
    )


def group_records(records, view_mode: ViewMode | str) -> list[Group]:
    """Group by the view mode selected in the filter bar.

    Raises:
        ValueError: If *view_mode* is not ``construct`` or ``service``.
    """
    if ViewMode(view_mode) is ViewMode.SERVICE:
        return group_by_service(records)
    return group_by_construct(records)


def flatten(groups: list[Group]) -> list[Record]:
    """All rows of *groups*, in group order."""
    return [row for group in groups for row in group.rows]
