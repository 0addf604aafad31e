"""CSV export of the detail table.

Writes the rows the dashboard last produced with a header of their
camelCase field names.  Fields containing commas or quotes are wrapped
in double quotes with internal quotes doubled.

Usage::

    from perfdash.generator.export import export_csv, export_filename

    view = build_dashboard(records, filters)
    export_csv(view.detail_rows, export_filename(filters.date))
"""

import csv
import io
from pathlib import Path

import pandas as pd

from perfdash.errors import DashboardError


def export_filename(date: str | None) -> str:
    """Default export name for the selected date."""
    return f"dashboard-export-{date}.csv"


def _plain_number(value):
    """Whole floats as ints, so 200.0 is written as 200."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def rows_to_frame(rows) -> pd.DataFrame:
    """DataFrame of row dicts, columns in field order of the first row.

    Float columns hold objects so whole numbers keep their int form.
    """
    dicts = [r.to_dict() if hasattr(r, "to_dict") else dict(r) for r in rows]
    if not dicts:
        raise DashboardError("No data to export")
    frame = pd.DataFrame(dicts, columns=list(dicts[0].keys()))
    for col in frame.select_dtypes(include="float").columns:
        frame[col] = pd.Series(
            [_plain_number(v) for v in frame[col]], index=frame.index, dtype=object
        )
    return frame


def rows_to_csv(rows) -> str:
    """Render rows as CSV text."""
    buf = io.StringIO()
    rows_to_frame(rows).to_csv(
        buf,
        index=False,
        quoting=csv.QUOTE_MINIMAL,
        quotechar='"',
        doublequote=True,
        lineterminator="\n",
    )
    return buf.getvalue()


def export_csv(rows, path: str | Path) -> Path:
    """Write rows to *path* as UTF-8 CSV and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(rows_to_csv(rows), encoding="utf-8")
    return path
