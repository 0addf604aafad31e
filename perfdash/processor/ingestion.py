"""Data ingestion module for the performance dashboard.

Turns the raw subscription/revenue export into canonical ``Record``s:

- Fetching the export from Google Sheets as CSV (``fetch_sheet_csv``)
- Reading a local CSV (UTF-8 or UTF-16 LE) or .xlsx export into raw rows
- Normalizing raw rows: column alias lookup, currency-formatted numbers,
  multiple date formats, spreadsheet row skipping

Raw rows are mappings of column name to raw string.  Columns may carry
their human-readable header ("Month Revenue") or a single-letter fallback
("T"); the first non-empty candidate wins per field.
"""

import io
import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from perfdash.errors import ContractViolationError, UpstreamFetchError
from perfdash.schema.models import Record


logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"

# Row 1 of the sheet is the header, so data index 0 is spreadsheet row 2.
HEADER_ROWS = 1


# ---------------------------------------------------------------------------
# Column aliases
# ---------------------------------------------------------------------------

# Record field -> candidate column names, tried in order.
COLUMN_ALIASES = {
    "category": ("Category", "A"),
    "market": ("Market", "B"),
    "service": ("Service", "C"),
    "month_day": ("Month Day", "D"),
    "date": ("Date", "E"),
    "unsubscribed": ("Unsubscribed", "F"),
    "active_subs": ("Active Subs", "G"),
    "new_subs": ("New Subs", "H"),
    "total_subs": ("Total Subs", "I"),
    "new_paid": ("New Paid", "J"),
    "renewals_paid": ("Renewals Paid", "K"),
    "total_paid": ("Total Paid", "L"),
    "currency": ("Currency", "M"),
    "new_billed_revenue": ("New Billed Revenue", "N"),
    "renewal_revenue": ("Renewal Revenue", "O"),
    "usd_rate": ("USD rate", "P"),
    "daily_revenue": ("Daily Revenue", "Q"),
    "month_cumm": ("Month Cumm", "R"),
    "usd_zar_rate": ("USD/ZAR", "S"),
    "month_revenue": ("Month Revenue", "T"),
    "month_target": ("Month Target", "U"),
    "target_run_rate": ("Target Run Rate", "V"),
    "actual_run_rate": ("Actual Run Rate", "W"),
    "required_run_rate": ("Required Run Rate", "X"),
}

_STRING_FIELDS = ("category", "market", "service")
_SPECIAL_FIELDS = set(_STRING_FIELDS) | {"month_day", "date", "currency"}
_NUMERIC_FIELDS = tuple(f for f in COLUMN_ALIASES if f not in _SPECIAL_FIELDS)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def lookup(row: Mapping[str, Any], field_name: str, default=""):
    """Return the first non-empty value among *field_name*'s column aliases."""
    for column in COLUMN_ALIASES[field_name]:
        value = row.get(column)
        if not _is_blank(value):
            return value
    return default


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------

_CURRENCY_SYMBOLS = re.compile(r"[$R]")
_WHITESPACE = re.compile(r"\s")
_NON_NUMERIC = re.compile(r"[^\d.-]")
_LEADING_FLOAT = re.compile(r"^-?(\d+\.?\d*|\.\d+)")
_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def parse_numeric(value) -> float:
    """Parse a currency-formatted amount, coercing anything unusable to 0.

    Strips currency symbols ($, R), whitespace, thousands separators and any
    other character outside ``[0-9.-]``, then reads the leading number.

    Examples:
        "$1,234.56" -> 1234.56
        "R 500"     -> 500.0
        "-45.2"     -> -45.2
        ""          -> 0.0
        "n/a"       -> 0.0
    """
    if _is_blank(value):
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    s = _CURRENCY_SYMBOLS.sub("", str(value))
    s = _WHITESPACE.sub("", s)
    s = s.replace(",", "")
    s = _NON_NUMERIC.sub("", s)
    match = _LEADING_FLOAT.match(s)
    if not match:
        return 0.0
    return float(match.group(0))


def parse_int(value) -> int:
    """Parse the leading integer of a value; 0 when there is none."""
    if _is_blank(value):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_LOOSE_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def parse_date(value) -> date | None:
    """Parse a date cell, returning None when no supported format matches.

    Tries ISO 8601 first (date or datetime), then ``MM/DD/YYYY`` and an
    unpadded ``YYYY-M-D``.  Impossible calendar dates (2023-02-30) are
    rejected rather than rolled over.
    """
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()

    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    match = _US_DATE.match(s)
    if match:
        month, day, year = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    match = _LOOSE_ISO_DATE.match(s)
    if match:
        year, month, day = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return None


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------

@dataclass
class NormalizationResult:
    """Records produced from a raw export plus drop counts for diagnostics."""
    records: list[Record] = field(default_factory=list)
    total_rows: int = 0
    skipped_by_row_number: int = 0
    skipped_invalid_date: int = 0

    def summary(self) -> str:
        return (
            f"{len(self.records)} valid row(s) from {self.total_rows}; "
            f"{self.skipped_by_row_number} skipped by row number, "
            f"{self.skipped_invalid_date} with invalid dates"
        )


def normalize_row(row: Mapping[str, Any]) -> Record | None:
    """Normalize one raw row; None when its date cannot be parsed."""
    if not isinstance(row, Mapping):
        raise ContractViolationError(
            f"Expected a row mapping, got {type(row).__name__}"
        )
    parsed = parse_date(lookup(row, "date"))
    if parsed is None:
        return None

    kwargs = {name: str(lookup(row, name)).strip() for name in _STRING_FIELDS}
    kwargs["currency"] = str(lookup(row, "currency", DEFAULT_CURRENCY)).strip()
    kwargs["date"] = parsed.isoformat()
    kwargs["month_day"] = parse_int(lookup(row, "month_day", 0))
    for name in _NUMERIC_FIELDS:
        kwargs[name] = parse_numeric(lookup(row, name, 0))
    return Record(**kwargs)


def normalize_rows(rows: Iterable[Mapping[str, Any]],
                   skip_rows: Iterable[int] = ()) -> NormalizationResult:
    """Normalize raw export rows into canonical Records.

    Args:
        rows: Raw rows in sheet order, header already consumed.
        skip_rows: 1-based spreadsheet row numbers to drop.  Row numbers
            refer to the original sheet (data index 0 is row 2) and are
            applied before date validation.

    Returns:
        NormalizationResult with records in input order.

    Raises:
        ContractViolationError: If *rows* is not a collection of mappings.
    """
    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        raise ContractViolationError(
            f"Expected a collection of row mappings, got {type(rows).__name__}"
        )
    skip = set(skip_rows)
    result = NormalizationResult()

    for index, row in enumerate(rows):
        result.total_rows += 1
        if index + HEADER_ROWS + 1 in skip:
            result.skipped_by_row_number += 1
            continue
        record = normalize_row(row)
        if record is None:
            result.skipped_invalid_date += 1
            continue
        result.records.append(record)

    logger.info("Normalized export: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def clean_columns(df):
    """Strip whitespace from column names."""
    df.columns = [c.strip() if isinstance(c, str) else c for c in df.columns]
    return df


def _frame_to_rows(df: pd.DataFrame) -> list[dict]:
    df = clean_columns(df).fillna("")
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df.to_dict(orient="records")


def read_csv_text(text: str, sep: str = ",") -> list[dict]:
    """Parse CSV text into raw string rows (blank lines skipped)."""
    if not text.strip():
        return []
    header = pd.read_csv(io.StringIO(text), sep=sep, nrows=0).columns
    # Over-long lines are truncated to the header width, not dropped, so
    # spreadsheet row numbers stay aligned for skip_rows.
    df = pd.read_csv(
        io.StringIO(text),
        sep=sep,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        index_col=False,
        engine="python",
        on_bad_lines=lambda fields: fields[:len(header)],
    )
    return _frame_to_rows(df)


def detect_encoding(path):
    """Detect whether a file is UTF-16 LE (with BOM) or UTF-8.

    Returns (encoding, delimiter) tuple.
    """
    with open(path, "rb") as f:
        raw = f.read(4)
    if raw[:2] == b"\xff\xfe":
        return "utf-16", "\t"
    return "utf-8-sig", ","


def read_csv_auto(path) -> list[dict]:
    """Read a local CSV export with automatic encoding and delimiter detection."""
    encoding, sep = detect_encoding(path)
    text = Path(path).read_text(encoding=encoding)
    return read_csv_text(text, sep=sep)


def read_excel_rows(path, sheet_name=0) -> list[dict]:
    """Read a .xlsx export into raw string rows."""
    df = pd.read_excel(path, sheet_name=sheet_name, engine="openpyxl", dtype=str)
    df = df.dropna(how="all")
    return _frame_to_rows(df)


def read_tabular(path, sheet_name=0) -> list[dict]:
    """Read a local export, dispatching on file extension."""
    path = Path(path)
    if path.suffix.lower() in (".xlsx", ".xlsm"):
        return read_excel_rows(path, sheet_name=sheet_name)
    return read_csv_auto(path)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def sheet_csv_url(sheet_id: str, gid: str = "0") -> str:
    """CSV export URL for a publicly shared Google Sheet tab."""
    return f"https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"


def fetch_sheet_csv(sheet_id: str, gid: str = "0", session=None,
                    timeout: float = 30.0) -> str:
    """Download a sheet tab as CSV text.

    Raises:
        UpstreamFetchError: On any network error or non-2xx response.
    """
    if not sheet_id:
        raise UpstreamFetchError("No sheet_id configured")
    url = sheet_csv_url(sheet_id, gid)
    logger.info("Fetching data from: %s", url)
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise UpstreamFetchError(f"Error fetching sheet data: {exc}") from exc
    response.encoding = response.encoding or "utf-8"
    return response.text
