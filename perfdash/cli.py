"""CLI entry point for the performance dashboard.

Orchestrates the refresh pipeline (fetch, normalize, validate, snapshot)
and exposes the metrics engine over a saved snapshot.

Usage::

    # Fetch the configured sheet and write public/data/{data,meta}.json
    python -m perfdash.cli refresh --config config.yaml

    # Normalize a local export instead of fetching
    python -m perfdash.cli refresh --config config.yaml --csv export.csv

    # KPI block for the latest date (or a chosen one)
    python -m perfdash.cli summary --data-dir public/data \\
        --market ZA --view-mode service --date 2024-01-15

    # Detail table as CSV
    python -m perfdash.cli export --data-dir public/data -o out.csv

    # Dimensions, months and snapshot metadata
    python -m perfdash.cli inspect --data-dir public/data
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from perfdash.errors import DashboardError
from perfdash.generator.export import export_csv, export_filename
from perfdash.processor.dimensions import build_metadata, dates_for_month, dimension_index
from perfdash.processor.ingestion import (
    detect_encoding,
    fetch_sheet_csv,
    normalize_rows,
    read_csv_text,
    read_tabular,
)
from perfdash.processor.state import initial_state, reduce
from perfdash.qa.validator import validate_records
from perfdash.schema.design_system import (
    format_currency,
    format_month,
    format_number,
    format_percent,
)
from perfdash.schema.loader import load_config, load_snapshot, save_snapshot


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_refresh(args):
    """Fetch (or read) the export, normalize it and write a snapshot."""
    config = load_config(args.config)
    output_dir = Path(args.output_dir or config.output_dir)

    if args.csv:
        path = Path(args.csv)
        if not path.exists():
            _error(f"Data file not found: {path}")
        _info(f"Reading {path}")
        raw_rows = read_tabular(path)
        raw_csv = None
        if path.suffix.lower() == ".csv":
            encoding, _ = detect_encoding(path)
            raw_csv = path.read_text(encoding=encoding)
    else:
        _info(f"Fetching sheet {config.sheet_id} (gid {config.gid})")
        raw_csv = fetch_sheet_csv(config.sheet_id, config.gid)
        raw_rows = read_csv_text(raw_csv)

    _info(f"Parsed {len(raw_rows)} rows")
    result = normalize_rows(raw_rows, skip_rows=config.skip_rows)
    _info(result.summary())

    if not result.records:
        _warn("No valid data rows found!")

    qa_result = validate_records(result.records)
    if qa_result.passed and not qa_result.warnings:
        _info(qa_result.summary())
    else:
        _warn(qa_result.summary())
        if args.verbose:
            print(qa_result.report(), file=sys.stderr)
        if not qa_result.passed and args.strict:
            _error("QA validation failed. Fix the export or drop --strict.")

    metadata = build_metadata(result.records)
    written = save_snapshot(result.records, metadata, output_dir, raw_csv=raw_csv)
    for path in written.values():
        _info(f"Written: {path}")

    _info(f"Date range: {metadata.date_min} to {metadata.date_max}")
    _info(f"Categories: {len(metadata.categories)}  Markets: {len(metadata.markets)}  "
          f"Services: {len(metadata.services)}  Currencies: {len(metadata.currencies)}")


def cmd_summary(args):
    """Print the KPI block for the selected filters."""
    state = _state_from_args(args)
    view = state.view()
    filters = state.filters

    print(f"Month:       {format_month(filters.month) if filters.month else '-'}")
    print(f"View:        {filters.view_mode.value}")
    kpis = view.kpis
    if kpis is None:
        print(f"Date:        {filters.date or '-'}")
        print()
        print("No data available for selected filters")
        return

    status = view.status
    pace = "on track" if view.on_track else "below required"
    print(f"Date:        {kpis.date} (day {kpis.day_number} of {kpis.days_in_month})")
    print()
    print(f"MTD revenue: {format_currency(kpis.mtd_revenue)}"
          f"  target {format_currency(kpis.month_target)}"
          f"  {format_percent(kpis.percent_to_target)} [{status.value.upper()}]")
    print(f"Run rate:    {format_currency(kpis.actual_run_rate)}/day"
          f"  required {format_currency(kpis.required_run_rate)}/day ({pace})")
    print(f"Total base:  {format_number(kpis.total_base)}"
          f"  net adds today {format_number(kpis.net_adds_today)}")
    print(f"Revenue:     {format_currency(kpis.daily_revenue_zar)} today"
          f"  net adds {format_currency(kpis.net_adds_revenue_zar)}")

    if view.target_to_date is not None:
        print()
        for point, pacing in zip(view.month_series, view.target_to_date):
            print(f"  {point.date}: {format_currency(point.mtd_revenue)}"
                  f"  target to date {format_currency(pacing)}")

    if args.verbose:
        print()
        for row in view.detail_rows:
            label = f"{row.category} / {row.market} / {row.service}"
            if view.show_currency:
                label += f" / {row.currency}"
            print(f"  {label}: {format_currency(row.mtd_revenue)}"
                  f" ({format_percent(row.percent_to_target)})"
                  f" variance {format_currency(row.target_variance)}")


def cmd_export(args):
    """Write the detail table for the selected filters as CSV."""
    state = _state_from_args(args)
    view = state.view()
    output = Path(args.output or export_filename(state.filters.date))
    path = export_csv(view.detail_rows, output)
    _info(f"Written: {path} ({len(view.detail_rows)} rows)")


def cmd_inspect(args):
    """Show dimensions, months and snapshot metadata."""
    records, metadata = load_snapshot(args.data_dir)
    index = dimension_index(records)

    print(f"Records:     {len(records)}")
    if metadata is not None:
        print(f"Updated:     {metadata.last_updated}")
        print(f"Date range:  {metadata.date_min} to {metadata.date_max}")
    print(f"Categories:  {', '.join(index['categories']) or '-'}")
    print(f"Markets:     {', '.join(index['markets']) or '-'}")
    print(f"Services:    {', '.join(index['services']) or '-'}")
    print(f"Currencies:  {', '.join(index['currencies']) or '-'}")
    print(f"Months:      {', '.join(index['months']) or '-'}")

    if args.verbose:
        print()
        for month in index["months"]:
            dates = dates_for_month(records, month)
            print(f"  {month}: {len(dates)} date(s), {dates[0]} to {dates[-1]}")


# ---------------------------------------------------------------------------
# State from arguments
# ---------------------------------------------------------------------------

def _state_from_args(args):
    """Load the snapshot and apply filter flags on top of the default state."""
    records, metadata = load_snapshot(args.data_dir)
    state = initial_state(records, metadata)
    if getattr(args, "config", None):
        config = load_config(args.config)
        state = replace(state, thresholds=config.status_thresholds)

    if args.view_mode:
        state = reduce(state, {"type": "set_view_mode", "value": args.view_mode})
    if args.month:
        state = reduce(state, {"type": "set_month", "value": args.month})
    for name in ("category", "market", "service", "currency", "date"):
        value = getattr(args, name, None)
        if value:
            state = reduce(state, {"type": "set_filter", "field": name, "value": value})
    if getattr(args, "target_to_date", False):
        state = reduce(state, {"type": "toggle_target_to_date"})
    return state


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="perfdash",
        description="Service performance dashboard: refresh data and compute KPIs.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- refresh ----
    ref = subparsers.add_parser(
        "refresh",
        help="Fetch the export, normalize it and write a snapshot.",
    )
    ref.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to the YAML config (default: config.yaml).",
    )
    ref.add_argument(
        "--csv",
        help="Read a local .csv/.xlsx export instead of fetching the sheet.",
    )
    ref.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Snapshot directory (default: output_dir from config).",
    )
    ref.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Fail when QA validation finds errors.",
    )
    _add_verbose_arg(ref)
    ref.set_defaults(func=cmd_refresh)

    # ---- summary ----
    summ = subparsers.add_parser(
        "summary",
        help="Print the KPI block for the selected filters.",
    )
    _add_data_dir_arg(summ)
    _add_filter_args(summ)
    _add_verbose_arg(summ, help_text="Also list the detail table rows.")
    summ.set_defaults(func=cmd_summary)

    # ---- export ----
    exp = subparsers.add_parser(
        "export",
        help="Write the detail table for the selected filters as CSV.",
    )
    _add_data_dir_arg(exp)
    _add_filter_args(exp)
    exp.add_argument(
        "-o", "--output",
        help="Output CSV path (default: dashboard-export-<date>.csv).",
    )
    _add_verbose_arg(exp)
    exp.set_defaults(func=cmd_export)

    # ---- inspect ----
    insp = subparsers.add_parser(
        "inspect",
        help="Show dimensions, months and snapshot metadata.",
    )
    _add_data_dir_arg(insp)
    _add_verbose_arg(insp, help_text="Show per-month date coverage.")
    insp.set_defaults(func=cmd_inspect)

    return parser


def _add_data_dir_arg(parser):
    parser.add_argument(
        "-d", "--data-dir",
        dest="data_dir",
        default="public/data",
        help="Snapshot directory holding data.json / meta.json (default: public/data).",
    )


def _add_verbose_arg(parser, help_text="Show detailed output and debug logging."):
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help=help_text,
    )


def _add_filter_args(parser):
    """Add filter bar arguments to a subparser."""
    parser.add_argument(
        "-c", "--config",
        help="YAML config supplying status thresholds (default: 100 / 80).",
    )
    filters = parser.add_argument_group("filters")
    filters.add_argument("--category", help="Category (default: All).")
    filters.add_argument("--market", help="Market (default: All).")
    filters.add_argument("--service", help="Service (default: All).")
    filters.add_argument(
        "--currency",
        help="Currency, construct view only (default: All).",
    )
    filters.add_argument(
        "--view-mode",
        dest="view_mode",
        choices=["construct", "service"],
        help="Group by construct or roll currencies up by service (default: construct).",
    )
    filters.add_argument(
        "--month",
        metavar="YYYY-MM",
        help="Month (default: latest in snapshot).",
    )
    filters.add_argument(
        "--date",
        metavar="YYYY-MM-DD",
        help="KPI date (default: latest in the selected month).",
    )
    filters.add_argument(
        "--target-to-date",
        dest="target_to_date",
        action="store_true",
        default=False,
        help="Include the target-to-date pacing line.",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except DashboardError as exc:
        _error(str(exc))


if __name__ == "__main__":
    main()
