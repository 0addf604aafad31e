"""Output generator package: files produced from dashboard data.

Modules:
    export: CSV export of detail table rows
"""

from .export import export_csv, export_filename, rows_to_csv

__all__ = [
    "export_csv",
    "export_filename",
    "rows_to_csv",
]
