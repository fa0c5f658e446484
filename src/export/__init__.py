"""CSV export package."""

from src.export.csv_export import (
    CSV_HEADER,
    build_csv,
    escape_cell,
    export_filename,
    transaction_to_csv_row,
)

__all__ = [
    "CSV_HEADER",
    "build_csv",
    "escape_cell",
    "export_filename",
    "transaction_to_csv_row",
]
