"""Streaming CSV export and batched CSV import."""

from sqlcsv.transfer.exporter import export_csv, export_query, export_table
from sqlcsv.transfer.importer import CsvImporter, ImportState, import_csv

__all__ = [
    "export_csv",
    "export_query",
    "export_table",
    "import_csv",
    "CsvImporter",
    "ImportState",
]
