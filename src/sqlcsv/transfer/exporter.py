"""Stream a table or query result into a CSV file."""

import csv
import logging

from sqlcsv.charset import open_csv
from sqlcsv.config import ExportRequest, TransferOutcome
from sqlcsv.converters import BinaryFormat, value_to_text
from sqlcsv.errors import ConfigError, TransferError
from sqlcsv.identifiers import escape_qualified_name
from sqlcsv.service import DatabaseService
from sqlcsv.transfer.base import DEFAULT_PROGRESS_EVERY, ProgressCallback, RowCounter, io_errors

logger = logging.getLogger(__name__)


def export_table(
    service: DatabaseService,
    table: str,
    request: ExportRequest,
    progress: ProgressCallback | None = None,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> TransferOutcome:
    """Export every row of ``table`` (optionally limited) to ``request.csv_path``.

    The name is parsed and bracket-quoted; a malformed name raises
    ParseError before any query runs.
    """
    request.validate_output()
    escaped = escape_qualified_name(table)
    if not escaped:
        raise ConfigError("Table name must not be empty")
    sql = service.select_sql(escaped, limit=request.limit, nolock=request.nolock)
    return _export(service, sql, request, progress, progress_every)


def export_query(
    service: DatabaseService,
    sql: str,
    request: ExportRequest,
    progress: ProgressCallback | None = None,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> TransferOutcome:
    """Export the result of caller-supplied SQL.

    The statement runs verbatim: no lock hint or row limit is spliced into
    it, the limit is enforced while streaming instead. Trusting raw SQL is
    an export-only escape hatch; imports only ever take a table name.
    """
    request.validate_output()
    if not sql or not sql.strip():
        raise ConfigError("SQL statement must not be empty")
    return _export(service, sql, request, progress, progress_every)


def export_csv(
    service: DatabaseService,
    request: ExportRequest,
    progress: ProgressCallback | None = None,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> TransferOutcome:
    """Validate the request and dispatch to export_table or export_query."""
    request.validate()
    if request.table:
        return export_table(service, request.table, request, progress, progress_every)
    return export_query(service, request.sql, request, progress, progress_every)


def _export(
    service: DatabaseService,
    sql: str,
    request: ExportRequest,
    progress: ProgressCallback | None,
    progress_every: int,
) -> TransferOutcome:
    outcome = TransferOutcome()
    counter = RowCounter(progress, progress_every)
    try:
        _write_rows(service, sql, request, counter)
    except TransferError as exc:
        # A partial file stays on disk.
        outcome.error = exc
        logger.error("Export to %s failed after %d rows: %s", request.csv_path, counter.count, exc)
    outcome.rows = counter.count
    if outcome.ok:
        logger.info("Export complete: %d rows written to %s", outcome.rows, request.csv_path)
    return outcome


def _write_rows(service: DatabaseService, sql: str, request: ExportRequest, counter: RowCounter) -> None:
    binary_format = BinaryFormat(request.binary_format)
    with io_errors(f"Export to {request.csv_path}", service.driver_errors):
        with service.transaction(), service.query(sql) as result:
            columns = result.columns
            with open_csv(request.csv_path, "w", request.file_charset) as fh:
                writer = csv.writer(fh, delimiter=request.delimiter, lineterminator="\n")
                if request.header:
                    writer.writerow(columns)
                for row in result:
                    writer.writerow([value_to_text(value, binary_format, fh.encoding) for value in row])
                    counter.tick()
                    if request.limit and counter.count >= request.limit:
                        break
