"""Batched, transactional CSV import into an existing table.

Lifecycle of one run::

    PENDING -> SCHEMA_RESOLVED -> HEADER_VALIDATED | HEADER_SKIPPED
            -> TRANSACTION_OPEN -> BATCH_ACCUMULATING
            -> BATCH_COMMITTED -> TRANSACTION_OPEN ...
            -> TRANSACTION_COMMITTED            (terminal)
    any state -> FAILED                         (terminal)

Each batch is its own transaction. A failure rolls back only the open
batch: batches committed before it stay in the table and are reported in
``TransferOutcome.rows``. The import as a whole is therefore not atomic.
"""

import csv
import enum
import logging
from typing import Iterator

from sqlcsv.charset import open_csv
from sqlcsv.config import ImportRequest, TransferOutcome
from sqlcsv.converters import BinaryFormat, text_to_value
from sqlcsv.errors import (
    ConversionError,
    SchemaMismatchError,
    StatementError,
    TransferError,
    TransferIOError,
)
from sqlcsv.identifiers import QualifiedName, quote_identifier
from sqlcsv.service import DatabaseService, PreparedStatement
from sqlcsv.transfer.base import DEFAULT_PROGRESS_EVERY, ProgressCallback, RowCounter, io_errors
from sqlcsv.types import ColumnDescriptor

logger = logging.getLogger(__name__)

Record = tuple[int, list[str]]


class ImportState(enum.Enum):
    PENDING = "pending"
    SCHEMA_RESOLVED = "schema_resolved"
    HEADER_VALIDATED = "header_validated"
    HEADER_SKIPPED = "header_skipped"
    TRANSACTION_OPEN = "transaction_open"
    BATCH_ACCUMULATING = "batch_accumulating"
    BATCH_COMMITTED = "batch_committed"
    TRANSACTION_COMMITTED = "transaction_committed"
    FAILED = "failed"


class CsvImporter:
    """Runs one ImportRequest against one DatabaseService.

    Row failures (wrong field count, ConversionError, StatementError) abort
    the run unless ``request.skip_errors`` is set, in which case the source
    line where the row starts is added to ``outcome.skipped_lines``.
    """

    def __init__(
        self,
        service: DatabaseService,
        request: ImportRequest,
        progress: ProgressCallback | None = None,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
    ):
        request.validate()
        self.table = QualifiedName.parse(request.table)
        self.request = request
        self.state = ImportState.PENDING
        self.outcome = TransferOutcome()
        self.columns: list[ColumnDescriptor] = []
        self.insert_columns: list[ColumnDescriptor] = []
        self._service = service
        self._binary_format = BinaryFormat(request.binary_format)
        self._encoding = "utf-8"
        self._counter = RowCounter(progress, progress_every)

    def run(self) -> TransferOutcome:
        try:
            with io_errors(f"Import of {self.request.csv_path}", self._service.driver_errors):
                with open_csv(self.request.csv_path, "r", self.request.file_charset) as fh:
                    self._encoding = fh.encoding
                    records = self._records(csv.reader(fh, delimiter=self.request.delimiter))
                    self._resolve_schema()
                    self._read_header(records)
                    if self.request.truncate:
                        self._truncate()
                    self._load(records)
        except TransferError as exc:
            self._fail(exc)
            return self.outcome

        self._transition(ImportState.TRANSACTION_COMMITTED)
        logger.info(
            "Import into %s complete: %d rows in %d batches, %d skipped",
            self.table,
            self.outcome.rows,
            self.outcome.commits,
            len(self.outcome.skipped_lines),
        )
        return self.outcome

    def insert_sql(self) -> str:
        cols = ", ".join(quote_identifier(col.name) for col in self.insert_columns)
        placeholders = ", ".join("?" for _ in self.insert_columns)
        return f"INSERT INTO {self.table.escaped} ({cols}) VALUES ({placeholders})"

    # -- states ----------------------------------------------------------

    def _transition(self, state: ImportState) -> None:
        logger.debug("Import into %s: %s -> %s", self.table, self.state.value, state.value)
        self.state = state

    def _resolve_schema(self) -> None:
        with self._service.transaction():
            self.columns = self._service.describe_table(self.table)
        self._transition(ImportState.SCHEMA_RESOLVED)

    def _read_header(self, records: Iterator[Record]) -> None:
        if not self.request.header:
            self.insert_columns = list(self.columns)
            self._transition(ImportState.HEADER_SKIPPED)
            return

        first = next(records, None)
        if first is None:
            raise SchemaMismatchError(f"{self.request.csv_path} is empty, expected a header row")
        _, header = first
        if len(header) != len(self.columns):
            raise SchemaMismatchError(
                f"CSV header has {len(header)} columns, table {self.table} has {len(self.columns)}"
            )

        by_name = {col.name.lower(): col for col in self.columns}
        ordered: list[ColumnDescriptor] = []
        for position, name in enumerate(header):
            if position == 0:
                name = name.lstrip("\ufeff")
            col = by_name.pop(name.strip().lower(), None)
            if col is None:
                raise SchemaMismatchError(
                    f"CSV header column {name!r} is not a column of {self.table} (or is repeated)"
                )
            ordered.append(col)
        self.insert_columns = ordered
        self._transition(ImportState.HEADER_VALIDATED)

    def _truncate(self) -> None:
        with self._service.transaction():
            self._service.truncate(self.table.escaped)
        logger.warning("Truncated %s before loading", self.table)

    def _load(self, records: Iterator[Record]) -> None:
        sql = self.insert_sql()
        exhausted = False
        while not exhausted:
            with self._service.transaction():
                self._transition(ImportState.TRANSACTION_OPEN)
                statement = self._service.prepare(sql)
                try:
                    inserted, exhausted = self._fill_batch(statement, records)
                finally:
                    statement.close()
            self._transition(ImportState.BATCH_COMMITTED)
            if inserted:
                self.outcome.commits += 1
                self.outcome.rows += inserted
                logger.info(
                    "Batch %d: inserted %d rows (total: %d)",
                    self.outcome.commits,
                    inserted,
                    self.outcome.rows,
                )

    def _fill_batch(self, statement: PreparedStatement, records: Iterator[Record]) -> tuple[int, bool]:
        """Insert rows until the batch is full; return (inserted, input_exhausted)."""
        self._transition(ImportState.BATCH_ACCUMULATING)
        inserted = 0
        for line, fields in records:
            try:
                statement.execute(self._convert(fields))
            except (ConversionError, StatementError) as exc:
                exc.line = line
                if not self.request.skip_errors:
                    raise
                self._skip(line, exc)
                if inserted and not self._service.transaction_alive():
                    raise TransferIOError(
                        f"Server rolled back the open batch after line {line}"
                    ) from exc
                continue

            inserted += 1
            self._counter.tick()
            if inserted >= self.request.batch_size:
                return inserted, False
        return inserted, True

    def _fail(self, exc: TransferError) -> None:
        self._transition(ImportState.FAILED)
        self.outcome.error = exc
        where = f" at line {exc.line}" if exc.line else ""
        logger.error(
            "Import into %s failed%s after %d committed rows: %s",
            self.table,
            where,
            self.outcome.rows,
            exc,
        )

    # -- rows ------------------------------------------------------------

    @staticmethod
    def _records(reader) -> Iterator[Record]:
        """Yield (first source line, fields) per record, skipping blank lines.

        A quoted field may span several lines; the number is the line the
        record starts on.
        """
        while True:
            line = reader.line_num + 1
            fields = next(reader, None)
            if fields is None:
                return
            if fields:
                yield line, fields

    def _convert(self, fields: list[str]) -> tuple:
        if len(fields) != len(self.insert_columns):
            raise ConversionError(
                f"expected {len(self.insert_columns)} fields, got {len(fields)}"
            )
        return tuple(
            text_to_value(text, col, self._binary_format, self._encoding)
            for text, col in zip(fields, self.insert_columns)
        )

    def _skip(self, line: int, exc: TransferError) -> None:
        self.outcome.skipped_lines.append(line)
        logger.warning("Skipping line %d: %s", line, exc)


def import_csv(
    service: DatabaseService,
    request: ImportRequest,
    progress: ProgressCallback | None = None,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> TransferOutcome:
    """Import ``request.csv_path`` into ``request.table``.

    Raises ConfigError or ParseError for a bad request; every later failure
    is returned on the outcome together with the rows already committed.
    """
    return CsvImporter(service, request, progress, progress_every).run()
