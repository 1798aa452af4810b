"""Transfer requests and outcomes."""

from dataclasses import dataclass, field
from pathlib import Path

from sqlcsv.converters import BinaryFormat
from sqlcsv.errors import ConfigError, TransferError


def _check_common(csv_path, delimiter: str, binary_format) -> None:
    if not csv_path:
        raise ConfigError("CSV file path must not be empty")
    if len(delimiter) != 1 or delimiter in ("\r", "\n", '"'):
        raise ConfigError(f"Delimiter must be a single character, got {delimiter!r}")
    try:
        BinaryFormat(binary_format)
    except ValueError:
        choices = ", ".join(f.value for f in BinaryFormat)
        raise ConfigError(f"Unknown binary format {binary_format!r} (expected {choices})") from None


@dataclass
class ExportRequest:
    """Export a table (or, for export only, an arbitrary query) to CSV.

    ``nolock`` adds a non-blocking read hint to table scans; it is never
    appended to caller-supplied SQL, which runs verbatim.
    """

    csv_path: str | Path
    table: str | None = None
    sql: str | None = None
    header: bool = True
    delimiter: str = ","
    limit: int = 0
    binary_format: BinaryFormat | str = BinaryFormat.HEX
    file_charset: str = "raw"
    nolock: bool = False

    def validate(self) -> None:
        if bool(self.table) == bool(self.sql):
            raise ConfigError("Exactly one of table or sql must be given")
        self.validate_output()

    def validate_output(self) -> None:
        """Check everything except the table/SQL source."""
        if self.limit < 0:
            raise ConfigError(f"Limit must not be negative, got {self.limit}")
        _check_common(self.csv_path, self.delimiter, self.binary_format)


@dataclass
class ImportRequest:
    """Load a CSV file into an existing table in batches."""

    table: str
    csv_path: str | Path
    batch_size: int = 1000
    header: bool = True
    delimiter: str = ","
    truncate: bool = False
    skip_errors: bool = False
    binary_format: BinaryFormat | str = BinaryFormat.HEX
    file_charset: str = "raw"

    def validate(self) -> None:
        if not self.table:
            raise ConfigError("Target table must not be empty")
        if self.batch_size <= 0:
            raise ConfigError(f"Batch size must be greater than 0, got {self.batch_size}")
        _check_common(self.csv_path, self.delimiter, self.binary_format)


@dataclass
class TransferOutcome:
    """Result of one export or import run.

    Imports are atomic per batch only: when ``error`` is set, batches
    committed before the failure stay committed and are counted in ``rows``.
    """

    rows: int = 0
    skipped_lines: list[int] = field(default_factory=list)
    error: TransferError | None = None
    commits: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error
