"""Error taxonomy shared by the escaper, converters and transfer engines."""


class TransferError(Exception):
    """Base class for every error raised by sqlcsv.

    ``line`` is the 1-based CSV record number when the error belongs to a
    specific input row.
    """

    line: int | None = None


class ConfigError(TransferError):
    """Missing or contradictory request fields. Raised before any I/O."""


class ParseError(TransferError):
    """Malformed identifier or qualified name."""

    def __init__(self, message: str, text: str = ""):
        self.text = text
        if text:
            message = f"{message}: {text!r}"
        super().__init__(message)


class ConversionError(TransferError):
    """A single CSV field cannot become a typed value (or vice versa)."""

    def __init__(self, message: str, value: object = None, column: str | None = None):
        self.value = value
        self.column = column
        where = f" for column {column!r}" if column else ""
        shown = f": {value!r}" if value is not None else ""
        super().__init__(f"{message}{where}{shown}")


class TransferIOError(TransferError):
    """File or connection failure. Always fatal."""


class SchemaMismatchError(TransferError):
    """CSV header and table schema disagree, or the table does not exist."""


class StatementError(TransferError):
    """The database rejected a single prepared-statement execution."""
