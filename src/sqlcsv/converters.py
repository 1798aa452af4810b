"""Conversion between typed column values and their CSV text form."""

import base64
import binascii
import datetime as dt
import enum
import re
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlcsv.errors import ConversionError
from sqlcsv.types import ColumnDescriptor, ColumnType


class BinaryFormat(str, enum.Enum):
    """Text encoding used for byte payloads in CSV files."""

    HEX = "hex"
    BASE64 = "base64"
    RAW = "raw"


TRUE_TOKENS = frozenset({"true", "1", "y", "yes", "t"})
FALSE_TOKENS = frozenset({"false", "0", "n", "no", "f"})

_WKT_KEYWORDS = (
    "GEOMETRYCOLLECTION",
    "MULTIPOLYGON",
    "MULTILINESTRING",
    "MULTIPOINT",
    "CIRCULARSTRING",
    "COMPOUNDCURVE",
    "CURVEPOLYGON",
    "LINESTRING",
    "POLYGON",
    "POINT",
)
_WKT_RE = re.compile(
    r"^(?:%s)\s*(?:ZM|Z|M)?\s*\(.*\)$" % "|".join(_WKT_KEYWORDS),
    re.IGNORECASE | re.DOTALL,
)
_GUID_RE = re.compile(
    r"^\{?[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\}?$"
)

_EMPTY_DEFAULTS: dict[ColumnType, Any] = {
    ColumnType.INTEGER: 0,
    ColumnType.DECIMAL: Decimal(0),
    ColumnType.FLOAT: 0.0,
    ColumnType.BIT: False,
    ColumnType.BINARY: b"",
    ColumnType.GEOMETRY: b"",
    ColumnType.HIERARCHYID: b"",
}


# --- export direction -------------------------------------------------------


def encode_binary(
    data: bytes | bytearray | memoryview, fmt: BinaryFormat | str, encoding: str = "utf-8"
) -> str:
    data = bytes(data)
    fmt = BinaryFormat(fmt)
    if fmt is BinaryFormat.HEX:
        return data.hex()
    if fmt is BinaryFormat.BASE64:
        return base64.b64encode(data).decode("ascii")
    # raw bytes map onto the file charset; undecodable bytes pass through as-is
    return data.decode(encoding, "surrogateescape")


def _format_time(value: dt.time | dt.datetime) -> str:
    return f"{value:%H:%M:%S}.{value.microsecond // 1000:03d}"


def _format_offset(value: dt.datetime) -> str:
    offset = value.utcoffset()
    if offset is None:
        return ""
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def value_to_text(
    value: Any, binary_format: BinaryFormat | str = BinaryFormat.HEX, encoding: str = "utf-8"
) -> str:
    """Render a value fetched from the database as a CSV field.

    NULL becomes the empty string. Numbers use locale-independent,
    round-trippable formatting; datetimes use ``YYYY-MM-DD HH:MM:SS.mmm``.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return encode_binary(value, binary_format, encoding)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, dt.datetime):
        return f"{value:%Y-%m-%d} {_format_time(value)}{_format_offset(value)}"
    if isinstance(value, dt.date):
        return f"{value:%Y-%m-%d}"
    if isinstance(value, dt.time):
        return _format_time(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(value)


# --- import direction -------------------------------------------------------


def decode_binary(
    text: str, fmt: BinaryFormat | str, column: str | None = None, encoding: str = "utf-8"
) -> bytes:
    fmt = BinaryFormat(fmt)
    if fmt is BinaryFormat.RAW:
        return text.encode(encoding, "surrogateescape")

    text = text.strip()
    if fmt is BinaryFormat.HEX:
        if text[:2] in ("0x", "0X"):
            text = text[2:]
        if len(text) % 2:
            raise ConversionError("odd-length hex string", text, column)
        try:
            return binascii.unhexlify(text)
        except (binascii.Error, ValueError) as exc:
            raise ConversionError("invalid hex string", text, column) from exc

    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        pass
    try:
        return base64.b64decode(text, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConversionError("invalid base64 string", text, column) from exc


def is_wkt(text: str) -> bool:
    """True if text looks like a well-known-text geometry literal."""
    return _WKT_RE.match(text.strip()) is not None


def parse_bit(text: str, column: str | None = None) -> bool:
    token = text.strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise ConversionError("unrecognized boolean token", text, column)


def _parse_datetime(text: str, column: str) -> dt.datetime:
    try:
        return dt.datetime.fromisoformat(text.strip())
    except ValueError as exc:
        raise ConversionError("invalid datetime", text, column) from exc


def _parse_date(text: str, column: str) -> dt.date:
    try:
        return dt.date.fromisoformat(text.strip())
    except ValueError:
        return _parse_datetime(text, column).date()


def text_to_value(
    text: str,
    column: ColumnDescriptor,
    binary_format: BinaryFormat | str = BinaryFormat.HEX,
    encoding: str = "utf-8",
) -> Any:
    """Turn one CSV field into a parameter for the given column.

    Empty text is NULL for nullable columns and a type default (0, False,
    b"", "") otherwise. Raw binary fields are encoded back with ``encoding``,
    the charset the file was read with.
    """
    kind = column.type
    if text == "":
        if column.nullable:
            return None
        return _EMPTY_DEFAULTS.get(kind, "")

    if kind is ColumnType.BIT:
        return parse_bit(text, column.name)

    if kind is ColumnType.INTEGER:
        try:
            return int(text.strip())
        except ValueError as exc:
            raise ConversionError("invalid integer", text, column.name) from exc

    if kind is ColumnType.DECIMAL:
        try:
            return Decimal(text.strip())
        except InvalidOperation as exc:
            raise ConversionError("invalid decimal", text, column.name) from exc

    if kind is ColumnType.FLOAT:
        try:
            return float(text.strip())
        except ValueError as exc:
            raise ConversionError("invalid float", text, column.name) from exc

    if kind is ColumnType.GEOMETRY and is_wkt(text):
        return text.strip()

    if kind.is_binary:
        return decode_binary(text, binary_format, column.name, encoding)

    if kind is ColumnType.DATETIME:
        return _parse_datetime(text, column.name)

    if kind is ColumnType.DATE:
        return _parse_date(text, column.name)

    if kind is ColumnType.UNIQUEIDENTIFIER:
        if not _GUID_RE.match(text.strip()):
            raise ConversionError("invalid uniqueidentifier", text, column.name)
        return text.strip()

    return text
