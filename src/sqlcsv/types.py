"""Shared types: column descriptors and SQL type-name mapping."""

import enum
import re
from dataclasses import dataclass

Params = tuple | list | dict


class ColumnType(enum.Enum):
    """Type family of a table column, as far as CSV conversion cares."""

    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BIT = "bit"
    BINARY = "binary"
    GEOMETRY = "geometry"
    HIERARCHYID = "hierarchyid"
    DATETIME = "datetime"
    DATE = "date"
    UNIQUEIDENTIFIER = "uniqueidentifier"
    TEXT = "text"

    @property
    def is_binary(self) -> bool:
        return self in (ColumnType.BINARY, ColumnType.GEOMETRY, ColumnType.HIERARCHYID)


_TYPE_NAMES: dict[str, ColumnType] = {
    "tinyint": ColumnType.INTEGER,
    "smallint": ColumnType.INTEGER,
    "int": ColumnType.INTEGER,
    "integer": ColumnType.INTEGER,
    "bigint": ColumnType.INTEGER,
    "decimal": ColumnType.DECIMAL,
    "numeric": ColumnType.DECIMAL,
    "money": ColumnType.DECIMAL,
    "smallmoney": ColumnType.DECIMAL,
    "float": ColumnType.FLOAT,
    "real": ColumnType.FLOAT,
    "double": ColumnType.FLOAT,
    "bit": ColumnType.BIT,
    "bool": ColumnType.BIT,
    "boolean": ColumnType.BIT,
    "binary": ColumnType.BINARY,
    "varbinary": ColumnType.BINARY,
    "image": ColumnType.BINARY,
    "blob": ColumnType.BINARY,
    "timestamp": ColumnType.BINARY,  # SQL Server rowversion alias
    "rowversion": ColumnType.BINARY,
    "geometry": ColumnType.GEOMETRY,
    "geography": ColumnType.GEOMETRY,
    "hierarchyid": ColumnType.HIERARCHYID,
    "datetime": ColumnType.DATETIME,
    "datetime2": ColumnType.DATETIME,
    "smalldatetime": ColumnType.DATETIME,
    "datetimeoffset": ColumnType.DATETIME,
    "date": ColumnType.DATE,
    "uniqueidentifier": ColumnType.UNIQUEIDENTIFIER,
}

# "VARBINARY(MAX)" -> "varbinary", "double precision" -> "double"
_TYPE_NAME_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)")


def column_type_from_sql(type_name: str | None) -> ColumnType:
    """Map a declared SQL type name to its ColumnType family."""
    if not type_name:
        return ColumnType.TEXT
    match = _TYPE_NAME_RE.match(type_name)
    if match is None:
        return ColumnType.TEXT
    return _TYPE_NAMES.get(match.group(1).lower(), ColumnType.TEXT)


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column of the import target, as reported by the database."""

    name: str
    type: ColumnType = ColumnType.TEXT
    nullable: bool = True

    @classmethod
    def from_sql(cls, name: str, type_name: str | None, nullable: bool) -> "ColumnDescriptor":
        return cls(name=name, type=column_type_from_sql(type_name), nullable=nullable)
