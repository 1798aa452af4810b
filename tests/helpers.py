"""CSV and query helpers for tests."""

import csv
from pathlib import Path

USERS_DDL = """
CREATE TABLE users (
    id      INTEGER NOT NULL PRIMARY KEY,
    name    VARCHAR(50),
    active  BIT NOT NULL,
    payload VARBINARY(64)
);
"""


def write_csv(path: Path, rows: list[list[str]], delimiter: str = ",") -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerows(rows)
    return path


def read_csv(path: Path, delimiter: str = ",", encoding: str = "utf-8") -> list[list[str]]:
    with open(path, newline="", encoding=encoding) as f:
        return list(csv.reader(f, delimiter=delimiter))


def fetch_all(service, sql: str) -> list[dict]:
    with service.transaction():
        return service.execute(sql)
