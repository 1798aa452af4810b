"""Abstract DatabaseService interface and DB-API cursor helpers."""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from sqlcsv.errors import StatementError, TransferIOError
from sqlcsv.identifiers import QualifiedName
from sqlcsv.types import ColumnDescriptor, Params

logger = logging.getLogger(__name__)


class ResultSet:
    """Streaming view over an executed cursor.

    Rows are pulled with ``fetchmany`` so a large result never sits in
    memory at once.
    """

    def __init__(self, cursor, arraysize: int, driver_errors: tuple[type[Exception], ...]):
        self._cursor = cursor
        self._arraysize = arraysize
        self._driver_errors = driver_errors

    @property
    def columns(self) -> list[str]:
        return [desc[0] for desc in self._cursor.description or ()]

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                batch = self._cursor.fetchmany(self._arraysize)
            except self._driver_errors as exc:
                raise TransferIOError(f"Fetching rows failed: {exc}") from exc
            if not batch:
                return
            yield from batch


class PreparedStatement:
    """A statement bound to one cursor and executed once per row."""

    def __init__(self, cursor, sql: str, driver_errors: tuple[type[Exception], ...]):
        self._cursor = cursor
        self.sql = sql
        self._driver_errors = driver_errors

    def execute(self, params: Params) -> None:
        try:
            self._cursor.execute(self.sql, params)
        except self._driver_errors as exc:
            raise StatementError(str(exc)) from exc

    def close(self) -> None:
        try:
            self._cursor.close()
        except self._driver_errors as exc:
            # the connection may already be gone; rollback reports that
            logger.debug("Closing statement cursor failed: %s", exc)


class DatabaseService(ABC):
    """Database collaborator used by the export and import engines.

    Design principles:
    - Stateless: no mutable state beyond the connection pool
    - Thread-safe: each transaction() acquires its own connection
    - Every statement except DDL runs inside ``with service.transaction():``
    """

    driver_errors: tuple[type[Exception], ...] = ()

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @abstractmethod
    def _get_conn(self):
        """Return the connection bound to the current transaction."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error."""

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, CREATE INDEX, etc.)."""

    @abstractmethod
    def describe_table(self, name: QualifiedName) -> list[ColumnDescriptor]:
        """Ordered column descriptors of an existing table."""

    @abstractmethod
    def select_sql(self, table: str, limit: int = 0, nolock: bool = False) -> str:
        """Render a full scan of an already-escaped table name."""

    @abstractmethod
    def truncate(self, table: str) -> None:
        """Remove every row of an already-escaped table name."""

    def transaction_alive(self) -> bool:
        """False if the server rolled back the current transaction on its own."""
        return True

    @contextmanager
    def query(
        self, sql: str, params: Params | None = None, arraysize: int = 1000
    ) -> Iterator[ResultSet]:
        """Execute a query and stream its rows."""
        cursor = self._get_conn().cursor()
        try:
            try:
                if params:
                    cursor.execute(sql, params)
                else:
                    cursor.execute(sql)
            except self.driver_errors as exc:
                raise TransferIOError(f"Query failed: {exc}") from exc
            yield ResultSet(cursor, arraysize, self.driver_errors)
        finally:
            cursor.close()

    def prepare(self, sql: str) -> PreparedStatement:
        """Bind a parameterised statement to a fresh cursor of the current transaction."""
        return PreparedStatement(self._get_conn().cursor(), sql, self.driver_errors)
