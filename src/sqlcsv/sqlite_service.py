"""SQLite implementation of DatabaseService."""

import sqlite3
import threading
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Any, Iterator

from sqlcsv.errors import SchemaMismatchError
from sqlcsv.identifiers import QualifiedName
from sqlcsv.service import DatabaseService
from sqlcsv.types import ColumnDescriptor, Params


class SQLiteDatabaseService(DatabaseService):
    """SQLite backend using stdlib sqlite3.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit. SQLite accepts
    the same bracket-quoted identifiers as SQL Server, so escaped names
    work unchanged.
    """

    driver_errors = (sqlite3.Error,)

    def __init__(self, db_path: str, pool_size: int = 4):
        self._db_path = db_path
        self._pool_size = pool_size
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._local = threading.local()

    def connect(self) -> None:
        for _ in range(self._pool_size):
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._pool.put(conn)

    def close(self) -> None:
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break

    def _acquire(self) -> sqlite3.Connection:
        return self._pool.get(timeout=30)

    def _release(self, conn: sqlite3.Connection) -> None:
        self._pool.put(conn)

    def _get_conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn
        raise RuntimeError(
            "No active transaction. Wrap calls in a `with service.transaction():` block."
        )

    @contextmanager
    def transaction(self) -> Iterator[None]:
        conn = self._acquire()
        self._local.conn = conn
        try:
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            self._release(conn)

    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        conn = self._get_conn()
        cursor = conn.execute(sql, params or ())
        if cursor.description is None:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            conn.executescript(sql)
            conn.commit()
        finally:
            self._release(conn)

    def describe_table(self, name: QualifiedName) -> list[ColumnDescriptor]:
        if len(name.parts) > 2:
            raise SchemaMismatchError(f"SQLite does not support {len(name.parts)}-part names: {name}")
        rows = self.execute(
            'SELECT name, type, "notnull" FROM pragma_table_info(?, ?) ORDER BY cid',
            (name.object_name, name.schema or "main"),
        )
        if not rows:
            raise SchemaMismatchError(f"Table {name} does not exist or has no columns")
        return [
            ColumnDescriptor.from_sql(row["name"], row["type"], nullable=not row["notnull"])
            for row in rows
        ]

    def select_sql(self, table: str, limit: int = 0, nolock: bool = False) -> str:
        # WAL readers never block writers, so there is no hint to add
        sql = f"SELECT * FROM {table}"
        if limit:
            sql += f" LIMIT {int(limit)}"
        return sql

    def truncate(self, table: str) -> None:
        self._get_conn().execute(f"DELETE FROM {table}")
