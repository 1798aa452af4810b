"""Tests for DatabaseService (SQLite backend) and the service factory."""

import threading

import pytest

from sqlcsv import create_service
from sqlcsv.errors import ConfigError, SchemaMismatchError, StatementError, TransferIOError
from sqlcsv.identifiers import QualifiedName
from sqlcsv.sqlite_service import SQLiteDatabaseService
from sqlcsv.types import ColumnDescriptor, ColumnType


class TestFactory:
    def test_sqlite(self, tmp_path):
        assert isinstance(create_service(f"sqlite:///{tmp_path / 'x.db'}"), SQLiteDatabaseService)

    def test_unknown_scheme(self):
        with pytest.raises(ConfigError, match="Unsupported database URL"):
            create_service("oracle://somewhere")


class TestDatabaseService:
    def test_execute_ddl_and_insert(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        with db_service.transaction():
            db_service.execute("INSERT INTO [t] ([id], [name]) VALUES (?, ?)", (1, "alice"))
            rows = db_service.execute("SELECT * FROM t")
        assert rows == [{"id": 1, "name": "alice"}]

    def test_transaction_rollback_on_error(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with pytest.raises(ValueError):
            with db_service.transaction():
                db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (1, "x"))
                raise ValueError("simulated failure")

        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM t")
        assert rows == []

    def test_requires_transaction(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with pytest.raises(RuntimeError, match="No active transaction"):
            db_service.execute("SELECT 1")

    def test_concurrent_transactions(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val INTEGER)")
        errors = []

        def worker(n):
            try:
                with db_service.transaction():
                    db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (n, n * 10))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM t ORDER BY id")
        assert len(rows) == 4


class TestStreaming:
    def test_query_streams_in_batches(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with db_service.transaction():
            for i in range(25):
                db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (i, f"v{i}"))

        with db_service.transaction():
            with db_service.query("SELECT id, val FROM t ORDER BY id", arraysize=7) as result:
                assert result.columns == ["id", "val"]
                rows = [tuple(row) for row in result]
        assert len(rows) == 25
        assert rows[-1] == (24, "v24")

    def test_query_error_is_io_error(self, db_service):
        with pytest.raises(TransferIOError, match="Query failed"):
            with db_service.transaction():
                with db_service.query("SELECT * FROM missing_table"):
                    pass

    def test_prepared_statement(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with db_service.transaction():
            statement = db_service.prepare("INSERT INTO t (id, val) VALUES (?, ?)")
            statement.execute((1, "a"))
            statement.execute((2, "b"))
            with pytest.raises(StatementError, match="UNIQUE"):
                statement.execute((1, "dup"))
            statement.close()
            rows = db_service.execute("SELECT COUNT(*) AS cnt FROM t")
        assert rows[0]["cnt"] == 2


class TestSchema:
    def test_describe_table(self, db_service, users_table):
        with db_service.transaction():
            columns = db_service.describe_table(QualifiedName.parse(users_table))
        assert columns == [
            ColumnDescriptor("id", ColumnType.INTEGER, nullable=False),
            ColumnDescriptor("name", ColumnType.TEXT, nullable=True),
            ColumnDescriptor("active", ColumnType.BIT, nullable=False),
            ColumnDescriptor("payload", ColumnType.BINARY, nullable=True),
        ]

    def test_describe_with_schema(self, db_service, users_table):
        with db_service.transaction():
            columns = db_service.describe_table(QualifiedName.parse("main.users"))
        assert [c.name for c in columns] == ["id", "name", "active", "payload"]

    def test_describe_missing_table(self, db_service):
        with pytest.raises(SchemaMismatchError, match="does not exist"):
            with db_service.transaction():
                db_service.describe_table(QualifiedName.parse("nope"))

    def test_select_sql(self, db_service):
        assert db_service.select_sql("[t]") == "SELECT * FROM [t]"
        assert db_service.select_sql("[t]", limit=5, nolock=True) == "SELECT * FROM [t] LIMIT 5"

    def test_truncate(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            db_service.execute("INSERT INTO t (id) VALUES (1), (2)")
        with db_service.transaction():
            db_service.truncate("[t]")
            rows = db_service.execute("SELECT * FROM t")
        assert rows == []
