"""Shared test fixtures."""

import pytest

from helpers import USERS_DDL
from sqlcsv import create_service


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def users_table(db_service):
    db_service.execute_ddl(USERS_DDL)
    return "users"
