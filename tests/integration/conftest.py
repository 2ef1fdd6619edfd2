import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from loanscan.config.settings import Settings
from loanscan.database.connection import close_pool, get_connection, init_pool
from loanscan.database.repositories.postgres_repository import PostgresDocumentRepository


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "loanscan_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def pg_repository(
    integration_pool: None, test_settings: Settings
) -> Generator[PostgresDocumentRepository, None, None]:
    repository = PostgresDocumentRepository(test_settings.reference_timezone)
    repository.ensure_schema()
    with get_connection() as conn:
        conn.execute("TRUNCATE documents RESTART IDENTITY")
        conn.commit()
    yield repository


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn
