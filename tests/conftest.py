"""
Pytest configuration for the Redshift sink.

Provides fixtures for:
- Settings with explicit test values (no environment required)
- Fake psycopg connections recording executed statements
- A fake boto3 S3 client backed by a dict
- A reachable PostgreSQL for integration tests (skipped otherwise)
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence

import psycopg
import pytest
from botocore.exceptions import ClientError

from redshift_sink.config import Settings

FIXED_NOW = datetime(2020, 1, 1, 10, 30, 0)


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self._conn.executed.append((sql, params))
        if self._conn.execute_error is not None:
            raise self._conn.execute_error

    def fetchall(self) -> List[tuple]:
        return [(column,) for column in self._conn.columns]


class FakeConnection:
    def __init__(
        self,
        columns: Sequence[str] = (),
        execute_error: Optional[BaseException] = None,
    ) -> None:
        self.columns = list(columns)
        self.execute_error = execute_error
        self.executed: List[tuple] = []
        self.committed = False
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.committed = True

    def close(self) -> None:
        self.closed = True


class ConnectionFactory:
    """Zero-argument connect callable that records every connection it hands out."""

    def __init__(
        self,
        columns: Sequence[str] = (),
        execute_error: Optional[BaseException] = None,
        connect_error: Optional[BaseException] = None,
    ) -> None:
        self.columns = list(columns)
        self.execute_error = execute_error
        self.connect_error = connect_error
        self.connections: List[FakeConnection] = []

    def __call__(self) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(columns=self.columns, execute_error=self.execute_error)
        self.connections.append(conn)
        return conn


class FakeS3Client:
    def __init__(self, existing: Sequence[str] = (), upload_error: Optional[BaseException] = None) -> None:
        self.objects: Dict[str, bytes] = {key: b"" for key in existing}
        self.upload_error = upload_error
        self.head_calls: List[str] = []
        self.uploads: List[Dict[str, Any]] = []

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self.head_calls.append(Key)
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentLength": len(self.objects[Key])}

    def upload_file(
        self, Filename: str, Bucket: str, Key: str, ExtraArgs: Optional[Dict[str, Any]] = None
    ) -> None:
        if self.upload_error is not None:
            raise self.upload_error
        with open(Filename, "rb") as f:
            self.objects[Key] = f.read()
        self.uploads.append({"bucket": Bucket, "key": Key, "extra_args": ExtraArgs})


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """
    Factory for Settings with test defaults; keyword arguments override them.
    """

    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {
            "aws_key_id": "AKIDTEST",
            "aws_sec_key": "secret-test",
            "s3_bucket": "log-staging",
            "path": "logs/events",
            "redshift_host": "redshift.example.com",
            "redshift_dbname": "analytics",
            "redshift_user": "loader",
            "redshift_password": "pw",
            "redshift_tablename": "events",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def test_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def s3_client_factory() -> Callable[..., FakeS3Client]:
    return FakeS3Client


@pytest.fixture
def connection_factory() -> Callable[..., ConnectionFactory]:
    return ConnectionFactory


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Connection string for integration tests against PostgreSQL.
    """
    return (
        f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', 'postgres')}"
        f"@{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}"
        f"/{os.getenv('DB_NAME', 'postgres')}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()
