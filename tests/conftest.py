from __future__ import annotations

from typing import Iterator

import pytest

from dbstatement.db.connection import set_pool
from dbstatement.db.statement import StatementHandle
from tests.fakes import FakeConnection, FakePool, RecordingReporter


@pytest.fixture(autouse=True)
def _reset_default_pool() -> Iterator[None]:
    set_pool(None)
    yield
    set_pool(None)


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def pool(connection: FakeConnection) -> FakePool:
    return FakePool(connection)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def handle(connection: FakeConnection, reporter: RecordingReporter) -> Iterator[StatementHandle]:
    stmt = StatementHandle(connection, reporter=reporter)
    yield stmt
    stmt.release()
