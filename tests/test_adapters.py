"""Tests for the psycopg2 adapters using mocked driver objects."""
from __future__ import annotations

from unittest.mock import MagicMock

import psycopg2
import pytest

from dbstatement.db.adapters import BufferedCursor, PooledConnection, PsycopgPreparedStatement
from dbstatement.db.statement import StatementHandle


@pytest.fixture
def raw_connection() -> MagicMock:
    connection = MagicMock(name="psycopg2_connection")
    connection.closed = 0
    connection.autocommit = True
    return connection


@pytest.fixture
def raw_pool() -> MagicMock:
    return MagicMock(name="psycopg2_pool")


def test_insert_appends_returning_and_buffers_generated_keys(raw_connection: MagicMock) -> None:
    cursor = raw_connection.cursor.return_value
    cursor.rowcount = 1
    cursor.description = [("id",), ("x",)]
    cursor.fetchall.return_value = [(7, 42)]

    statement = PsycopgPreparedStatement(raw_connection, "INSERT INTO t(x) VALUES(?)", request_generated_keys=True)
    statement.bind(1, 42)

    assert statement.execute_update() == 1
    cursor.execute.assert_called_once_with("INSERT INTO t(x) VALUES(%s) RETURNING *", (42,))
    cursor.close.assert_called_once()

    keys = statement.generated_keys()
    assert keys is not None
    assert keys.advance()
    assert keys.value_of(keys.column_names()[0]) == 7
    assert not keys.advance()


def test_existing_returning_clause_is_kept(raw_connection: MagicMock) -> None:
    statement = PsycopgPreparedStatement(
        raw_connection, "INSERT INTO t(x) VALUES(?) RETURNING id;", request_generated_keys=True
    )

    assert statement.sql == "INSERT INTO t(x) VALUES(?) RETURNING id;".replace("?", "%s")


def test_select_is_not_rewritten(raw_connection: MagicMock) -> None:
    statement = PsycopgPreparedStatement(raw_connection, "SELECT id FROM t WHERE id=?", request_generated_keys=True)

    assert statement.sql == "SELECT id FROM t WHERE id=%s"


def test_update_without_generated_keys_reports_none(raw_connection: MagicMock) -> None:
    cursor = raw_connection.cursor.return_value
    cursor.rowcount = 4
    cursor.description = None

    statement = PsycopgPreparedStatement(raw_connection, "UPDATE t SET x = 1", request_generated_keys=False)

    assert statement.execute_update() == 4
    cursor.execute.assert_called_once_with("UPDATE t SET x = 1", ())
    assert statement.generated_keys() is None


def test_missing_binding_raises_programming_error(raw_connection: MagicMock) -> None:
    statement = PsycopgPreparedStatement(raw_connection, "SELECT ? , ?", request_generated_keys=True)
    statement.bind(1, "a")

    with pytest.raises(psycopg2.ProgrammingError, match=r"\[2\]"):
        statement.execute_query()


def test_clear_bindings_forgets_previous_values(raw_connection: MagicMock) -> None:
    statement = PsycopgPreparedStatement(raw_connection, "SELECT ?", request_generated_keys=True)
    statement.bind(1, "a")
    statement.clear_bindings()

    with pytest.raises(psycopg2.ProgrammingError):
        statement.execute_query()


def test_query_cursor_reads_by_column_name(raw_connection: MagicMock) -> None:
    cursor = raw_connection.cursor.return_value
    cursor.description = [("id",), ("name",)]
    cursor.fetchone.side_effect = [(7, "a"), None]
    cursor.closed = False

    statement = PsycopgPreparedStatement(raw_connection, "SELECT id,name FROM t WHERE id=?", request_generated_keys=True)
    statement.bind(1, 7)
    result = statement.execute_query()

    assert result.column_names() == ("id", "name")
    assert result.advance()
    assert result.value_of("name") == "a"
    assert not result.advance()
    with pytest.raises(LookupError):
        result.value_of("id")

    statement.close()
    cursor.close.assert_called_once()


def test_buffered_cursor_requires_position() -> None:
    cursor = BufferedCursor(("id",), [(1,)])

    with pytest.raises(LookupError):
        cursor.value_of("id")


def test_pooled_connection_maps_autocommit(raw_connection: MagicMock, raw_pool: MagicMock) -> None:
    connection = PooledConnection(raw_connection, raw_pool)

    connection.set_auto_commit(False)

    assert raw_connection.autocommit is False
    assert connection.get_auto_commit() is False


def test_pooled_connection_prepare_on_closed_connection(raw_connection: MagicMock, raw_pool: MagicMock) -> None:
    raw_connection.closed = 1
    connection = PooledConnection(raw_connection, raw_pool)

    assert connection.is_closed()
    with pytest.raises(psycopg2.InterfaceError):
        connection.prepare("SELECT 1")


def test_release_returns_connection_once(raw_connection: MagicMock, raw_pool: MagicMock) -> None:
    connection = PooledConnection(raw_connection, raw_pool)

    connection.release()
    connection.release()

    raw_pool.putconn.assert_called_once_with(raw_connection, close=False)
    raw_connection.rollback.assert_not_called()


def test_release_resets_open_transaction(raw_connection: MagicMock, raw_pool: MagicMock) -> None:
    raw_connection.autocommit = False
    connection = PooledConnection(raw_connection, raw_pool)

    connection.release()

    raw_connection.rollback.assert_called_once()
    assert raw_connection.autocommit is True
    raw_pool.putconn.assert_called_once_with(raw_connection, close=False)


def test_release_discards_broken_connection(raw_connection: MagicMock, raw_pool: MagicMock) -> None:
    raw_connection.autocommit = False
    raw_connection.rollback.side_effect = psycopg2.OperationalError("server closed the connection")
    connection = PooledConnection(raw_connection, raw_pool)

    connection.release()

    raw_pool.putconn.assert_called_once_with(raw_connection, close=True)


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        (
            "INSERT INTO returning_customers(name) VALUES(?)",
            "INSERT INTO returning_customers(name) VALUES(%s) RETURNING *",
        ),
        (
            "INSERT INTO notes(body) VALUES('returning soon') ",
            "INSERT INTO notes(body) VALUES('returning soon') RETURNING *",
        ),
        (
            'UPDATE t SET "returning" = ? WHERE id = ?;',
            'UPDATE t SET "returning" = %s WHERE id = %s RETURNING *',
        ),
        (
            "INSERT INTO t(x) VALUES(?); -- add one row\n",
            "INSERT INTO t(x) VALUES(%s) RETURNING *",
        ),
        (
            "DELETE FROM t WHERE id = ? /* RETURNING nothing */",
            "DELETE FROM t WHERE id = %s RETURNING *",
        ),
    ],
)
def test_returning_is_detected_only_in_code(raw_connection: MagicMock, sql: str, expected: str) -> None:
    statement = PsycopgPreparedStatement(raw_connection, sql, request_generated_keys=True)

    assert statement.sql == expected


def test_lowercase_returning_clause_is_kept(raw_connection: MagicMock) -> None:
    statement = PsycopgPreparedStatement(
        raw_connection, "delete from t where id = ? returning id", request_generated_keys=True
    )

    assert statement.sql == "delete from t where id = %s returning id"


class _TransactionalConnection:
    """psycopg2 connection stand-in that rejects autocommit changes inside a transaction."""

    closed = 0

    def __init__(self) -> None:
        self._autocommit = True
        self.in_transaction = False
        self.rollbacks = 0

    @property
    def autocommit(self) -> bool:
        return self._autocommit

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        if self.in_transaction:
            raise psycopg2.ProgrammingError("set_session cannot be used inside a transaction")
        self._autocommit = value

    def rollback(self) -> None:
        self.rollbacks += 1
        self.in_transaction = False


def test_set_auto_commit_is_a_no_op_when_unchanged(raw_pool: MagicMock) -> None:
    raw = _TransactionalConnection()
    connection = PooledConnection(raw, raw_pool)
    connection.set_auto_commit(False)
    raw.in_transaction = True

    connection.set_auto_commit(False)

    assert connection.get_auto_commit() is False
    with pytest.raises(psycopg2.ProgrammingError):
        connection.set_auto_commit(True)


def test_begin_transaction_twice_after_executing(raw_pool: MagicMock) -> None:
    raw = _TransactionalConnection()
    handle = StatementHandle(PooledConnection(raw, raw_pool))
    handle.begin_transaction()
    raw.in_transaction = True

    handle.begin_transaction()

    assert handle.dirty
    handle.release()
    assert raw.rollbacks == 1
    assert raw.autocommit is True
    raw_pool.putconn.assert_called_once_with(raw, close=False)
