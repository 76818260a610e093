from __future__ import annotations

import pytest

from dbstatement.db.connection import set_pool
from dbstatement.db.errors import StatementError
from dbstatement.db.queries import (
    execute_insert,
    execute_update,
    fetch_first_column,
    fetch_first_row,
    fetch_results,
    statement,
    transaction,
)
from tests.fakes import FakeConnection, FakePool


def test_statement_scope_releases_connection(pool: FakePool) -> None:
    with statement(pool) as handle:
        handle.prepare("SELECT id,name FROM t").execute_query()

    assert handle.is_released()
    assert pool.connection.release_calls == 1


def test_transaction_commits_on_success(pool: FakePool) -> None:
    with transaction(pool) as handle:
        handle.prepare("INSERT INTO t(x) VALUES(?)").execute_update(1)

    connection = pool.connection
    assert connection.count("commit") == 1
    assert connection.count("rollback") == 0
    assert connection.calls[-1] == "release"
    assert connection.autocommit is True


def test_transaction_rolls_back_on_error(pool: FakePool) -> None:
    with pytest.raises(ValueError):
        with transaction(pool) as handle:
            handle.prepare("INSERT INTO t(x) VALUES(?)").execute_update(1)
            raise ValueError("business rule violated")

    connection = pool.connection
    assert connection.count("rollback") == 1
    assert connection.count("commit") == 0
    assert connection.release_calls == 1


def test_transaction_execute_failure_rolls_back_once() -> None:
    pool = FakePool(FakeConnection(fail_execute=True))

    with pytest.raises(StatementError):
        with transaction(pool) as handle:
            handle.prepare("UPDATE t SET x = ?").execute_update(1)

    assert pool.connection.count("rollback") == 1
    assert pool.connection.release_calls == 1


def test_fetch_results_uses_default_pool(pool: FakePool) -> None:
    pool.connection.result = (("id", "name"), [(1, "a"), (2, "b")])
    set_pool(pool)

    rows = fetch_results("SELECT id,name FROM t")

    assert rows == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
    assert pool.connection.release_calls == 1


def test_fetch_results_returns_empty_list_for_no_rows() -> None:
    pool = FakePool(FakeConnection(result=(("id",), [])))

    assert fetch_results("SELECT id FROM t WHERE false", pool=pool) == []


def test_fetch_first_row(pool: FakePool) -> None:
    row = fetch_first_row("SELECT id,name FROM t WHERE id=?", 7, pool=pool)

    assert row == {"id": 7, "name": "a"}
    assert pool.connection.statements[0].bindings == {1: 7}
    assert pool.connection.live_cursors == []


def test_fetch_first_column() -> None:
    pool = FakePool(FakeConnection(result=(("exists",), [(True,)])))

    assert fetch_first_column("SELECT EXISTS(SELECT 1 FROM t)", pool=pool, expected=bool) is True


def test_execute_update_returns_affected_rows() -> None:
    pool = FakePool(FakeConnection(update_count=3))

    assert execute_update("DELETE FROM t WHERE x < ?", 10, pool=pool) == 3
    assert pool.connection.release_calls == 1


def test_execute_insert_returns_generated_id(pool: FakePool) -> None:
    assert execute_insert("INSERT INTO t(x) VALUES(?)", 42, pool=pool) == 7
    assert pool.connection.release_calls == 1
