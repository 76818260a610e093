"""Scoped statement helpers that guarantee every handle is released."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Type, TypeVar

from dbstatement.db import ConnectionPool
from dbstatement.db.statement import StatementHandle
from dbstatement.models.row import ResultRow
from dbstatement.utils.reporting import ErrorReporter

T = TypeVar("T")


@contextmanager
def statement(
    pool: Optional[ConnectionPool] = None,
    *,
    reporter: Optional[ErrorReporter] = None,
) -> Iterator[StatementHandle]:
    """Yield a handle on a freshly borrowed connection and release it on exit."""

    handle = StatementHandle(pool=pool, reporter=reporter)
    try:
        yield handle
    finally:
        handle.release()


@contextmanager
def transaction(
    pool: Optional[ConnectionPool] = None,
    *,
    reporter: Optional[ErrorReporter] = None,
) -> Iterator[StatementHandle]:
    """Yield a handle inside a transaction: commit on success, roll back on error."""

    with statement(pool, reporter=reporter) as handle:
        handle.begin_transaction()
        try:
            yield handle
        except Exception:
            handle.rollback()
            raise
        handle.commit()


def fetch_results(sql: str, *params: Any, pool: Optional[ConnectionPool] = None) -> List[ResultRow]:
    """Return every row produced by ``sql``."""

    with statement(pool) as handle:
        handle.prepare(sql).execute_query(*params)
        return handle.fetch_all() or []


def fetch_first_row(sql: str, *params: Any, pool: Optional[ConnectionPool] = None) -> Optional[ResultRow]:
    """Return the first row produced by ``sql``, if any."""

    with statement(pool) as handle:
        handle.prepare(sql).execute_query(*params)
        return handle.next_row()


def fetch_first_column(
    sql: str,
    *params: Any,
    pool: Optional[ConnectionPool] = None,
    expected: Optional[Type[T]] = None,
) -> Optional[T]:
    """Return the first column of the first row, for counts and existence checks."""

    with statement(pool) as handle:
        handle.prepare(sql).execute_query(*params)
        return handle.first_column(expected)


def execute_update(sql: str, *params: Any, pool: Optional[ConnectionPool] = None) -> int:
    """Run a mutating statement and return the affected-row count."""

    with statement(pool) as handle:
        return handle.prepare(sql).execute_update(*params)


def execute_insert(sql: str, *params: Any, pool: Optional[ConnectionPool] = None) -> Optional[Any]:
    """Run an insert and return the first generated key, if the driver reported one."""

    with statement(pool) as handle:
        handle.prepare(sql).execute_update(*params)
        return handle.last_generated_id()


__all__ = [
    "execute_insert",
    "execute_update",
    "fetch_first_column",
    "fetch_first_row",
    "fetch_results",
    "statement",
    "transaction",
]
