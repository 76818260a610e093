"""Stateful handle over one borrowed connection and its current prepared statement."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from types import TracebackType
from typing import Any, List, Optional, Tuple, Type, TypeVar

from dbstatement.db import Connection, ConnectionPool, Cursor, PreparedStatement
from dbstatement.db.connection import get_pool
from dbstatement.db.errors import (
    DatabaseConnectionError,
    DbStatementError,
    ResultError,
    StatementError,
    UsageError,
)
from dbstatement.models.row import ResultRow
from dbstatement.models.values import BoundParameter, bind_parameters
from dbstatement.utils.reporting import ErrorReporter, log_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HandleState(str, Enum):
    """Lifecycle states of a :class:`StatementHandle`."""

    IDLE = "idle"
    PREPARED = "prepared"
    CURSORED = "cursored"
    RELEASED = "released"


def _acquire(pool: Optional[ConnectionPool]) -> Connection:
    try:
        source = pool if pool is not None else get_pool()
        return source.acquire()
    except DbStatementError:
        raise
    except Exception as exc:
        raise DatabaseConnectionError(f"Unable to acquire a database connection: {exc}") from exc


class StatementHandle:
    """Manages a borrowed connection and at most one prepared statement and result cursor.

    The handle must be released on every exit path. Use it as a context manager::

        with StatementHandle() as stmt:
            stmt.prepare("SELECT id, name FROM t WHERE id = ?").execute_query(7)
            row = stmt.next_row()

    Prepare, bind and execute failures release the connection before the error propagates, so a
    failed handle cannot be reused. Commit, rollback and release never raise; their failures go to the
    ``reporter`` (logging by default) and are otherwise invisible to the caller.
    """

    def __init__(
        self,
        connection: Optional[Connection] = None,
        *,
        pool: Optional[ConnectionPool] = None,
        reporter: Optional[ErrorReporter] = None,
    ) -> None:
        self.query = ""
        self._report: ErrorReporter = reporter or log_error
        self._dirty = False
        self._rollback_lock = threading.Lock()
        self._statement: Optional[PreparedStatement] = None
        self._cursor: Optional[Cursor] = None
        self._columns: Tuple[str, ...] = ()
        self._connection: Optional[Connection] = connection if connection is not None else _acquire(pool)

    # ------------------------------------------------------------------
    # Context management
    # ------------------------------------------------------------------
    def __enter__(self) -> "StatementHandle":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"StatementHandle(state={self.state.value}, dirty={self._dirty}, query={self.query!r})"

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> HandleState:
        if self._connection is None:
            return HandleState.RELEASED
        if self._cursor is not None:
            return HandleState.CURSORED
        if self._statement is not None:
            return HandleState.PREPARED
        return HandleState.IDLE

    @property
    def dirty(self) -> bool:
        """Whether a transaction was started and not yet committed or rolled back."""

        return self._dirty

    @property
    def columns(self) -> Tuple[str, ...]:
        """Column labels of the open cursor; empty when no cursor is open."""

        return self._columns

    def is_released(self) -> bool:
        """Return whether the connection has already gone back to the pool."""

        return self._connection is None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def begin_transaction(self) -> None:
        """Disable autocommit and mark the handle dirty."""

        connection = self._require_connection()
        try:
            connection.set_auto_commit(False)
        except Exception as exc:
            raise DatabaseConnectionError(f"Unable to start a transaction: {exc}") from exc
        self._dirty = True

    def commit(self) -> None:
        """Commit a pending transaction; failures are reported, never raised."""

        if not self._dirty:
            return
        self._dirty = False
        try:
            connection = self._require_connection()
            connection.commit()
            connection.set_auto_commit(True)
        except Exception as exc:
            self._report(f"Commit failed for query {self.query!r}", exc)

    def rollback(self) -> None:
        """Roll back a pending transaction; failures are reported, never raised."""

        with self._rollback_lock:
            if not self._dirty:
                return
            self._dirty = False
            try:
                connection = self._require_connection()
                connection.rollback()
                connection.set_auto_commit(True)
            except Exception as exc:
                self._report(f"Rollback failed for query {self.query!r}", exc)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------
    def prepare(self, sql: str) -> "StatementHandle":
        """Close the current statement and prepare ``sql`` in its place."""

        connection = self._require_connection()
        self.query = sql
        self._close_statement()
        try:
            self._statement = connection.prepare(sql, request_generated_keys=True)
        except Exception as exc:
            self.release()
            raise StatementError(f"Unable to prepare statement {sql!r}: {exc}") from exc
        return self

    def execute_update(self, *params: Any) -> int:
        """Bind ``params`` and run the statement as a mutation, returning the affected rows."""

        statement, bound = self._prepare_execute(params)
        try:
            self._apply_bindings(statement, bound)
            return statement.execute_update()
        except Exception as exc:
            self.release()
            raise StatementError(f"Unable to execute update {self.query!r}: {exc}") from exc

    def execute_query(self, *params: Any) -> "StatementHandle":
        """Bind ``params``, run the statement and open its result cursor."""

        statement, bound = self._prepare_execute(params)
        try:
            self._apply_bindings(statement, bound)
            self._cursor = statement.execute_query()
            self._columns = tuple(self._cursor.column_names())
        except Exception as exc:
            self.release()
            raise StatementError(f"Unable to execute query {self.query!r}: {exc}") from exc
        return self

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def next_row(self) -> Optional[ResultRow]:
        """Return the next row, or ``None`` once the cursor is exhausted or absent."""

        cursor = self._next_cursor_row()
        if cursor is None:
            return None

        row = ResultRow()
        for column in self._columns:
            row[column] = self._read(cursor, column)
        return row

    def fetch_all(self) -> Optional[List[ResultRow]]:
        """Drain the cursor.

        Returns ``None`` when no query has an open cursor, which differs from a query that
        matched nothing (an empty list).
        """

        if self._cursor is None:
            return None

        rows: List[ResultRow] = []
        while True:
            row = self.next_row()
            if row is None:
                return rows
            rows.append(row)

    def first_column(self, expected: Optional[Type[T]] = None) -> Optional[T]:
        """Advance once and return the first column of that row, for scalar queries."""

        cursor = self._next_cursor_row()
        if cursor is None:
            return None
        if not self._columns:
            raise ResultError(f"Query {self.query!r} returned no columns")

        value = self._read(cursor, self._columns[0])
        if expected is not None and value is not None and not isinstance(value, expected):
            raise ResultError(
                f"First column holds {type(value).__name__}, expected {expected.__name__}"
            )
        return value

    def last_generated_id(self) -> Optional[Any]:
        """Return the first key generated by the most recent update, if the driver reported one."""

        if self._statement is None:
            return None
        try:
            keys = self._statement.generated_keys()
        except Exception as exc:
            raise ResultError(f"Unable to read generated keys: {exc}") from exc
        if keys is None:
            return None

        try:
            if not keys.advance():
                return None
            names = keys.column_names()
            return keys.value_of(names[0])
        except Exception as exc:
            raise ResultError(f"Unable to read generated keys: {exc}") from exc
        finally:
            self._close_quietly(keys, "generated-key cursor")

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------
    def release(self) -> None:
        """Close every resource and return the connection to the pool. Safe to call repeatedly."""

        self._close_statement()
        connection = self._connection
        if connection is None:
            return

        try:
            if self._dirty and not connection.get_auto_commit():
                logger.warning("Statement was not finalized, rolling back: %s", self.query)
                self.rollback()
        except Exception as exc:
            self._report(f"Unable to inspect transaction state for query {self.query!r}", exc)

        self._dirty = False
        self._connection = None
        try:
            connection.release()
        except Exception as exc:
            self._report("Unable to return connection to the pool", exc)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_connection(self) -> Connection:
        if self._connection is None:
            raise UsageError("Statement handle already released")
        return self._connection

    def _prepare_execute(self, params: Tuple[Any, ...]) -> Tuple[PreparedStatement, List[BoundParameter]]:
        self._require_connection()
        if self._statement is None:
            raise UsageError("prepare not called: run prepare() before executing")
        try:
            bound = bind_parameters(params)
        except UsageError:
            self.release()
            raise
        self._close_cursor()
        return self._statement, bound

    @staticmethod
    def _apply_bindings(statement: PreparedStatement, bound: List[BoundParameter]) -> None:
        statement.clear_bindings()
        for parameter in bound:
            statement.bind(parameter.index, parameter.value)

    def _next_cursor_row(self) -> Optional[Cursor]:
        cursor = self._cursor
        if cursor is None:
            return None
        try:
            has_row = cursor.advance()
        except Exception as exc:
            raise ResultError(f"Unable to advance cursor for query {self.query!r}: {exc}") from exc
        if has_row:
            return cursor
        self._close_cursor()
        return None

    @staticmethod
    def _read(cursor: Cursor, column: str) -> Any:
        try:
            return cursor.value_of(column)
        except Exception as exc:
            raise ResultError(f"Unable to read column {column!r}: {exc}") from exc

    def _close_cursor(self) -> None:
        cursor, self._cursor = self._cursor, None
        self._columns = ()
        if cursor is not None:
            self._close_quietly(cursor, "result cursor")

    def _close_statement(self) -> None:
        self._close_cursor()
        statement, self._statement = self._statement, None
        if statement is not None:
            self._close_quietly(statement, "prepared statement")

    def _close_quietly(self, resource: Any, description: str) -> None:
        try:
            resource.close()
        except Exception as exc:
            self._report(f"Unable to close {description} for query {self.query!r}", exc)


__all__ = ["HandleState", "StatementHandle"]
