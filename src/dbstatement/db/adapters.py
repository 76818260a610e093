"""psycopg2 implementations of the connection, statement and cursor protocols."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.extensions import cursor as PsycopgCursorType
from psycopg2.pool import AbstractConnectionPool

from dbstatement.utils.placeholders import CODE, COMMENT, split_sql, translate_qmark

_GENERATED_KEY_VERBS = frozenset({"INSERT", "UPDATE", "DELETE"})
_RETURNING = re.compile(r"\bRETURNING\b", re.IGNORECASE)
_TRAILING = " \t\r\n;"


def _column_names(description: Optional[Sequence[Any]]) -> Tuple[str, ...]:
    if not description:
        return ()
    return tuple(column[0] for column in description)


def _with_returning(sql: str) -> str:
    """Append ``RETURNING *`` to DML that does not already return rows.

    Only code segments are inspected, so a ``RETURNING`` inside a literal, an identifier such as
    ``returning_customers`` or a comment does not count. Trailing comments and semicolons are
    dropped before the clause is appended.
    """

    segments = split_sql(sql)
    code = "".join(segment.text if segment.kind == CODE else " " for segment in segments)
    words = code.split(None, 1)
    if not words or words[0].upper() not in _GENERATED_KEY_VERBS:
        return sql
    if _RETURNING.search(code):
        return sql

    while segments and (
        segments[-1].kind == COMMENT
        or (segments[-1].kind == CODE and not segments[-1].text.strip(_TRAILING))
    ):
        segments.pop()
    body = "".join(segment.text for segment in segments).rstrip(_TRAILING)
    return f"{body} RETURNING *"


class BufferedCursor:
    """Cursor over rows that were already fetched from the server."""

    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self._columns = tuple(columns)
        self._rows = list(rows)
        self._position = -1

    def column_names(self) -> Tuple[str, ...]:
        return self._columns

    def advance(self) -> bool:
        self._position += 1
        return self._position < len(self._rows)

    def value_of(self, column: str) -> Any:
        if not 0 <= self._position < len(self._rows):
            raise LookupError("Cursor is not positioned on a row")
        return self._rows[self._position][self._columns.index(column)]

    def close(self) -> None:
        self._rows = []


class PsycopgCursor:
    """Forward-only view over a live psycopg2 cursor."""

    def __init__(self, cursor: PsycopgCursorType) -> None:
        self._cursor = cursor
        self._columns = _column_names(cursor.description)
        self._current: Optional[Sequence[Any]] = None

    def column_names(self) -> Tuple[str, ...]:
        return self._columns

    def advance(self) -> bool:
        self._current = self._cursor.fetchone()
        return self._current is not None

    def value_of(self, column: str) -> Any:
        if self._current is None:
            raise LookupError("Cursor is not positioned on a row")
        return self._current[self._columns.index(column)]

    def close(self) -> None:
        self._current = None
        self._cursor.close()


class PsycopgPreparedStatement:
    """Statement text with 1-indexed parameter slots, executed on demand.

    psycopg2 binds client side, so "preparing" translates the placeholders and records the text.
    When generated keys are requested, DML gains ``RETURNING *`` and the returned rows are kept
    as the generated-key result.
    """

    def __init__(self, connection: PsycopgConnection, sql: str, *, request_generated_keys: bool) -> None:
        text = _with_returning(sql) if request_generated_keys else sql
        self._sql, self._placeholders = translate_qmark(text)
        self._connection = connection
        self._bindings: Dict[int, Any] = {}
        self._open_cursors: List[PsycopgCursorType] = []
        self._generated: Optional[Tuple[Tuple[str, ...], List[Tuple[Any, ...]]]] = None

    @property
    def sql(self) -> str:
        """Driver-ready statement text."""

        return self._sql

    def clear_bindings(self) -> None:
        self._bindings.clear()

    def bind(self, index: int, value: Any) -> None:
        if index < 1:
            raise IndexError(f"Parameter index must be 1 or greater, got {index}")
        self._bindings[index] = value

    def execute_update(self) -> int:
        self._generated = None
        cursor = self._connection.cursor()
        try:
            cursor.execute(self._sql, self._parameters())
            if cursor.description:
                self._generated = (_column_names(cursor.description), list(cursor.fetchall()))
            return cursor.rowcount
        finally:
            cursor.close()

    def execute_query(self) -> PsycopgCursor:
        cursor = self._connection.cursor()
        try:
            cursor.execute(self._sql, self._parameters())
        except psycopg2.Error:
            cursor.close()
            raise
        self._open_cursors.append(cursor)
        return PsycopgCursor(cursor)

    def generated_keys(self) -> Optional[BufferedCursor]:
        if self._generated is None:
            return None
        columns, rows = self._generated
        return BufferedCursor(columns, rows)

    def close(self) -> None:
        cursors, self._open_cursors = self._open_cursors, []
        for cursor in cursors:
            if not cursor.closed:
                cursor.close()
        self._generated = None

    def _parameters(self) -> Tuple[Any, ...]:
        # Always a tuple, even when empty, so psycopg2 unescapes doubled percent signs.
        count = max([self._placeholders, *self._bindings.keys()])
        missing = [index for index in range(1, count + 1) if index not in self._bindings]
        if missing:
            raise psycopg2.ProgrammingError(f"No value bound for parameter(s) {missing}")
        return tuple(self._bindings[index] for index in range(1, count + 1))


class PooledConnection:
    """psycopg2 connection borrowed from a psycopg2 pool."""

    def __init__(self, connection: PsycopgConnection, pool: AbstractConnectionPool) -> None:
        self._connection = connection
        self._pool = pool
        self._released = False

    @property
    def raw(self) -> PsycopgConnection:
        """Underlying psycopg2 connection."""

        return self._connection

    def set_auto_commit(self, enabled: bool) -> None:
        # psycopg2 rejects any autocommit assignment while a transaction is open.
        if bool(self._connection.autocommit) == enabled:
            return
        self._connection.autocommit = enabled

    def get_auto_commit(self) -> bool:
        return bool(self._connection.autocommit)

    def commit(self) -> None:
        self._connection.commit()

    def rollback(self) -> None:
        self._connection.rollback()

    def is_closed(self) -> bool:
        return bool(self._connection.closed)

    def prepare(self, sql: str, request_generated_keys: bool = True) -> PsycopgPreparedStatement:
        if self._connection.closed:
            raise psycopg2.InterfaceError("connection already closed")
        return PsycopgPreparedStatement(self._connection, sql, request_generated_keys=request_generated_keys)

    def release(self) -> None:
        """Return the connection, resetting an unfinished transaction or discarding a broken one."""

        if self._released:
            return
        self._released = True

        discard = bool(self._connection.closed)
        if not discard and not self._connection.autocommit:
            try:
                self._connection.rollback()
                self._connection.autocommit = True
            except psycopg2.Error:
                discard = True
        self._pool.putconn(self._connection, close=discard)


__all__ = ["BufferedCursor", "PooledConnection", "PsycopgCursor", "PsycopgPreparedStatement"]
