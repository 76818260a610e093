"""Collaborator protocols consumed by :class:`dbstatement.db.statement.StatementHandle`."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence


class Cursor(Protocol):
    """Forward-only pointer into a query's result set."""

    def column_names(self) -> Sequence[str]:
        """Return the result column labels in select order."""

    def advance(self) -> bool:
        """Move to the next row, returning ``False`` once exhausted."""

    def value_of(self, column: str) -> Any:
        """Return the native value of ``column`` at the current row."""

    def close(self) -> None:
        """Release the cursor."""


class PreparedStatement(Protocol):
    """Driver statement with positional (1-indexed) parameter slots."""

    def clear_bindings(self) -> None:
        """Forget every previously bound parameter."""

    def bind(self, index: int, value: Any) -> None:
        """Bind ``value`` to the 1-based parameter slot ``index``."""

    def execute_update(self) -> int:
        """Execute as a mutating statement and return the affected-row count."""

    def execute_query(self) -> Cursor:
        """Execute as a result-producing statement."""

    def generated_keys(self) -> Optional[Cursor]:
        """Return the keys generated by the last mutating execution, if any."""

    def close(self) -> None:
        """Release the statement and any driver resources it holds."""


class Connection(Protocol):
    """Connection borrowed from a pool."""

    def set_auto_commit(self, enabled: bool) -> None:
        """Switch autocommit on or off."""

    def get_auto_commit(self) -> bool:
        """Return whether autocommit is enabled."""

    def commit(self) -> None:
        """Commit the current transaction."""

    def rollback(self) -> None:
        """Roll back the current transaction."""

    def is_closed(self) -> bool:
        """Return whether the underlying connection is closed."""

    def prepare(self, sql: str, request_generated_keys: bool = True) -> PreparedStatement:
        """Prepare ``sql`` for execution."""

    def release(self) -> None:
        """Return the connection to the pool it was borrowed from."""


class ConnectionPool(Protocol):
    """Source of borrowed connections."""

    def acquire(self) -> Connection:
        """Lend a connection, raising ``DatabaseConnectionError`` when none is available."""


__all__ = ["Connection", "ConnectionPool", "Cursor", "PreparedStatement"]
