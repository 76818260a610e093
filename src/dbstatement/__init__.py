"""Pooled-connection statement handles with deterministic cleanup."""

from dbstatement.db.connection import DatabasePool, close_pool, get_pool, set_pool
from dbstatement.db.errors import (
    DatabaseConnectionError,
    DbStatementError,
    ResultError,
    StatementError,
    UsageError,
)
from dbstatement.db.queries import (
    execute_insert,
    execute_update,
    fetch_first_column,
    fetch_first_row,
    fetch_results,
    statement,
    transaction,
)
from dbstatement.db.statement import HandleState, StatementHandle
from dbstatement.models import ResultRow, SqlType

__all__ = [
    "DatabaseConnectionError",
    "DatabasePool",
    "DbStatementError",
    "HandleState",
    "ResultError",
    "ResultRow",
    "SqlType",
    "StatementError",
    "StatementHandle",
    "UsageError",
    "close_pool",
    "execute_insert",
    "execute_update",
    "fetch_first_column",
    "fetch_first_row",
    "fetch_results",
    "get_pool",
    "set_pool",
    "statement",
    "transaction",
]
