"""Exception hierarchy raised by statement handles and their collaborators."""

from __future__ import annotations


class DbStatementError(RuntimeError):
    """Base exception for all statement-handle failures."""


class DatabaseConnectionError(DbStatementError):
    """Raised when a connection cannot be acquired or changes commit mode."""


class StatementError(DbStatementError):
    """Raised when the driver rejects a statement during prepare or execute."""


class UsageError(DbStatementError):
    """Raised when a caller violates the handle protocol."""


class ResultError(DbStatementError):
    """Raised when a result column cannot be read or has an unexpected type."""


__all__ = [
    "DatabaseConnectionError",
    "DbStatementError",
    "ResultError",
    "StatementError",
    "UsageError",
]
