"""Key/value container for a fetched result row."""

from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from dbstatement.db.errors import ResultError

T = TypeVar("T")


class ResultRow(dict):
    """Mapping of column label to native value, ordered as selected."""

    def require(self, column: str) -> Any:
        """Return ``column`` or raise :class:`ResultError` if the row lacks it."""

        try:
            return self[column]
        except KeyError:
            raise ResultError(f"Column {column!r} not present in row; columns: {list(self)}") from None

    def get_as(self, column: str, expected: Type[T], default: Optional[T] = None) -> Optional[T]:
        """Return ``column`` checked against ``expected``.

        Missing columns and SQL ``NULL`` yield ``default``. Present values of another type raise
        :class:`ResultError`; no conversion is attempted.
        """

        value = self.get(column)
        if value is None:
            return default
        if not isinstance(value, expected):
            raise ResultError(
                f"Column {column!r} holds {type(value).__name__}, expected {expected.__name__}"
            )
        return value

    def copy(self) -> "ResultRow":
        return ResultRow(self)

    def __repr__(self) -> str:
        return f"ResultRow({dict.__repr__(self)})"


__all__ = ["ResultRow"]
