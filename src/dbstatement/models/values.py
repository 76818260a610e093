"""Tagged SQL parameter values accepted by statement handles."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import Field, ValidationError

from dbstatement.db.errors import UsageError
from dbstatement.models.base import DbStatementBaseModel

SqlValue = Union[None, bool, int, float, str, bytes, datetime]


class SqlType(str, Enum):
    """Kinds of values that may be bound to a statement parameter."""

    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BYTES = "bytes"
    TIMESTAMP = "timestamp"


# bool must precede int: True is an int instance.
_KIND_BY_TYPE: Tuple[Tuple[type, SqlType], ...] = (
    (bool, SqlType.BOOLEAN),
    (int, SqlType.INTEGER),
    (float, SqlType.FLOAT),
    (str, SqlType.TEXT),
    (bytes, SqlType.BYTES),
    (datetime, SqlType.TIMESTAMP),
)


def sql_type_of(value: object) -> Optional[SqlType]:
    """Return the :class:`SqlType` tag for ``value`` or ``None`` if unsupported."""

    if value is None:
        return SqlType.NULL
    for python_type, kind in _KIND_BY_TYPE:
        if isinstance(value, python_type):
            return kind
    return None


class BoundParameter(DbStatementBaseModel):
    """A single positional parameter, tagged with its SQL kind."""

    index: int = Field(ge=1)
    kind: SqlType
    value: SqlValue = None

    @classmethod
    def of(cls, index: int, value: object) -> "BoundParameter":
        """Tag ``value`` for the 1-based slot ``index``."""

        kind = sql_type_of(value)
        if kind is None:
            raise UsageError(f"Unsupported parameter type at position {index}: {type(value).__name__}")
        try:
            return cls(index=index, kind=kind, value=value)
        except ValidationError as exc:
            raise UsageError(f"Invalid parameter at position {index}: {value!r}") from exc


def bind_parameters(params: Iterable[object]) -> List[BoundParameter]:
    """Tag every positional parameter, numbering slots from 1."""

    return [BoundParameter.of(index, value) for index, value in enumerate(params, start=1)]


__all__ = ["BoundParameter", "SqlType", "SqlValue", "bind_parameters", "sql_type_of"]
