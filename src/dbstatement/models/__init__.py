"""Value objects shared by statement handles."""

from dbstatement.models.row import ResultRow
from dbstatement.models.values import BoundParameter, SqlType, SqlValue, bind_parameters

__all__ = ["BoundParameter", "ResultRow", "SqlType", "SqlValue", "bind_parameters"]
