"""Utility helpers shared across dbstatement modules."""

from dbstatement.utils.placeholders import split_sql, translate_qmark
from dbstatement.utils.reporting import ErrorReporter, configure_logging, log_error

__all__ = ["ErrorReporter", "configure_logging", "log_error", "split_sql", "translate_qmark"]
