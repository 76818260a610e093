"""CLI commands for checking connectivity and running ad-hoc statements."""

from __future__ import annotations

import re
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dbstatement.db.errors import (
    DatabaseConnectionError,
    DbStatementError,
    StatementError,
    UsageError,
)
from dbstatement.db.queries import statement
from dbstatement.db.statement import StatementHandle
from dbstatement.models.values import SqlValue


class QueryExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    CONNECTION_ERROR = 1
    STATEMENT_ERROR = 2
    USAGE_ERROR = 3
    RESULT_ERROR = 4


_INTEGER = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+|[0-9]+(?=[eE]))(?:[eE][+-]?[0-9]+)?")


def parse_param(text: str) -> SqlValue:
    """Interpret a command-line parameter as null, boolean, integer, float or text.

    Only plain ASCII decimal numerals become numbers; ``nan``, ``inf``, ``1_000`` and other
    spellings Python's constructors accept stay text.
    """

    lowered = text.lower()
    if lowered == "null":
        return None
    if lowered in {"true", "false"}:
        return lowered == "true"
    if _INTEGER.fullmatch(text):
        return int(text)
    if _DECIMAL.fullmatch(text):
        return float(text)
    return text


def _build_table(handle: StatementHandle, limit: int) -> Table:
    table = Table(title=escape(handle.query))
    for column in handle.columns:
        table.add_column(column, style="cyan")

    shown = 0
    while shown < limit:
        row = handle.next_row()
        if row is None:
            break
        table.add_row(*("NULL" if value is None else escape(str(value)) for value in row.values()))
        shown += 1
    table.caption = f"{shown} row(s)"
    return table


def _exit_code_for(exc: DbStatementError) -> int:
    if isinstance(exc, DatabaseConnectionError):
        return QueryExitCode.CONNECTION_ERROR
    if isinstance(exc, StatementError):
        return QueryExitCode.STATEMENT_ERROR
    if isinstance(exc, UsageError):
        return QueryExitCode.USAGE_ERROR
    return QueryExitCode.RESULT_ERROR


def register(app: typer.Typer, console: Console) -> None:
    """Register the diagnostic commands."""

    @app.command("check")
    def check_command() -> None:
        """Borrow a connection and run ``SELECT 1``."""

        try:
            with statement() as handle:
                value = handle.prepare("SELECT 1").execute_query().first_column()
        except DbStatementError as exc:
            console.print(f"[red]Connection failed:[/red] {escape(str(exc))}")
            raise typer.Exit(code=_exit_code_for(exc)) from exc

        console.print(f"[green]Connection successful[/green], SELECT 1 returned: {value}")

    @app.command("query")
    def query_command(
        sql: str = typer.Argument(..., help="Statement text using ? placeholders"),
        params: Optional[List[str]] = typer.Argument(None, help="Positional parameter values"),
        update: bool = typer.Option(False, "--update", "-u", help="Execute as a mutating statement"),
        limit: int = typer.Option(100, "--limit", min=1, help="Maximum rows to display"),
    ) -> None:
        """Run a single statement and display its rows or affected-row count."""

        values = [parse_param(param) for param in params or []]
        try:
            with statement() as handle:
                handle.prepare(sql)
                if update:
                    affected = handle.execute_update(*values)
                    generated = handle.last_generated_id()
                    console.print(f"Rows affected: {affected}")
                    console.print(f"Generated id: {generated if generated is not None else 'n/a'}")
                    return
                handle.execute_query(*values)
                console.print(_build_table(handle, limit))
        except DbStatementError as exc:
            console.print(f"[red]Error:[/red] {escape(str(exc))}")
            raise typer.Exit(code=_exit_code_for(exc)) from exc


__all__ = ["QueryExitCode", "parse_param", "register"]
