"""CLI entry point and application wiring."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from dbstatement.cli.commands import register_commands
from dbstatement.db.connection import close_pool


class CLIApplication:
    """Diagnostic CLI that checks pool connectivity and runs one-off statements through a handle.

    The default pool is built lazily by the first command that borrows a connection and is
    closed when the run ends.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self._app = typer.Typer(add_completion=False, rich_markup_mode="rich")
        register_commands(self._app, self.console)

    @property
    def app(self) -> typer.Typer:
        """Typer app with the `check` and `query` commands registered."""

        return self._app

    def run(self, *, prog_name: Optional[str] = None, args: Optional[list[str]] = None) -> None:
        """Invoke the Typer application, closing the default pool afterwards."""

        try:
            self._app(prog_name=prog_name, args=args)
        finally:
            close_pool()


def create_app(console: Optional[Console] = None) -> typer.Typer:
    """Build the diagnostic app, printing to `console` (tests pass a recording console)."""

    return CLIApplication(console=console).app


def main() -> None:
    """Console script entry point for the installed `dbstatement` command."""

    CLIApplication().run(prog_name="dbstatement")


__all__ = ["CLIApplication", "create_app", "main"]
