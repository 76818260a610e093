"""Command registration utilities for the dbstatement CLI."""

from __future__ import annotations

import typer
from rich.console import Console

from dbstatement.cli.commands import query
from dbstatement.utils.reporting import configure_logging


def register_commands(app: typer.Typer, console: Console) -> None:
    """Attach commands to the provided Typer application."""

    query.register(app, console)

    @app.callback(invoke_without_command=True)
    def main_callback(
        ctx: typer.Context,
        log_level: str = typer.Option("WARNING", "--log-level", envvar="LOG_LEVEL", help="Logging level"),
    ) -> None:
        """Configure logging and display a default message when no subcommand is provided."""

        configure_logging(log_level, console=console)
        if ctx.invoked_subcommand is None:
            console.print("[bold green]dbstatement CLI ready for commands.[/bold green]")


__all__ = ["register_commands"]
