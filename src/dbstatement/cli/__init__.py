"""Command-line interface package for dbstatement."""

from dbstatement.cli.main import CLIApplication, create_app

__all__ = ["CLIApplication", "create_app"]
