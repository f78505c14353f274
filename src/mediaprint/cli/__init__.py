"""Command-line interface for mediaprint.

The Typer application lives in cli.commands; importing it here gives a single
entry point (``mediaprint.cli:app``) for the console script and for tests.
"""

from mediaprint.cli.commands import app, main

__all__ = ["app", "main"]
