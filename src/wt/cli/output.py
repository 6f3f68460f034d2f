"""Output utilities for CLI commands with clear intent.

user_output() is for messages meant for the person at the terminal: progress,
results, warnings and errors. It writes to stderr so stdout stays clean for
machine-readable output such as ``wt repo list --paths``.
"""

from typing import Any

import click


def user_output(message: Any = "", nl: bool = True) -> None:
    """Print a human-facing message to stderr."""
    click.echo(message, nl=nl, err=True)


def machine_output(message: Any = "", nl: bool = True) -> None:
    """Print data meant for scripts and pipes to stdout."""
    click.echo(message, nl=nl)
