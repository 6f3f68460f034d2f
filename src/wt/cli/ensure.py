"""Fail-fast helpers for commands.

Core modules raise WtError subclasses. Commands wrap engine calls in
``Ensure.no_wt_error()`` and check their own preconditions with
``Ensure.invariant()``; either way the user sees a red "Error:" line on
stderr and the process exits with status 1.
"""

from collections.abc import Iterator
from contextlib import contextmanager

import click

from wt.cli.output import user_output
from wt.core.errors import WtError


def _report(message: str) -> None:
    user_output(click.style("Error: ", fg="red") + message)


class Ensure:
    """Precondition checks that end the command on failure."""

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Exit with ``error_message`` unless ``condition`` holds.

        Raises:
            SystemExit: With code 1 when the condition is false
        """
        if not condition:
            _report(error_message)
            raise SystemExit(1)

    @staticmethod
    @contextmanager
    def no_wt_error() -> Iterator[None]:
        """Report a WtError raised inside the block and exit.

        Raises:
            SystemExit: With code 1 when the block raises WtError

        Example:
            >>> with Ensure.no_wt_error():
            ...     plan = relocator.plan(scope, options)
        """
        try:
            yield
        except WtError as e:
            _report(str(e))
            raise SystemExit(1) from e
