"""Helpers shared by CLI commands."""

from pathlib import Path

from wt.core.context import WtContext


def resolve_argument_path(ctx: WtContext, path: Path | None) -> Path:
    """Turn an optional PATH argument into an absolute path, defaulting to cwd.

    Relative paths are taken relative to ``ctx.cwd`` rather than the process
    working directory, so tests can inject a cwd.
    """
    if path is None:
        return ctx.cwd
    path = path.expanduser()
    if not path.is_absolute():
        path = ctx.cwd / path
    return path
