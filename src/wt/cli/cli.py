import logging
import os

import click

from wt.cli.commands.config import config_group
from wt.cli.commands.migrate import migrate_cmd
from wt.cli.commands.mv import mv_cmd
from wt.cli.commands.repo import repo_group
from wt.core.context import create_context

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags

# Enable debug logging if WT_DEBUG environment variable is set
if os.getenv("WT_DEBUG"):
    logging.basicConfig(level=logging.DEBUG, format="[DEBUG %(name)s:%(lineno)d] %(message)s")


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="wt-cli")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Manage git repositories and their worktrees from a central registry."""
    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context(dry_run=False)


# Register all commands
cli.add_command(config_group)
cli.add_command(migrate_cmd)
cli.add_command(mv_cmd)
cli.add_command(repo_group)


def main() -> None:
    """CLI entry point used by the `wt` console script."""
    cli()
