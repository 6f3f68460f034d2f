import os
from dataclasses import replace

import click

from wt.cli.ensure import Ensure
from wt.cli.output import machine_output, user_output
from wt.core.config import (
    CONFIG_KEYS,
    ENV_REPO_DIR,
    ENV_WORKTREE_DIR,
    ENV_WORKTREE_FORMAT,
    WtConfig,
    parse_dirty_policy,
)
from wt.core.context import WtContext
from wt.core.errors import ConfigError
from wt.core.naming import validate_format

ENV_OVERRIDES = {
    "worktree_dir": ENV_WORKTREE_DIR,
    "repo_dir": ENV_REPO_DIR,
    "worktree_format": ENV_WORKTREE_FORMAT,
}


def _format_value(value: object) -> str:
    if value is None:
        return "(not set)"
    return str(value)


def _parse_timeout(value: str) -> float:
    """Parse a positive number of seconds.

    Raises:
        ConfigError: If the value is not a positive number
    """
    try:
        timeout = float(value)
    except ValueError as e:
        raise ConfigError(f"Invalid git_timeout value '{value}' (expected seconds)") from e
    if timeout <= 0:
        raise ConfigError(f"Invalid git_timeout value '{value}' (must be positive)")
    return timeout


def _update_config_field(current_config: WtConfig, key: str, value: str) -> WtConfig:
    """Return a copy of ``current_config`` with one key set from its string form.

    Raises:
        ConfigError: If the key is unknown or the value is invalid
    """
    match key:
        case "worktree_dir":
            return replace(current_config, worktree_dir=value)
        case "repo_dir":
            return replace(current_config, repo_dir=value)
        case "worktree_format":
            validate_format(value)
            return replace(current_config, worktree_format=value)
        case "dirty_worktrees":
            return replace(current_config, dirty_worktrees=parse_dirty_policy(value))
        case "git_timeout":
            return replace(current_config, git_timeout=_parse_timeout(value))
        case _:
            raise ConfigError(
                f"Unknown config key '{key}' (expected one of: {', '.join(CONFIG_KEYS)})"
            )


@click.group("config")
def config_group() -> None:
    """Manage wt configuration."""


@config_group.command("show")
@click.pass_obj
def config_show(ctx: WtContext) -> None:
    """Print the effective configuration."""
    user_output(click.style("Configuration:", bold=True) + f" {ctx.config_store.path()}")
    if not ctx.config_store.exists():
        user_output("  (no config file - run 'wt config set KEY VALUE' to create one)")

    for key in CONFIG_KEYS:
        line = f"  {key}={_format_value(getattr(ctx.config, key))}"
        env_var = ENV_OVERRIDES.get(key)
        if env_var is not None and os.environ.get(env_var):
            line += click.style(f"  (from {env_var})", dim=True)
        user_output(line)

    user_output(click.style("Registry:", bold=True) + f" {ctx.registry_store.path()}")


@config_group.command("get")
@click.argument("key", metavar="KEY")
@click.pass_obj
def config_get(ctx: WtContext, key: str) -> None:
    """Print the effective value of KEY."""
    Ensure.invariant(
        key in CONFIG_KEYS,
        f"Unknown config key '{key}' (expected one of: {', '.join(CONFIG_KEYS)})",
    )
    value = getattr(ctx.config, key)
    Ensure.invariant(value is not None, f"Key not set: {key}")
    machine_output(str(value))


@config_group.command("set")
@click.argument("key", metavar="KEY")
@click.argument("value", metavar="VALUE")
@click.pass_obj
def config_set(ctx: WtContext, key: str, value: str) -> None:
    """Set KEY to VALUE in the config file."""
    with Ensure.no_wt_error():
        current = ctx.config_store.load()
        updated = _update_config_field(current, key, value)
        ctx.config_store.save(updated)

    user_output(f"Set {key}={value}")
