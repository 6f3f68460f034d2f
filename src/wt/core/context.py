"""The dependency bundle every command receives through click's ctx.obj."""

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path

import click

from wt.cli.output import user_output
from wt.core.config import (
    ConfigStore,
    FilesystemConfigStore,
    WtConfig,
    apply_env_overrides,
    resolve_dir,
)
from wt.core.errors import ConfigError
from wt.core.git.abc import Git
from wt.core.git.dry_run import DryRunGit
from wt.core.git.real import RealGit
from wt.core.registry import JsonRegistryStore, RegistryStore


@dataclass(frozen=True)
class WtContext:
    """Git backend, config and registry stores for one wt invocation.

    ``config`` is the effective configuration: the config file with WT_*
    environment overrides applied.
    """

    git: Git
    config_store: ConfigStore
    registry_store: RegistryStore
    config: WtConfig
    cwd: Path  # Current working directory at CLI invocation
    dry_run: bool

    @property
    def worktree_dir(self) -> Path | None:
        return resolve_dir(self.config.worktree_dir, self.cwd)

    @property
    def repo_dir(self) -> Path | None:
        return resolve_dir(self.config.repo_dir, self.cwd)

    @staticmethod
    def minimal(git: Git, cwd: Path, dry_run: bool = False) -> "WtContext":
        """Test context around ``git`` with empty in-memory stores."""
        return WtContext.for_test(git=git, cwd=cwd, dry_run=dry_run)

    @staticmethod
    def for_test(
        git: Git | None = None,
        config_store: ConfigStore | None = None,
        registry_store: RegistryStore | None = None,
        config: WtConfig | None = None,
        cwd: Path | None = None,
        dry_run: bool = False,
    ) -> "WtContext":
        """Build a context for tests; anything not passed is an in-memory fake.

        Args:
            git: Optional Git implementation. If None, creates empty FakeGit.
            config_store: Optional ConfigStore. If None, creates FakeConfigStore
                holding ``config``.
            registry_store: Optional RegistryStore. If None, creates an empty
                FakeRegistryStore.
            config: Optional effective config. If None, uses the config held by
                ``config_store`` (defaults when that is also None).
            cwd: Optional current working directory. If None, uses sentinel_path().
            dry_run: Whether to enable dry-run mode (default False).

        Returns:
            WtContext configured with provided values and test defaults

        Example:
            >>> git = FakeGit(current_branches={Path("/repo"): "main"})
            >>> ctx = WtContext.for_test(git=git, config=WtConfig(worktree_dir="/wt"))
        """
        from tests.test_utils.paths import sentinel_path

        from wt.core.config import FakeConfigStore
        from wt.core.git.fake import FakeGit
        from wt.core.registry import FakeRegistryStore

        if git is None:
            git = FakeGit()

        if config_store is None:
            config_store = FakeConfigStore(config=config)

        if config is None:
            config = config_store.load()

        if registry_store is None:
            registry_store = FakeRegistryStore()

        if dry_run:
            git = DryRunGit(git)

        return WtContext(
            git=git,
            config_store=config_store,
            registry_store=registry_store,
            config=config,
            cwd=cwd or sentinel_path(),
            dry_run=dry_run,
        )


def safe_cwd() -> tuple[Path | None, str | None]:
    """Get current working directory, detecting if it no longer exists.

    Returns:
        tuple[Path | None, str | None]: (path, error_message)
        - If successful: (Path, None)
        - If directory deleted: (None, error_message)
    """
    try:
        cwd_path = Path.cwd()
        return (cwd_path, None)
    except (FileNotFoundError, OSError):
        return (
            None,
            "Current working directory no longer exists",
        )


def create_context(*, dry_run: bool) -> WtContext:
    """Build the context for a real invocation.

    Reads the config file, applies WT_* environment overrides and exits with
    an error when the file cannot be parsed or the cwd has been deleted.

    Args:
        dry_run: If True, wrap git with DryRunGit so mutations are printed
                 instead of executed

    Returns:
        WtContext with real implementations, wrapped in dry-run
        wrappers if dry_run=True
    """
    cwd_result, error_msg = safe_cwd()
    if cwd_result is None:
        assert error_msg is not None
        user_output(click.style("Error: ", fg="red") + error_msg)
        user_output("\nThe directory you're running from has been deleted.")
        user_output("Please change to a valid directory and try again.")
        raise SystemExit(1)

    cwd = cwd_result

    # Load config, environment taking precedence over the file
    config_store = FilesystemConfigStore()
    try:
        config = apply_env_overrides(config_store.load(), os.environ)
    except ConfigError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from e

    git: Git = RealGit(timeout=config.git_timeout)

    if dry_run:
        git = DryRunGit(git)

    return WtContext(
        git=git,
        config_store=config_store,
        registry_store=JsonRegistryStore(),
        config=config,
        cwd=cwd,
        dry_run=dry_run,
    )


def with_dry_run(ctx: WtContext, dry_run: bool) -> WtContext:
    """Return ``ctx`` with git wrapped in DryRunGit when ``dry_run`` is requested.

    Commands take ``--dry-run`` as their own flag, so the wrapper is applied
    after the context was created. A context that is already in dry-run mode
    is returned unchanged.
    """
    if not dry_run or ctx.dry_run:
        return ctx
    return dataclasses.replace(ctx, git=DryRunGit(ctx.git), dry_run=True)
