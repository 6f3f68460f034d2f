"""Convert a regular repository into the bare-in-.git layout and register it."""

import logging
from pathlib import Path

import click

from wt.cli.core import resolve_argument_path
from wt.cli.ensure import Ensure
from wt.cli.output import user_output
from wt.core.bare_conversion import (
    MigrationPlan,
    MigrationResult,
    execute_migration,
    validate_migration,
)
from wt.core.cancellation import CancellationToken, cancel_on_sigint
from wt.core.context import WtContext, with_dry_run
from wt.core.errors import RepositoryNameTaken
from wt.core.registry import RegisteredRepo

logger = logging.getLogger(__name__)


def _print_plan(
    plan: MigrationPlan, worktree_format: str, name: str, labels: tuple[str, ...]
) -> None:
    user_output(f"Conversion plan for: {plan.repo_path} (→ bare)")
    user_output()
    user_output(f"  Current branch: {plan.current_branch}")
    user_output(f"  Main worktree will be at: {plan.main_worktree_path}")
    user_output(f"  Worktree format: {worktree_format}")

    if plan.worktrees_to_fix:
        user_output()
        user_output("  Existing worktrees:")
        for fix in plan.worktrees_to_fix:
            if fix.relocates:
                user_output(f"    {fix.old_path} → {fix.new_path}")
            else:
                user_output(f"    {fix.old_path} (links will be updated)")

    if plan.stale_worktrees:
        user_output()
        user_output("  Stale worktree entries (will be pruned):")
        for stale in plan.stale_worktrees:
            user_output(f"    {stale}")

    user_output()
    user_output(f"  Registry name: {name}")
    if labels:
        user_output(f"  Labels: {', '.join(labels)}")
    user_output()


def _print_result(ctx: WtContext, result: MigrationResult) -> None:
    for entry in result.unmerged:
        user_output(
            click.style("⚠ ", fg="yellow")
            + f"Left in place, already exists in main worktree: {entry}"
        )

    if result.repair_failures:
        user_output(
            click.style(
                f"⚠ {len(result.repair_failures)} worktree link(s) could not be repaired:",
                fg="red",
                bold=True,
            )
        )
        for failure in result.repair_failures:
            user_output(f"  {failure.worktree_path}")
            user_output(click.style(f"    {failure.message}", dim=True))

    if ctx.dry_run:
        return

    try:
        worktrees = ctx.git.list_worktrees(result.git_dir.parent)
    except RuntimeError as e:
        logger.debug("Listing worktrees after conversion failed: %s", e)
        user_output(
            click.style("Warning: ", fg="yellow")
            + "could not list worktrees after conversion. "
            + "Run 'git worktree list' manually to verify the conversion"
        )
        return

    linked = [wt for wt in worktrees if not wt.is_root]
    if linked:
        user_output()
        user_output("  Worktrees:")
        for wt in linked:
            user_output(f"    {wt.path} ({wt.branch or 'detached'})")


def run_migrate(
    ctx: WtContext,
    path: Path | None,
    name: str | None,
    labels: tuple[str, ...],
    worktree_format: str | None,
    dry_run: bool,
) -> None:
    """Shared implementation of ``wt migrate`` and ``wt repo mv``."""
    ctx = with_dry_run(ctx, dry_run)
    repo_path = resolve_argument_path(ctx, path).resolve()

    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()

        existing = registry.find_by_path(repo_path)
        repo_name = name or (existing.name if existing is not None else repo_path.name)
        if existing is None:
            named = registry.find_by_name(repo_name)
            if named is not None:
                raise RepositoryNameTaken(repo_name, named.path)

        # Flag, then the repository's registered override, then config
        effective_format = worktree_format
        if effective_format is None and existing is not None:
            effective_format = existing.worktree_format
        if effective_format is None:
            effective_format = ctx.config.worktree_format

        plan = validate_migration(
            ctx.git,
            repo_path,
            worktree_format=effective_format,
            extract_dir=ctx.worktree_dir,
        )

    _print_plan(plan, effective_format, repo_name, labels)

    with cancel_on_sigint(CancellationToken()) as token, Ensure.no_wt_error():
        token.raise_if_cancelled()
        try:
            result = execute_migration(ctx.git, plan)
        except (RuntimeError, OSError) as e:
            user_output(click.style("Error: ", fg="red") + f"Conversion failed: {e}")
            raise SystemExit(1) from e

    if ctx.dry_run:
        _print_result(ctx, result)
        user_output()
        user_output("(dry run - no changes made)")
        return

    if existing is None:
        with Ensure.no_wt_error():
            registry.add(
                RegisteredRepo(
                    path=plan.repo_path,
                    name=repo_name,
                    worktree_format=worktree_format,
                    labels=labels,
                )
            )
            ctx.registry_store.save(registry)

    user_output(click.style("Conversion complete!", fg="green"))
    user_output(f"  Main worktree: {result.main_worktree_path}")
    if existing is not None:
        user_output(f"  Already registered as: {existing.name}")
    else:
        user_output(f"  Registered as: {repo_name}")
    _print_result(ctx, result)


@click.command("migrate")
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.option("-n", "--name", type=str, help="Registry name (default: directory name).")
@click.option("-l", "--label", "labels", multiple=True, help="Label for grouping. Repeatable.")
@click.option(
    "-w",
    "--worktree-format",
    type=str,
    default=None,
    help="Naming template for this repository's worktrees.",
)
@click.option("--dry-run", is_flag=True, help="Print the conversion steps without converting.")
@click.pass_obj
def migrate_cmd(
    ctx: WtContext,
    path: Path | None,
    name: str | None,
    labels: tuple[str, ...],
    worktree_format: str | None,
    dry_run: bool,
) -> None:
    """Convert a repository to the bare layout and register it.

    The working tree moves into <repo>/<branch>, the .git directory becomes a
    bare store, and existing worktrees are re-linked. Nested worktrees are
    moved out to the worktree directory (or next to the repository).
    """
    run_migrate(ctx, path, name, labels, worktree_format, dry_run)
