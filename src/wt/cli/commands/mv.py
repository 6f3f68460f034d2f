"""Move repositories and worktrees into the configured directories."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from wt.cli.core import resolve_argument_path
from wt.cli.ensure import Ensure
from wt.cli.output import user_output
from wt.core.cancellation import CancellationToken, cancel_on_sigint
from wt.core.context import WtContext, with_dry_run
from wt.core.errors import OperationCancelled
from wt.core.relocation import (
    EntityResult,
    Outcome,
    RelocationOptions,
    RelocationReport,
    RelocationScope,
    Relocator,
    TargetKind,
)

logger = logging.getLogger(__name__)


def _print_result(result: EntityResult, dry_run: bool) -> None:
    label = "repo" if result.kind == TargetKind.REPOSITORY else "worktree"
    if result.outcome == Outcome.MOVED:
        if dry_run:
            user_output(f"Would move {label}: {result.source} → {result.dest}")
        else:
            moved = f"Moved {label}: {result.source} → {result.dest}"
            user_output(click.style("✓ ", fg="green") + moved)
    elif result.outcome == Outcome.SKIPPED:
        user_output(
            click.style("⚠ ", fg="yellow") + f"Skipping {label} {result.source}: {result.message}"
        )
    else:
        user_output(
            click.style("✗ ", fg="red")
            + f"Failed to move {label} {result.source}: {result.message}"
        )


def _render_summary(report: RelocationReport, dry_run: bool) -> Table:
    moved_header = "would move" if dry_run else "moved"
    table = Table(show_header=True, header_style="bold", title="Summary")
    table.add_column("", no_wrap=True)
    table.add_column(moved_header, style="green", justify="right")
    table.add_column("skipped", style="yellow", justify="right")
    table.add_column("failed", style="red", justify="right")
    for kind, name in ((TargetKind.REPOSITORY, "repos"), (TargetKind.WORKTREE, "worktrees")):
        table.add_row(
            name,
            str(report.count(kind, Outcome.MOVED)),
            str(report.count(kind, Outcome.SKIPPED)),
            str(report.count(kind, Outcome.FAILED)),
        )
    return table


def _print_repair_failures(report: RelocationReport) -> None:
    if not report.repair_failures:
        return
    user_output()
    user_output(
        click.style(
            f"⚠ {len(report.repair_failures)} worktree link(s) could not be repaired:",
            fg="red",
            bold=True,
        )
    )
    for failure in report.repair_failures:
        user_output(f"  {failure.worktree_path} (repo {failure.repo_path})")
        user_output(click.style(f"    {failure.message}", dim=True))
    user_output("Run 'git worktree repair <path>' from the repository to fix them.")


@click.command("mv")
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.option(
    "-r",
    "--repository",
    "repo_names",
    multiple=True,
    help="Only move this repository (registry name or folder name). Repeatable.",
)
@click.option(
    "--format",
    "worktree_format",
    type=str,
    default=None,
    help="Worktree naming template for this run, e.g. '{repo}-{branch}'.",
)
@click.option("--dry-run", is_flag=True, help="Print what would be moved without moving.")
@click.option("-f", "--force", is_flag=True, help="Move worktrees with uncommitted changes.")
@click.option(
    "-j",
    "--jobs",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Number of repositories to move in parallel.",
)
@click.pass_obj
def mv_cmd(
    ctx: WtContext,
    path: Path | None,
    repo_names: tuple[str, ...],
    worktree_format: str | None,
    dry_run: bool,
    force: bool,
    jobs: int,
) -> None:
    """Move repositories and worktrees into the configured directories.

    PATH may be a repository, a worktree, or a folder holding several
    (defaults to the current directory). Worktrees go to the worktree
    directory and are named by the worktree format; repositories go to the
    repository directory (or the worktree directory when none is set).
    """
    ctx = with_dry_run(ctx, dry_run)

    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()

    template = ctx.config.worktree_format if worktree_format is None else worktree_format
    options = RelocationOptions(
        worktree_dir=ctx.worktree_dir,
        repo_dir=ctx.repo_dir,
        worktree_format=template,
        format_overridden=worktree_format is not None,
        dirty_policy=ctx.config.dirty_worktrees,
        force=force,
        jobs=jobs,
    )
    scope = RelocationScope(path=resolve_argument_path(ctx, path), repo_names=repo_names)

    with cancel_on_sigint(CancellationToken()) as token:
        relocator = Relocator(
            ctx.git,
            registry=registry,
            cancellation=token,
            on_result=lambda result: _print_result(result, ctx.dry_run),
        )
        with Ensure.no_wt_error():
            plan = relocator.plan(scope, options)

        if not plan.targets and not plan.skipped:
            user_output("Nothing to move")
            return

        report = relocator.execute(plan)

    user_output()
    Console(stderr=True).print(_render_summary(report, ctx.dry_run))
    _print_repair_failures(report)

    if report.moved_repos and not ctx.dry_run:
        logger.debug("Updating registry for %d moved repositories", len(report.moved_repos))
        with Ensure.no_wt_error():
            ctx.registry_store.save(registry)

    if report.cancelled:
        with Ensure.no_wt_error():
            raise OperationCancelled()
