"""Registry management commands."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from wt.cli.commands.migrate import run_migrate
from wt.cli.core import resolve_argument_path
from wt.cli.ensure import Ensure
from wt.cli.output import machine_output, user_output
from wt.core.context import WtContext
from wt.core.errors import RegistryError
from wt.core.naming import validate_format
from wt.core.registry import RegisteredRepo
from wt.core.topology import BareRepository, RegularRepository, classify


@click.group("repo")
def repo_group() -> None:
    """Manage registered repositories."""
    pass


@repo_group.command("list")
@click.argument("labels", nargs=-1)
@click.option("--paths", is_flag=True, help="Print only repository paths, one per line.")
@click.pass_obj
def list_repos(ctx: WtContext, labels: tuple[str, ...], paths: bool) -> None:
    """List registered repositories, optionally filtered by LABELS."""
    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()

    repos = registry.find_by_labels(list(labels)) if labels else registry.repos
    repos = sorted(repos, key=lambda repo: repo.name)

    if paths:
        for repo in repos:
            machine_output(str(repo.path))
        return

    if not repos:
        Ensure.invariant(not labels, f"No repos found with label(s): {', '.join(labels)}")
        user_output("No repos registered. Use 'wt repo add <path>' to register a repo.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("name", style="cyan", no_wrap=True)
    table.add_column("path", no_wrap=True)
    table.add_column("labels")
    table.add_column("format", style="dim")
    for repo in repos:
        table.add_row(repo.name, str(repo.path), ", ".join(repo.labels), repo.worktree_format or "")
    Console(stderr=True).print(table)


@repo_group.command("add")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option("-n", "--name", type=str, help="Registry name (single path only).")
@click.option("-l", "--label", "labels", multiple=True, help="Label for grouping. Repeatable.")
@click.option(
    "-w", "--worktree-format", type=str, default=None, help="Worktree naming override."
)
@click.pass_obj
def add_repos(
    ctx: WtContext,
    paths: tuple[Path, ...],
    name: str | None,
    labels: tuple[str, ...],
    worktree_format: str | None,
) -> None:
    """Register existing repositories. Directories that are not repositories are skipped."""
    Ensure.invariant(
        name is None or len(paths) == 1, "--name can only be used with a single path"
    )

    with Ensure.no_wt_error():
        if worktree_format is not None:
            validate_format(worktree_format)
        registry = ctx.registry_store.load()

    added = 0
    for raw_path in paths:
        topology = classify(resolve_argument_path(ctx, raw_path))
        if not isinstance(topology, BareRepository | RegularRepository):
            user_output(click.style("⚠ ", fg="yellow") + f"Skipping {raw_path}: not a repository")
            continue

        repo = RegisteredRepo(
            path=topology.path,
            name=name or topology.path.name,
            worktree_format=worktree_format,
            labels=labels,
        )
        try:
            registry.add(repo)
        except RegistryError as e:
            user_output(click.style("⚠ ", fg="yellow") + f"Skipping {topology.path}: {e}")
            continue

        kind = "bare" if isinstance(topology, BareRepository) else "regular"
        user_output(f"Registered {kind} repo: {repo.name} ({repo.path})")
        added += 1

    Ensure.invariant(added > 0, "No repositories added")

    with Ensure.no_wt_error():
        ctx.registry_store.save(registry)


@repo_group.command("remove")
@click.argument("repo", metavar="REPO")
@click.pass_obj
def remove_repo(ctx: WtContext, repo: str) -> None:
    """Unregister REPO (name or path). Files on disk are left untouched."""
    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()
        removed = registry.remove(repo)
        ctx.registry_store.save(registry)

    user_output(f"Unregistered {removed.name} ({removed.path})")


@repo_group.command("mv")
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
def mv_repo(
    ctx: WtContext,
    path: Path | None,
    name: str | None,
    labels: tuple[str, ...],
    worktree_format: str | None,
    dry_run: bool,
) -> None:
    """Convert a repository to the bare layout and register it (same as 'wt migrate')."""
    run_migrate(ctx, path, name, labels, worktree_format, dry_run)


@repo_group.group("label")
def label_group() -> None:
    """Manage repository labels."""
    pass


@label_group.command("add")
@click.argument("repo", metavar="REPO")
@click.argument("label", metavar="LABEL")
@click.pass_obj
def add_label(ctx: WtContext, repo: str, label: str) -> None:
    """Add LABEL to REPO."""
    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()
        updated = registry.add_label(repo, label)
        ctx.registry_store.save(registry)

    user_output(f"{updated.name}: {', '.join(updated.labels)}")


@label_group.command("remove")
@click.argument("repo", metavar="REPO")
@click.argument("label", metavar="LABEL")
@click.pass_obj
def remove_label(ctx: WtContext, repo: str, label: str) -> None:
    """Remove LABEL from REPO."""
    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()
        updated = registry.remove_label(repo, label)
        ctx.registry_store.save(registry)

    user_output(f"{updated.name}: {', '.join(updated.labels) or '(no labels)'}")


@label_group.command("list")
@click.pass_obj
def list_labels(ctx: WtContext) -> None:
    """Print every label in use, one per line."""
    with Ensure.no_wt_error():
        registry = ctx.registry_store.load()

    for label in registry.all_labels():
        machine_output(label)
