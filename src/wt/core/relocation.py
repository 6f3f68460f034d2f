"""Relocate repositories and their linked worktrees.

Planning and execution are separate. Planning classifies everything in
scope in lexicographic path order, computes every destination, and resolves
collisions sequentially, so the same input always produces the same plan and
a dry run makes exactly the decisions a real run would. Execution then runs
in phases:

1. extract nested worktrees out of their repositories
2. move repositories (optionally in parallel), then wait for all of them
3. repair every linked worktree of each moved repository
4. move the remaining worktrees

Per-entity problems are recorded in the report and never abort the run.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from wt.core.cancellation import CancellationToken
from wt.core.collision import ClaimedPaths
from wt.core.config import DirtyPolicy
from wt.core.errors import (
    DestinationDoesNotExist,
    DestinationNotConfigured,
    InvalidFormat,
    PathDoesNotExist,
)
from wt.core.git.abc import Git
from wt.core.naming import FormatParams, format_worktree_name, origin_name_from_url, validate_format
from wt.core.registry import Registry
from wt.core.topology import (
    BareRepository,
    LinkedWorktree,
    NotAGitEntity,
    Placement,
    RegularRepository,
    Repository,
    classify,
    discover,
    is_nested,
    worktrees_of,
)

logger = logging.getLogger(__name__)


class TargetKind(Enum):
    REPOSITORY = "repository"
    WORKTREE = "worktree"


class Outcome(Enum):
    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RelocationScope:
    """What to relocate.

    ``path`` may be a repository, a single linked worktree, or a folder
    holding several. ``repo_names`` narrows the scope to repositories with a
    matching registry name or folder name.
    """

    path: Path
    repo_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class RelocationOptions:
    worktree_dir: Path | None
    repo_dir: Path | None
    worktree_format: str
    # When False, a registry per-repo format takes precedence over worktree_format
    format_overridden: bool = False
    dirty_policy: DirtyPolicy = "move"
    force: bool = False
    jobs: int = 1


@dataclass(frozen=True)
class RelocationTarget:
    source: Path
    dest: Path
    kind: TargetKind
    repo_path: Path
    nested: bool = False


@dataclass(frozen=True)
class EntityResult:
    source: Path
    dest: Path | None
    kind: TargetKind
    outcome: Outcome
    message: str | None = None
    nested: bool = False


@dataclass(frozen=True)
class RepairFailure:
    repo_path: Path
    worktree_path: Path
    message: str


@dataclass(frozen=True)
class RelocationPlan:
    targets: list[RelocationTarget]
    skipped: list[EntityResult]
    # Every linked worktree of each repository target, keyed by current repo path
    repo_worktrees: dict[Path, list[LinkedWorktree]]
    options: RelocationOptions

    def targets_of(self, kind: TargetKind, *, nested: bool | None = None) -> list[RelocationTarget]:
        return [
            t
            for t in self.targets
            if t.kind == kind and (nested is None or t.nested == nested)
        ]


@dataclass
class RelocationReport:
    results: list[EntityResult] = field(default_factory=list)
    repair_failures: list[RepairFailure] = field(default_factory=list)
    repaired: list[Path] = field(default_factory=list)
    cancelled: bool = False

    def count(self, kind: TargetKind, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.kind == kind and r.outcome == outcome)

    @property
    def moved_repos(self) -> dict[Path, Path]:
        return {
            r.source: r.dest
            for r in self.results
            if r.kind == TargetKind.REPOSITORY and r.outcome == Outcome.MOVED and r.dest is not None
        }


def _check_directory(git: Git, label: str, path: Path) -> None:
    if not git.is_dir(path):
        raise DestinationDoesNotExist(label, path)


def _skipped(source: Path, dest: Path | None, kind: TargetKind, message: str) -> EntityResult:
    return EntityResult(
        source=source, dest=dest, kind=kind, outcome=Outcome.SKIPPED, message=message
    )


@dataclass
class _Scope:
    repos: list[Repository] = field(default_factory=list)
    worktrees: list[LinkedWorktree] = field(default_factory=list)
    ignored: list[NotAGitEntity] = field(default_factory=list)


class Relocator:
    """Plans and executes relocations against a Git gateway.

    The registry is optional. When given, it resolves ``-r`` names to paths,
    supplies per-repository naming overrides, and has repository paths
    updated in memory after a move; persisting it is the caller's job.
    """

    def __init__(
        self,
        git: Git,
        registry: Registry | None = None,
        cancellation: CancellationToken | None = None,
        on_result: Callable[[EntityResult], None] | None = None,
    ) -> None:
        self._git = git
        self._registry = registry
        self._cancellation = cancellation if cancellation is not None else CancellationToken()
        self._on_result = on_result

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, scope: RelocationScope, options: RelocationOptions) -> RelocationPlan:
        """Validate preconditions and compute every destination.

        Raises:
            InvalidFormat: If the naming template is invalid
            DestinationNotConfigured: If no worktree directory is configured
            DestinationDoesNotExist: If a configured directory is missing
            PathDoesNotExist: If the scope path does not exist
        """
        validate_format(options.worktree_format)
        if options.worktree_dir is None:
            raise DestinationNotConfigured()
        _check_directory(self._git, "Worktree directory", options.worktree_dir)
        if options.repo_dir is not None:
            _check_directory(self._git, "Repository directory", options.repo_dir)
        if not self._git.path_exists(scope.path):
            raise PathDoesNotExist(scope.path)

        collected = self._filter_by_names(self._collect(scope.path), scope.repo_names)

        claimed = ClaimedPaths()
        targets: list[RelocationTarget] = []
        skipped: list[EntityResult] = []
        repo_worktrees: dict[Path, list[LinkedWorktree]] = {}

        repo_dest_root = options.repo_dir if options.repo_dir is not None else options.worktree_dir
        for repo in sorted(collected.repos, key=lambda r: r.path):
            dest = repo_dest_root / repo.path.name
            if dest == repo.path:
                message = "already at destination"
                skipped.append(_skipped(repo.path, dest, TargetKind.REPOSITORY, message))
                continue
            if self._git.path_exists(dest) or not claimed.claim(dest):
                message = f"target already exists: {dest}"
                skipped.append(_skipped(repo.path, dest, TargetKind.REPOSITORY, message))
                continue
            targets.append(
                RelocationTarget(
                    source=repo.path, dest=dest, kind=TargetKind.REPOSITORY, repo_path=repo.path
                )
            )
            repo_worktrees[repo.path] = worktrees_of(repo)

        for wt in sorted(collected.worktrees, key=lambda w: w.path):
            target_or_skip = self._plan_worktree(wt, options, claimed)
            if isinstance(target_or_skip, RelocationTarget):
                targets.append(target_or_skip)
            else:
                skipped.append(target_or_skip)

        return RelocationPlan(
            targets=targets,
            skipped=skipped,
            repo_worktrees=repo_worktrees,
            options=options,
        )

    def _collect(self, path: Path) -> _Scope:
        scope = _Scope()
        topology = classify(path)

        if isinstance(topology, BareRepository | RegularRepository):
            scope.repos.append(topology)
            scope.worktrees.extend(worktrees_of(topology))
            return scope

        if isinstance(topology, LinkedWorktree):
            scope.worktrees.append(topology)
            return scope

        for child in discover(topology.path):
            if isinstance(child, BareRepository | RegularRepository):
                scope.repos.append(child)
                for wt in worktrees_of(child):
                    if wt.placement == Placement.NESTED:
                        scope.worktrees.append(wt)
            elif isinstance(child, LinkedWorktree):
                scope.worktrees.append(child)
            else:
                scope.ignored.append(child)

        unique: dict[Path, LinkedWorktree] = {wt.path: wt for wt in scope.worktrees}
        scope.worktrees = list(unique.values())
        return scope

    def _filter_by_names(self, scope: _Scope, names: tuple[str, ...]) -> _Scope:
        if not names:
            return scope

        wanted_paths: set[Path] = set()
        wanted_folders: set[str] = set()
        for name in names:
            entry = self._registry.find_by_name(name) if self._registry is not None else None
            if entry is not None:
                wanted_paths.add(entry.path.resolve())
            else:
                wanted_folders.add(name)

        def matches(repo_path: Path) -> bool:
            return repo_path in wanted_paths or repo_path.name in wanted_folders

        return _Scope(
            repos=[r for r in scope.repos if matches(r.path)],
            worktrees=[w for w in scope.worktrees if matches(w.repo_path)],
            ignored=scope.ignored,
        )

    def _format_for(self, repo_path: Path, options: RelocationOptions) -> str:
        if options.format_overridden or self._registry is None:
            return options.worktree_format
        return self._registry.effective_worktree_format(repo_path, options.worktree_format)

    def _plan_worktree(
        self,
        wt: LinkedWorktree,
        options: RelocationOptions,
        claimed: ClaimedPaths,
    ) -> RelocationTarget | EntityResult:
        nested = wt.placement == Placement.NESTED
        if wt.branch is None:
            message = "detached HEAD, no branch to name it by"
            return _skipped(wt.path, None, TargetKind.WORKTREE, message)

        if options.dirty_policy == "require-force" and not options.force:
            if self._git.has_uncommitted_changes(wt.path):
                message = "has uncommitted changes (use -f to move anyway)"
                return _skipped(wt.path, None, TargetKind.WORKTREE, message)

        folder = wt.repo_path.name
        template = self._format_for(wt.repo_path, options)
        origin_url = self._git.get_remote_url(wt.repo_path, "origin")
        origin = origin_name_from_url(origin_url, fallback=folder)
        try:
            name = format_worktree_name(
                template,
                FormatParams(repo=folder, branch=wt.branch, origin=origin, folder=folder),
            )
        except InvalidFormat as e:
            return _skipped(wt.path, None, TargetKind.WORKTREE, str(e))

        assert options.worktree_dir is not None
        desired = options.worktree_dir / name
        dest = claimed.claim_unique(desired, self._git.path_exists, own_path=wt.path)
        if dest == wt.path:
            return _skipped(wt.path, dest, TargetKind.WORKTREE, "already at destination")
        if dest != desired:
            logger.debug("Destination %s taken, using %s", desired, dest)

        return RelocationTarget(
            source=wt.path,
            dest=dest,
            kind=TargetKind.WORKTREE,
            repo_path=wt.repo_path,
            nested=nested,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, plan: RelocationPlan) -> RelocationReport:
        """Carry out a plan. Never raises for per-entity failures."""
        report = RelocationReport()
        for skip in plan.skipped:
            self._record(report, skip)

        force = plan.options.force

        # Phase 1: nested worktrees leave their repositories first
        extracted: dict[Path, Path] = {}
        for target in plan.targets_of(TargetKind.WORKTREE, nested=True):
            if self._stop(report):
                return report
            result = self._move_worktree(target, target.repo_path, force)
            self._record(report, result)
            if result.outcome == Outcome.MOVED:
                extracted[target.source] = target.dest

        # Phase 2: repositories, then a barrier
        repo_targets = plan.targets_of(TargetKind.REPOSITORY)
        repo_results = self._move_repositories(repo_targets, plan.options.jobs)
        for result in repo_results:
            self._record(report, result)
        moved_repos = report.moved_repos
        # Cancelled before every repository started; the ones that moved
        # are still repaired below
        interrupted = len(repo_results) < len(repo_targets)

        # Phase 3: repair every worktree of each moved repository
        for old_repo, new_repo in sorted(moved_repos.items()):
            for wt in plan.repo_worktrees.get(old_repo, []):
                current = extracted.get(wt.path, wt.path)
                if is_nested(current, old_repo):
                    current = new_repo / current.relative_to(old_repo)
                self._repair(report, new_repo, current)
            if self._registry is not None:
                self._registry.update_path(old_repo, new_repo)

        if interrupted:
            report.cancelled = True
            return report

        # Phase 4: remaining worktrees, against their repository's new home
        for target in plan.targets_of(TargetKind.WORKTREE, nested=False):
            if self._stop(report):
                return report
            repo_root = moved_repos.get(target.repo_path, target.repo_path)
            self._record(report, self._move_worktree(target, repo_root, force))

        return report

    def _stop(self, report: RelocationReport) -> bool:
        if self._cancellation.cancelled:
            report.cancelled = True
            return True
        return False

    def _record(self, report: RelocationReport, result: EntityResult) -> None:
        report.results.append(result)
        if self._on_result is not None:
            self._on_result(result)

    def _move_worktree(
        self, target: RelocationTarget, repo_root: Path, force: bool
    ) -> EntityResult:
        try:
            self._git.move_worktree(repo_root, target.source, target.dest, force=force)
        except RuntimeError as e:
            return EntityResult(
                source=target.source,
                dest=target.dest,
                kind=TargetKind.WORKTREE,
                outcome=Outcome.FAILED,
                message=str(e),
                nested=target.nested,
            )
        return EntityResult(
            source=target.source,
            dest=target.dest,
            kind=TargetKind.WORKTREE,
            outcome=Outcome.MOVED,
            nested=target.nested,
        )

    def _move_repository(self, target: RelocationTarget) -> EntityResult | None:
        if self._cancellation.cancelled:
            return None
        try:
            self._git.move_path(target.source, target.dest)
        except OSError as e:
            return EntityResult(
                source=target.source,
                dest=target.dest,
                kind=TargetKind.REPOSITORY,
                outcome=Outcome.FAILED,
                message=str(e),
            )
        return EntityResult(
            source=target.source,
            dest=target.dest,
            kind=TargetKind.REPOSITORY,
            outcome=Outcome.MOVED,
        )

    def _move_repositories(self, targets: list[RelocationTarget], jobs: int) -> list[EntityResult]:
        if jobs <= 1 or len(targets) <= 1:
            outcomes = [self._move_repository(t) for t in targets]
        else:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                outcomes = list(executor.map(self._move_repository, targets))
        return [result for result in outcomes if result is not None]

    def _repair(self, report: RelocationReport, new_repo: Path, worktree: Path) -> None:
        try:
            self._git.repair_worktree(new_repo, worktree)
        except RuntimeError as e:
            logger.debug("Repair of %s failed: %s", worktree, e)
            report.repair_failures.append(
                RepairFailure(repo_path=new_repo, worktree_path=worktree, message=str(e))
            )
            return
        report.repaired.append(worktree)


def relocate(
    git: Git,
    scope: RelocationScope,
    options: RelocationOptions,
    *,
    registry: Registry | None = None,
    cancellation: CancellationToken | None = None,
    on_result: Callable[[EntityResult], None] | None = None,
) -> RelocationReport:
    """Plan and execute a relocation in one call."""
    relocator = Relocator(git, registry=registry, cancellation=cancellation, on_result=on_result)
    return relocator.execute(relocator.plan(scope, options))
