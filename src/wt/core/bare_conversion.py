"""Convert a regular repository into the bare-in-.git layout.

Before::

    myrepo/.git/            regular metadata store
    myrepo/README.md        working tree
    ../myrepo-feature/      linked worktree

After::

    myrepo/.git/            bare metadata store
    myrepo/main/            main worktree (all former working-tree content)
    ../feature/             linked worktree, legacy repo prefix stripped

Conversion happens in two steps: validate_migration() inspects the
repository and builds a MigrationPlan without touching anything, and
execute_migration() applies it. Every mutation goes through the Git gateway,
so executing with a DryRunGit prints the steps instead of performing them.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from wt.core.collision import ClaimedPaths, unique_path
from wt.core.errors import (
    AlreadyBare,
    DestinationDoesNotExist,
    NoCurrentBranch,
    NotAGitRepository,
    UnsupportedRepository,
)
from wt.core.git.abc import Git
from wt.core.naming import (
    FormatParams,
    format_worktree_name,
    origin_name_from_url,
    sanitize_for_path,
    strip_repo_prefix,
    validate_format,
)
from wt.core.topology import (
    BareRepository,
    LinkedWorktree,
    NotAGitEntity,
    RegularRepository,
    classify,
    is_nested,
)

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".wt-migrating-"


@dataclass(frozen=True)
class WorktreeFix:
    """Planned fix-up of one existing linked worktree.

    ``old_name``/``new_name`` are folder names. ``needs_move`` marks a
    legacy ``<repo>-<branch>`` folder renamed in place; ``is_outside`` marks
    a worktree nested in the repository that must be extracted.
    """

    old_path: Path
    new_path: Path
    branch: str | None
    admin_name: str
    old_name: str
    new_name: str
    needs_move: bool
    is_outside: bool

    @property
    def relocates(self) -> bool:
        return self.needs_move or self.is_outside


@dataclass(frozen=True)
class MigrationPlan:
    repo_path: Path
    git_dir: Path
    current_branch: str
    main_worktree_path: Path
    main_admin_name: str
    has_origin: bool
    worktrees_to_fix: list[WorktreeFix]
    # Top-level entries of the repository that contain nested worktrees
    containers: list[str]
    stale_worktrees: list[Path]


@dataclass(frozen=True)
class RepairFailure:
    worktree_path: Path
    message: str


@dataclass
class MigrationResult:
    main_worktree_path: Path
    git_dir: Path
    relocated: list[tuple[Path, Path]] = field(default_factory=list)
    repaired: list[Path] = field(default_factory=list)
    repair_failures: list[RepairFailure] = field(default_factory=list)
    # Leftover entries that could not be merged into the main worktree
    unmerged: list[Path] = field(default_factory=list)


def _top_level_container(repo_path: Path, nested_path: Path) -> str:
    return nested_path.relative_to(repo_path).parts[0]


def validate_migration(
    git: Git,
    path: Path,
    *,
    worktree_format: str,
    extract_dir: Path | None,
) -> MigrationPlan:
    """Inspect a repository and plan its conversion to the bare layout.

    Args:
        git: Git gateway used to enumerate worktrees and read repository state
        path: Repository root to convert
        worktree_format: Naming template for extracted nested worktrees
        extract_dir: Where nested worktrees are extracted to. None means the
            repository's parent directory.

    Returns:
        The plan to hand to execute_migration()

    Raises:
        NotAGitRepository: If ``path`` is not a repository root
        AlreadyBare: If the repository is already bare
        NoCurrentBranch: If HEAD is detached or unborn
        UnsupportedRepository: If the repository uses submodules, or the main
            worktree folder would clash with a folder holding nested worktrees
        DestinationDoesNotExist: If nested worktrees need extracting and
            ``extract_dir`` does not exist
        InvalidFormat: If ``worktree_format`` is invalid
    """
    validate_format(worktree_format)

    topology = classify(path)
    if isinstance(topology, BareRepository):
        raise AlreadyBare(topology.path)
    if isinstance(topology, LinkedWorktree):
        raise NotAGitRepository(topology.path, "path is a linked worktree, not a repository")
    if isinstance(topology, NotAGitEntity):
        raise NotAGitRepository(topology.path, topology.reason)
    assert isinstance(topology, RegularRepository)

    repo_path = topology.path
    git_dir = topology.git_dir

    if git.path_exists(repo_path / ".gitmodules"):
        raise UnsupportedRepository(repo_path, "repositories with submodules are not supported")

    current_branch = git.get_current_branch(repo_path)
    if current_branch is None:
        raise NoCurrentBranch(repo_path)

    main_dir_name = sanitize_for_path(current_branch)
    main_worktree_path = repo_path / main_dir_name

    origin_url = git.get_remote_url(repo_path, "origin")
    repo_name = repo_path.name
    origin_name = origin_name_from_url(origin_url, fallback=repo_name)

    claimed = ClaimedPaths()
    fixes: list[WorktreeFix] = []
    containers: list[str] = []
    stale: list[Path] = []

    listed = sorted(
        (info for info in git.list_worktrees(repo_path) if not info.is_root),
        key=lambda info: info.path,
    )
    linked: list[LinkedWorktree] = []
    for info in listed:
        wt_topology = classify(info.path)
        if not isinstance(wt_topology, LinkedWorktree):
            logger.debug("Worktree %s is not usable: %s", info.path, wt_topology)
            stale.append(info.path)
            continue
        linked.append(wt_topology)

    nested = [wt for wt in linked if is_nested(wt.path, repo_path)]
    if nested:
        target_dir = extract_dir if extract_dir is not None else repo_path.parent
        if not git.is_dir(target_dir):
            raise DestinationDoesNotExist("Worktree directory", target_dir)
        for wt in nested:
            container = _top_level_container(repo_path, wt.path)
            if container == main_dir_name:
                raise UnsupportedRepository(
                    repo_path,
                    f"main worktree folder '{main_dir_name}' holds nested worktree {wt.path}",
                )
            if container not in containers:
                containers.append(container)

    for wt in linked:
        old_name = wt.path.name
        if is_nested(wt.path, repo_path):
            target_dir = extract_dir if extract_dir is not None else repo_path.parent
            name = format_worktree_name(
                worktree_format,
                FormatParams(
                    repo=repo_name,
                    branch=wt.branch or old_name,
                    origin=origin_name,
                    folder=repo_name,
                ),
            )
            new_path = claimed.claim_unique(target_dir / name, git.path_exists)
            fixes.append(
                WorktreeFix(
                    old_path=wt.path,
                    new_path=new_path,
                    branch=wt.branch,
                    admin_name=wt.admin_name,
                    old_name=old_name,
                    new_name=new_path.name,
                    needs_move=False,
                    is_outside=True,
                )
            )
            continue

        new_path = wt.path
        needs_move = False
        if wt.branch is not None and old_name == f"{repo_name}-{sanitize_for_path(wt.branch)}":
            stripped = wt.path.with_name(strip_repo_prefix(repo_name, old_name))
            if not git.path_exists(stripped) and claimed.claim(stripped):
                new_path = stripped
                needs_move = True
            else:
                logger.debug("Keeping %s: %s is taken", wt.path, stripped)

        fixes.append(
            WorktreeFix(
                old_path=wt.path,
                new_path=new_path,
                branch=wt.branch,
                admin_name=wt.admin_name,
                old_name=old_name,
                new_name=new_path.name,
                needs_move=needs_move,
                is_outside=False,
            )
        )

    admin_root = git_dir / "worktrees"
    main_admin_name = unique_path(admin_root / main_dir_name, git.path_exists).name

    return MigrationPlan(
        repo_path=repo_path,
        git_dir=git_dir,
        current_branch=current_branch,
        main_worktree_path=main_worktree_path,
        main_admin_name=main_admin_name,
        has_origin=origin_url is not None,
        worktrees_to_fix=fixes,
        containers=containers,
        stale_worktrees=stale,
    )


def _list_entries(path: Path) -> list[Path]:
    if not path.is_dir():
        return []
    return sorted(path.iterdir())


def _merge_into(
    git: Git,
    src_dir: Path,
    dst_dir: Path,
    extracted: set[Path],
    unmerged: list[Path],
) -> None:
    """Move everything left in ``src_dir`` into ``dst_dir`` without overwriting.

    Extracted worktrees are left alone; folders above them are merged entry
    by entry.
    """
    for entry in _list_entries(src_dir):
        if entry in extracted:
            continue
        target = dst_dir / entry.name
        if any(is_nested(path, entry) for path in extracted):
            _merge_into(git, entry, target, extracted, unmerged)
        elif not git.path_exists(target):
            git.move_path(entry, target)
        elif entry.is_dir() and not entry.is_symlink() and git.is_dir(target):
            _merge_into(git, entry, target, extracted, unmerged)
        else:
            unmerged.append(entry)


def execute_migration(git: Git, plan: MigrationPlan) -> MigrationResult:
    """Apply a MigrationPlan.

    Steps run strictly in order and abort on the first fatal failure, leaving
    earlier steps in place. Working-tree content is only ever renamed, never
    deleted. A failing worktree repair is recorded and the remaining
    worktrees are still processed.

    Raises:
        RuntimeError: If a git command fails in steps 1-3 or a worktree
            cannot be relocated
        OSError: If working-tree content cannot be moved
    """
    repo_path = plan.repo_path
    result = MigrationResult(main_worktree_path=plan.main_worktree_path, git_dir=plan.git_dir)

    # 1. Metadata store becomes bare
    git.convert_to_bare(plan.git_dir, has_origin=plan.has_origin)

    # 2. Working-tree content moves into <repo>/<branch> via a staging folder,
    #    so a tracked entry with the branch's name cannot collide
    staging = unique_path(
        repo_path / f"{STAGING_PREFIX}{plan.main_worktree_path.name}", git.path_exists
    )
    skip = {".git", staging.name, *plan.containers}
    entries = [entry for entry in _list_entries(repo_path) if entry.name not in skip]
    for entry in entries:
        git.move_path(entry, staging / entry.name)
    if entries:
        git.move_path(staging, plan.main_worktree_path)

    # 3. New folder becomes the main linked worktree of the bare store
    git.adopt_worktree(
        plan.git_dir, plan.main_worktree_path, plan.main_admin_name, plan.current_branch
    )

    # 4. Existing worktrees: relocate where planned, then repair both pointers
    for fix in plan.worktrees_to_fix:
        if fix.relocates:
            git.move_worktree(repo_path, fix.old_path, fix.new_path, force=False)
            result.relocated.append((fix.old_path, fix.new_path))
        try:
            git.repair_worktree(repo_path, fix.new_path)
            result.repaired.append(fix.new_path)
        except RuntimeError as e:
            logger.debug("Repair of %s failed: %s", fix.new_path, e)
            result.repair_failures.append(RepairFailure(worktree_path=fix.new_path, message=str(e)))

    if plan.stale_worktrees:
        git.prune_worktrees(repo_path)

    # Containers held nested worktrees; whatever else they held belongs to
    # the main worktree. Emptied containers stay where they are.
    extracted = {fix.old_path for fix in plan.worktrees_to_fix if fix.is_outside}
    for container in plan.containers:
        container_path = repo_path / container
        if not git.is_dir(container_path):
            continue
        leftovers = _list_entries(container_path)
        if not leftovers:
            continue
        _merge_into(
            git, container_path, plan.main_worktree_path / container, extracted, result.unmerged
        )

    return result
