"""Classify filesystem paths by their git topology.

Classification only reads the filesystem: it never runs git and never
mutates anything. Unexpected on-disk content (unreadable files, malformed
pointers, dangling admin references) yields ``NotAGitEntity`` rather than an
exception, so a folder scan can report and skip bad entries.

Layouts recognised:

- ``<repo>/.git/`` directory -> RegularRepository, or BareRepository when its
  config sets ``core.bare = true`` (the layout produced by bare conversion)
- ``<repo>/`` itself a git dir (``HEAD``, ``objects/``, ``refs/``) with
  ``core.bare = true`` -> BareRepository
- ``<worktree>/.git`` file ``gitdir: <common>/worktrees/<name>`` with an
  existing admin dir -> LinkedWorktree
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class Placement(Enum):
    """Where a linked worktree lives relative to its owning repository."""

    EXTERNAL = "external"
    NESTED = "nested"


@dataclass(frozen=True)
class BareRepository:
    path: Path
    git_dir: Path


@dataclass(frozen=True)
class RegularRepository:
    path: Path
    git_dir: Path


@dataclass(frozen=True)
class LinkedWorktree:
    """A linked worktree and the admin entry its ``.git`` file points at.

    ``branch`` is None when the worktree has a detached HEAD.
    """

    path: Path
    branch: str | None
    repo_path: Path
    admin_dir: Path
    placement: Placement

    @property
    def admin_name(self) -> str:
        return self.admin_dir.name


@dataclass(frozen=True)
class NotAGitEntity:
    path: Path
    reason: str


Repository = BareRepository | RegularRepository
Topology = BareRepository | RegularRepository | LinkedWorktree | NotAGitEntity


def is_nested(child: Path, parent: Path) -> bool:
    """Return True if ``child`` is strictly inside ``parent``."""
    return child != parent and child.is_relative_to(parent)


def read_text_or_none(path: Path) -> str | None:
    """Read a small metadata file, returning None if it is missing or unreadable."""
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None


def is_bare_config(git_dir: Path) -> bool:
    """Return True if ``<git_dir>/config`` sets ``bare = true`` in its [core] section."""
    content = read_text_or_none(git_dir / "config")
    if content is None:
        return False

    section = ""
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("["):
            section = line.strip("[]").strip().lower()
            continue
        if section != "core" or "=" not in line:
            continue
        key, _, value = line.partition("=")
        if key.strip().lower() == "bare":
            return value.strip().lower() in ("true", "yes", "on", "1")
    return False


def looks_like_git_dir(path: Path) -> bool:
    return (path / "HEAD").is_file() and (path / "objects").is_dir() and (path / "refs").is_dir()


def parse_gitdir_file(dot_git_file: Path) -> Path | None:
    """Parse a ``.git`` file of the form ``gitdir: <dir>``.

    Relative targets are resolved against the file's directory. Returns None
    for unreadable or malformed files.
    """
    content = read_text_or_none(dot_git_file)
    if content is None:
        return None
    first_line = content.strip().splitlines()[0] if content.strip() else ""
    if not first_line.startswith("gitdir:"):
        return None
    target = first_line[len("gitdir:") :].strip()
    if not target:
        return None
    target_path = Path(target)
    if not target_path.is_absolute():
        target_path = dot_git_file.parent / target_path
    return target_path.resolve()


def read_head_branch(admin_or_git_dir: Path) -> str | None:
    """Return the branch a HEAD file points at, or None if detached or unreadable."""
    content = read_text_or_none(admin_or_git_dir / "HEAD")
    if content is None:
        return None
    head = content.strip()
    prefix = "ref: refs/heads/"
    if head.startswith(prefix):
        return head[len(prefix) :]
    return None


def common_dir_for_admin(admin_dir: Path) -> Path:
    """Return the common git dir an admin entry belongs to."""
    content = read_text_or_none(admin_dir / "commondir")
    if content is not None and content.strip():
        common = Path(content.strip())
        if not common.is_absolute():
            common = admin_dir / common
        return common.resolve()
    return admin_dir.parent.parent


def repo_path_for_common_dir(common_dir: Path) -> Path:
    """Map a common git dir to the repository root users refer to.

    ``<repo>/.git`` maps to ``<repo>``; a bare git dir is its own root.
    """
    if common_dir.name == ".git":
        return common_dir.parent
    return common_dir


def classify(path: Path) -> Topology:
    """Classify a path as a repository, linked worktree, or neither."""
    path = path.resolve()

    if not path.exists():
        return NotAGitEntity(path=path, reason="path does not exist")
    if not path.is_dir():
        return NotAGitEntity(path=path, reason="not a directory")

    dot_git = path / ".git"

    if dot_git.is_dir():
        if is_bare_config(dot_git):
            return BareRepository(path=path, git_dir=dot_git)
        return RegularRepository(path=path, git_dir=dot_git)

    if dot_git.is_file():
        return _classify_gitdir_file(path, dot_git)

    if looks_like_git_dir(path) and is_bare_config(path):
        return BareRepository(path=path, git_dir=path)

    return NotAGitEntity(path=path, reason="no .git entry")


def _classify_gitdir_file(path: Path, dot_git: Path) -> Topology:
    admin_dir = parse_gitdir_file(dot_git)
    if admin_dir is None:
        return NotAGitEntity(path=path, reason="malformed .git file")

    if admin_dir.parent.name != "worktrees":
        if admin_dir.parent.name == "modules" or "/modules/" in admin_dir.as_posix():
            return NotAGitEntity(path=path, reason="submodule checkout")
        return NotAGitEntity(path=path, reason=f"unsupported gitdir target: {admin_dir}")

    if not admin_dir.is_dir():
        return NotAGitEntity(path=path, reason=f"dangling gitdir pointer: {admin_dir}")

    common_dir = common_dir_for_admin(admin_dir)
    if not common_dir.is_dir():
        return NotAGitEntity(path=path, reason=f"missing common git dir: {common_dir}")

    repo_path = repo_path_for_common_dir(common_dir)
    placement = Placement.NESTED if is_nested(path, repo_path) else Placement.EXTERNAL

    return LinkedWorktree(
        path=path,
        branch=read_head_branch(admin_dir),
        repo_path=repo_path,
        admin_dir=admin_dir,
        placement=placement,
    )


def worktrees_of(repo: Repository) -> list[LinkedWorktree]:
    """List the linked worktrees whose back-pointers name this repository.

    Reads the forward pointer of every admin entry under ``<git_dir>/worktrees``
    and keeps those whose worktree still points back at the same entry.
    Sorted by worktree path.
    """
    admin_root = repo.git_dir / "worktrees"
    if not admin_root.is_dir():
        return []

    result: list[LinkedWorktree] = []
    for admin_dir in sorted(admin_root.iterdir()):
        if not admin_dir.is_dir():
            continue
        forward = read_text_or_none(admin_dir / "gitdir")
        if forward is None or not forward.strip():
            continue
        forward_path = Path(forward.strip())
        if not forward_path.is_absolute():
            forward_path = (admin_dir / forward_path).resolve()
        worktree_path = forward_path.parent

        topology = classify(worktree_path)
        if not isinstance(topology, LinkedWorktree):
            logger.debug("Skipping stale admin entry %s: %s", admin_dir, topology)
            continue
        if topology.admin_dir != admin_dir.resolve():
            logger.debug("Admin entry %s is not referenced by %s", admin_dir, worktree_path)
            continue
        result.append(topology)

    return sorted(result, key=lambda wt: wt.path)


def discover(folder: Path) -> list[Topology]:
    """Classify every direct child directory of ``folder``, sorted by path.

    Children that are not git entities are included as NotAGitEntity so the
    caller can decide whether to report them.
    """
    folder = folder.resolve()
    if not folder.is_dir():
        return []
    children = sorted(child for child in folder.iterdir() if child.is_dir())
    return [classify(child) for child in children]
