"""Real git repository builders for engine and command tests.

Every helper shells out to ``git`` with ``check=True`` so a broken fixture
fails loudly, and returns resolved paths so they compare equal to what the
topology classifier reports.
"""

import hashlib
import os
import subprocess
from pathlib import Path


def git(cwd: Path, *args: str) -> str:
    """Run a git command in ``cwd`` and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def commit_file(repo: Path, name: str, content: str, message: str) -> None:
    path = repo / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    git(repo, "add", name)
    git(repo, "commit", "-m", message)


def init_repo(path: Path, branch: str = "main") -> Path:
    """Create a regular repository with one commit on ``branch``."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-b", branch)
    git(path, "config", "user.email", "test@example.com")
    git(path, "config", "user.name", "Test User")
    commit_file(path, "README.md", "# Test Repository\n", "Initial commit")
    return path.resolve()


def add_worktree(repo: Path, path: Path, branch: str) -> Path:
    """Create a linked worktree at ``path`` on a new ``branch``."""
    git(repo, "worktree", "add", "-b", branch, str(path))
    return path.resolve()


def add_detached_worktree(repo: Path, path: Path) -> Path:
    git(repo, "worktree", "add", "--detach", str(path))
    return path.resolve()


def gitdir_of(worktree: Path) -> Path:
    """Return the admin dir named by a linked worktree's ``.git`` file."""
    content = (worktree / ".git").read_text(encoding="utf-8").strip()
    assert content.startswith("gitdir: "), content
    pointer = Path(content.removeprefix("gitdir: "))
    if not pointer.is_absolute():
        pointer = worktree / pointer
    return pointer.resolve()


def assert_linked(worktree: Path, repo: Path) -> None:
    """Assert both pointers of ``worktree`` agree and lead to ``repo``'s store.

    The worktree's ``.git`` file must name an admin dir under
    ``<repo>/.git/worktrees`` (or ``<repo>/worktrees`` for a plain bare
    repository), and that admin dir's ``gitdir`` file must name the
    worktree's ``.git`` file.
    """
    admin = gitdir_of(worktree)
    store = repo / ".git" if (repo / ".git").is_dir() else repo
    assert admin.parent == (store / "worktrees").resolve(), (admin, store)

    forward = Path((admin / "gitdir").read_text(encoding="utf-8").strip())
    if not forward.is_absolute():
        forward = admin / forward
    assert forward.resolve() == (worktree / ".git").resolve(), (forward, worktree)

    status = subprocess.run(
        ["git", "status", "--porcelain"],
        cwd=worktree,
        capture_output=True,
        text=True,
        check=False,
    )
    assert status.returncode == 0, status.stderr


def worktree_paths(repo: Path) -> list[Path]:
    """Paths of every worktree git reports for ``repo``, including the root entry."""
    paths: list[Path] = []
    for line in git(repo, "worktree", "list", "--porcelain").splitlines():
        if line.startswith("worktree "):
            paths.append(Path(line.removeprefix("worktree ")).resolve())
    return paths


def snapshot_tree(root: Path) -> dict[str, str]:
    """Map every entry under ``root`` (git metadata included) to its content.

    Files map to their sha256, symlinks to their target and directories to
    ``"dir"``, so two snapshots are equal only if nothing was created,
    removed, moved or rewritten.
    """
    snapshot: dict[str, str] = {}
    for entry in sorted(root.rglob("*")):
        key = entry.relative_to(root).as_posix()
        if entry.is_symlink():
            snapshot[key] = f"-> {os.readlink(entry)}"
        elif entry.is_dir():
            snapshot[key] = "dir"
        else:
            snapshot[key] = hashlib.sha256(entry.read_bytes()).hexdigest()
    return snapshot
