"""Fake git operations for testing.

FakeGit is an in-memory implementation that accepts pre-configured state
in its constructor. Construct instances directly with keyword arguments.
"""

from pathlib import Path

from wt.core.git.abc import Git, WorktreeInfo


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    This class has NO public setup methods. All state is provided via constructor
    using keyword arguments with sensible defaults (empty dicts).

    Mutations are recorded, not performed. The topology classifier reads
    ``.git`` files straight from disk, so ``path_exists``/``is_dir`` consult
    the configured paths first and then the real filesystem; tests that plan
    against real directories keep working with a FakeGit.
    """

    def __init__(
        self,
        *,
        worktrees: dict[Path, list[WorktreeInfo]] | None = None,
        current_branches: dict[Path, str | None] | None = None,
        dirty_worktrees: set[Path] | None = None,
        remote_urls: dict[tuple[Path, str], str] | None = None,
        existing_paths: set[Path] | None = None,
        directories: set[Path] | None = None,
        failing_moves: dict[Path, str] | None = None,
        failing_repairs: dict[Path, str] | None = None,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            worktrees: Mapping of repo_root -> worktrees returned by list_worktrees
            current_branches: Mapping of cwd -> current branch (None for detached)
            dirty_worktrees: Worktree paths reporting uncommitted changes
            remote_urls: Mapping of (repo_root, remote) -> URL
            existing_paths: Paths reported as existing (files or directories)
            directories: Paths reported as existing directories
            failing_moves: Mapping of worktree path -> error raised by move_worktree
            failing_repairs: Mapping of worktree path -> error raised by repair_worktree
        """
        self._worktrees = worktrees or {}
        self._current_branches = current_branches or {}
        self._dirty_worktrees = dirty_worktrees or set()
        self._remote_urls = remote_urls or {}
        self._directories = directories or set()
        self._existing_paths = (existing_paths or set()) | self._directories
        self._failing_moves = failing_moves or {}
        self._failing_repairs = failing_repairs or {}

        self._bare_conversions: list[tuple[Path, bool]] = []
        self._adopted_worktrees: list[tuple[Path, Path, str, str]] = []
        self._moved_worktrees: list[tuple[Path, Path, Path, bool]] = []
        self._repaired_worktrees: list[tuple[Path, Path]] = []
        self._pruned_repos: list[Path] = []
        self._moved_paths: list[tuple[Path, Path]] = []

    # Read-only operations

    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        """List worktrees configured for ``repo_root`` (empty if unknown)."""
        return list(self._worktrees.get(repo_root, []))

    def get_current_branch(self, cwd: Path) -> str | None:
        return self._current_branches.get(cwd)

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        return cwd in self._dirty_worktrees

    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        return self._remote_urls.get((repo_root, remote))

    def path_exists(self, path: Path) -> bool:
        return path in self._existing_paths or path.exists()

    def is_dir(self, path: Path) -> bool:
        return path in self._directories or path.is_dir()

    # Mutating operations: recorded for assertions

    def convert_to_bare(self, git_dir: Path, *, has_origin: bool) -> None:
        self._bare_conversions.append((git_dir, has_origin))

    def adopt_worktree(
        self,
        git_dir: Path,
        worktree_path: Path,
        admin_name: str,
        branch: str,
    ) -> None:
        self._adopted_worktrees.append((git_dir, worktree_path, admin_name, branch))

    def move_worktree(
        self, repo_root: Path, old_path: Path, new_path: Path, *, force: bool
    ) -> None:
        """Record the move, or raise RuntimeError if ``old_path`` is set up to fail."""
        if old_path in self._failing_moves:
            raise RuntimeError(self._failing_moves[old_path])
        self._moved_worktrees.append((repo_root, old_path, new_path, force))

    def repair_worktree(self, repo_root: Path, worktree_path: Path) -> None:
        """Record the repair, or raise RuntimeError if the path is set up to fail."""
        if worktree_path in self._failing_repairs:
            raise RuntimeError(self._failing_repairs[worktree_path])
        self._repaired_worktrees.append((repo_root, worktree_path))

    def prune_worktrees(self, repo_root: Path) -> None:
        self._pruned_repos.append(repo_root)

    def move_path(self, src: Path, dst: Path) -> None:
        self._moved_paths.append((src, dst))

    # Recorded calls

    @property
    def bare_conversions(self) -> list[tuple[Path, bool]]:
        """Read-only access to convert_to_bare() calls as (git_dir, has_origin)."""
        return self._bare_conversions

    @property
    def adopted_worktrees(self) -> list[tuple[Path, Path, str, str]]:
        """Read-only access to adopt_worktree() calls.

        Returns list of (git_dir, worktree_path, admin_name, branch) tuples.
        """
        return self._adopted_worktrees

    @property
    def moved_worktrees(self) -> list[tuple[Path, Path, Path, bool]]:
        """Read-only access to move_worktree() calls.

        Returns list of (repo_root, old_path, new_path, force) tuples.
        """
        return self._moved_worktrees

    @property
    def repaired_worktrees(self) -> list[tuple[Path, Path]]:
        """Read-only access to repair_worktree() calls as (repo_root, worktree_path)."""
        return self._repaired_worktrees

    @property
    def pruned_repos(self) -> list[Path]:
        return self._pruned_repos

    @property
    def moved_paths(self) -> list[tuple[Path, Path]]:
        """Read-only access to move_path() calls as (src, dst)."""
        return self._moved_paths
