"""High-level git operations interface.

This module provides a clean abstraction over git subprocess calls and the
filesystem moves that go with them, making the topology engine testable and
giving dry-run mode a single place to intercept every mutation.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- DryRunGit: Wrapper that delegates reads and prints mutations
- FakeGit: In-memory implementation for tests
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class WorktreeInfo:
    """Information about a single git worktree."""

    path: Path
    branch: str | None
    is_root: bool = False


# ============================================================================
# Abstract Interface
# ============================================================================


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    @abstractmethod
    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        """List all worktrees in the repository.

        The first entry is the main worktree (or the bare repository itself)
        and is marked ``is_root``.
        """
        ...

    @abstractmethod
    def get_current_branch(self, cwd: Path) -> str | None:
        """Get the currently checked-out branch, or None for detached/unborn HEAD."""
        ...

    @abstractmethod
    def has_uncommitted_changes(self, cwd: Path) -> bool:
        """Check if a worktree has staged, unstaged, or untracked changes."""
        ...

    @abstractmethod
    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        """Get the URL of a remote, or None if the remote does not exist."""
        ...

    @abstractmethod
    def convert_to_bare(self, git_dir: Path, *, has_origin: bool) -> None:
        """Mark a repository's metadata store as bare.

        Sets ``core.bare = true``. When an ``origin`` remote exists, also sets
        the standard fetch refspec, which bare clones do not carry.

        Args:
            git_dir: The repository's git dir (``<repo>/.git``)
            has_origin: Whether an ``origin`` remote is configured
        """
        ...

    @abstractmethod
    def adopt_worktree(
        self,
        git_dir: Path,
        worktree_path: Path,
        admin_name: str,
        branch: str,
    ) -> None:
        """Register an existing directory as a linked worktree of a bare store.

        Writes ``HEAD``, ``gitdir`` and ``commondir`` into
        ``<git_dir>/worktrees/<admin_name>``, moves the store's index into the
        admin dir so staged changes survive, and writes the worktree's
        ``.git`` back-pointer file. The worktree directory is created if it
        does not exist yet.

        Args:
            git_dir: The bare metadata store
            worktree_path: Directory already holding the working files
            admin_name: Name of the admin entry to create
            branch: Branch checked out in the worktree
        """
        ...

    @abstractmethod
    def move_worktree(
        self, repo_root: Path, old_path: Path, new_path: Path, *, force: bool
    ) -> None:
        """Move a linked worktree, updating both of its pointers."""
        ...

    @abstractmethod
    def repair_worktree(self, repo_root: Path, worktree_path: Path) -> None:
        """Rewrite both pointers of a linked worktree from the repository side.

        Raises:
            RuntimeError: If git cannot repair the worktree
        """
        ...

    @abstractmethod
    def prune_worktrees(self, repo_root: Path) -> None:
        """Prune admin entries whose worktrees no longer exist."""
        ...

    @abstractmethod
    def move_path(self, src: Path, dst: Path) -> None:
        """Move a file or directory tree, creating the destination's parent.

        Uses a rename where possible and falls back to a verified copy
        followed by removal of the source.
        """
        ...

    @abstractmethod
    def path_exists(self, path: Path) -> bool:
        """Check if a path exists on the filesystem."""
        ...

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...
