"""Git wrapper for --dry-run: mutations are printed as the commands they would run."""

from pathlib import Path

from wt.cli.output import user_output
from wt.core.git.abc import Git, WorktreeInfo


class DryRunGit(Git):
    """Wrapper that prints mutating operations instead of executing them.

    Read-only operations are delegated to the wrapped implementation, so a
    dry run classifies, plans and resolves collisions exactly as a real run.

    Usage:
        real_ops = RealGit()
        dry_ops = DryRunGit(real_ops)

        # Prints message instead of moving
        dry_ops.move_worktree(repo_root, old, new, force=False)
    """

    def __init__(self, wrapped: Git) -> None:
        """Create a dry-run wrapper around a Git implementation.

        Args:
            wrapped: The Git implementation to wrap (usually RealGit or FakeGit)
        """
        self._wrapped = wrapped

    # Read-only operations: delegate to wrapped implementation

    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        return self._wrapped.list_worktrees(repo_root)

    def get_current_branch(self, cwd: Path) -> str | None:
        return self._wrapped.get_current_branch(cwd)

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        return self._wrapped.has_uncommitted_changes(cwd)

    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        return self._wrapped.get_remote_url(repo_root, remote)

    def path_exists(self, path: Path) -> bool:
        return self._wrapped.path_exists(path)

    def is_dir(self, path: Path) -> bool:
        return self._wrapped.is_dir(path)

    # Mutating operations: print dry-run message instead of executing

    def convert_to_bare(self, git_dir: Path, *, has_origin: bool) -> None:
        user_output(f"[DRY RUN] Would run: git --git-dir={git_dir} config --bool core.bare true")
        if has_origin:
            user_output(
                f"[DRY RUN] Would run: git --git-dir={git_dir} config remote.origin.fetch "
                "+refs/heads/*:refs/remotes/origin/*"
            )

    def adopt_worktree(
        self,
        git_dir: Path,
        worktree_path: Path,
        admin_name: str,
        branch: str,
    ) -> None:
        user_output(
            f"[DRY RUN] Would register {worktree_path} as worktree "
            f"'{admin_name}' ({branch}) in {git_dir}"
        )

    def move_worktree(
        self, repo_root: Path, old_path: Path, new_path: Path, *, force: bool
    ) -> None:
        force_flag = "--force " if force else ""
        user_output(f"[DRY RUN] Would run: git worktree move {force_flag}{old_path} {new_path}")

    def repair_worktree(self, repo_root: Path, worktree_path: Path) -> None:
        user_output(f"[DRY RUN] Would run: git worktree repair {worktree_path}")

    def prune_worktrees(self, repo_root: Path) -> None:
        user_output("[DRY RUN] Would run: git worktree prune")

    def move_path(self, src: Path, dst: Path) -> None:
        user_output(f"[DRY RUN] Would run: mv {src} {dst}")
