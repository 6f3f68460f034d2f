"""Git backend that shells out to the git binary.

Worktree moves and repairs go through `git worktree`; adopting a directory as
a linked worktree writes the admin entry directly because git has no command
for registering a checkout that already exists.
"""

import logging
import os
import subprocess
from pathlib import Path

from wt.core.fs_utils import move_tree
from wt.core.git.abc import Git, WorktreeInfo
from wt.core.subprocess import run_subprocess_with_context

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0


class RealGit(Git):
    """Runs git commands in the repository or worktree they concern.

    Each command is killed after ``timeout`` seconds.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout

    def _run(self, cmd: list[str], operation_context: str, cwd: Path | None) -> str:
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
        result = run_subprocess_with_context(
            cmd,
            operation_context=operation_context,
            cwd=cwd,
            timeout=self._timeout,
        )
        return result.stdout

    def _probe(self, cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
            timeout=self._timeout,
        )

    def list_worktrees(self, repo_root: Path) -> list[WorktreeInfo]:
        """Parse `git worktree list --porcelain`; the first entry is the root."""
        stdout = self._run(
            ["git", "worktree", "list", "--porcelain"],
            operation_context="list worktrees",
            cwd=repo_root,
        )

        worktrees: list[WorktreeInfo] = []
        current_path: Path | None = None
        current_branch: str | None = None

        for line in stdout.splitlines():
            line = line.strip()
            if line.startswith("worktree "):
                current_path = Path(line.split(maxsplit=1)[1])
                current_branch = None
            elif line.startswith("branch "):
                if current_path is None:
                    continue
                branch_ref = line.split(maxsplit=1)[1]
                current_branch = branch_ref.removeprefix("refs/heads/")
            elif line == "" and current_path is not None:
                worktrees.append(WorktreeInfo(path=current_path, branch=current_branch))
                current_path = None
                current_branch = None

        if current_path is not None:
            worktrees.append(WorktreeInfo(path=current_path, branch=current_branch))

        if worktrees:
            first = worktrees[0]
            worktrees[0] = WorktreeInfo(path=first.path, branch=first.branch, is_root=True)

        return worktrees

    def get_current_branch(self, cwd: Path) -> str | None:
        """Branch name of HEAD, or None when detached or unborn."""
        result = self._probe(["git", "symbolic-ref", "--quiet", "--short", "HEAD"], cwd)
        if result.returncode != 0:
            return None

        branch = result.stdout.strip()
        if not branch:
            return None

        # An unborn branch has a symbolic HEAD but nothing to check out
        verify = self._probe(["git", "rev-parse", "--verify", "--quiet", "HEAD"], cwd)
        if verify.returncode != 0:
            return None

        return branch

    def has_uncommitted_changes(self, cwd: Path) -> bool:
        """True when `git status --porcelain` reports anything, untracked files included.

        A worktree whose status cannot be read counts as dirty.
        """
        result = self._probe(["git", "status", "--porcelain"], cwd)
        if result.returncode != 0:
            logger.debug("git status failed in %s: %s", cwd, result.stderr.strip())
            return True
        return bool(result.stdout.strip())

    def get_remote_url(self, repo_root: Path, remote: str) -> str | None:
        """Get the URL of a remote."""
        result = self._probe(["git", "remote", "get-url", remote], repo_root)
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        return url or None

    def convert_to_bare(self, git_dir: Path, *, has_origin: bool) -> None:
        """Mark the metadata store as bare."""
        self._run(
            ["git", f"--git-dir={git_dir}", "config", "--bool", "core.bare", "true"],
            operation_context=f"set core.bare in {git_dir}",
            cwd=git_dir,
        )
        if has_origin:
            self._run(
                [
                    "git",
                    f"--git-dir={git_dir}",
                    "config",
                    "remote.origin.fetch",
                    "+refs/heads/*:refs/remotes/origin/*",
                ],
                operation_context=f"set origin fetch refspec in {git_dir}",
                cwd=git_dir,
            )

    def adopt_worktree(
        self,
        git_dir: Path,
        worktree_path: Path,
        admin_name: str,
        branch: str,
    ) -> None:
        """Register an existing directory as a linked worktree of a bare store."""
        admin_dir = git_dir / "worktrees" / admin_name
        if admin_dir.exists():
            raise RuntimeError(f"Worktree admin entry already exists: {admin_dir}")
        admin_dir.mkdir(parents=True)
        worktree_path.mkdir(parents=True, exist_ok=True)

        (admin_dir / "HEAD").write_text(f"ref: refs/heads/{branch}\n", encoding="utf-8")
        (admin_dir / "gitdir").write_text(f"{worktree_path / '.git'}\n", encoding="utf-8")
        (admin_dir / "commondir").write_text("../..\n", encoding="utf-8")

        index = git_dir / "index"
        if index.exists():
            os.rename(index, admin_dir / "index")

        (admin_dir / "logs").mkdir(exist_ok=True)
        head_log = git_dir / "logs" / "HEAD"
        if head_log.is_file():
            (admin_dir / "logs" / "HEAD").write_bytes(head_log.read_bytes())

        (worktree_path / ".git").write_text(f"gitdir: {admin_dir}\n", encoding="utf-8")

    def move_worktree(
        self, repo_root: Path, old_path: Path, new_path: Path, *, force: bool
    ) -> None:
        """Move a worktree to a new location."""
        new_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = ["git", "worktree", "move"]
        if force:
            cmd.append("--force")
        cmd.extend([str(old_path), str(new_path)])
        self._run(
            cmd,
            operation_context=f"move worktree from {old_path} to {new_path}",
            cwd=repo_root,
        )

    def repair_worktree(self, repo_root: Path, worktree_path: Path) -> None:
        """Repair the pointers of a linked worktree."""
        self._run(
            ["git", "worktree", "repair", str(worktree_path)],
            operation_context=f"repair worktree at {worktree_path}",
            cwd=repo_root,
        )

    def prune_worktrees(self, repo_root: Path) -> None:
        """Drop admin entries whose worktree directory is gone."""
        self._run(
            ["git", "worktree", "prune"],
            operation_context="prune worktree metadata",
            cwd=repo_root,
        )

    def move_path(self, src: Path, dst: Path) -> None:
        """Move a file or directory tree."""
        move_tree(src, dst)

    def path_exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()
