"""Tests for RealGit against real repositories."""

from pathlib import Path

import pytest

from tests.test_utils.git_repos import add_worktree, git, gitdir_of, init_repo
from wt.core.git.abc import WorktreeInfo
from wt.core.git.real import RealGit


def test_list_worktrees_marks_root(tmp_path: Path) -> None:
    """The first entry is the repository itself; linked worktrees follow."""
    repo = init_repo(tmp_path / "repo")
    wt = add_worktree(repo, tmp_path / "feature", "feature")

    worktrees = RealGit().list_worktrees(repo)

    assert [w.is_root for w in worktrees] == [True, False]
    assert Path(worktrees[0].path).resolve() == repo
    assert worktrees[1] == WorktreeInfo(path=worktrees[1].path, branch="feature")
    assert Path(worktrees[1].path).resolve() == wt


def test_current_branch_and_unborn_head(tmp_path: Path) -> None:
    """An unborn branch has nothing to check out and reports None."""
    repo = init_repo(tmp_path / "repo", branch="develop")
    empty = tmp_path / "empty"
    empty.mkdir()
    git(empty, "init", "-b", "main")

    git_ops = RealGit()

    assert git_ops.get_current_branch(repo) == "develop"
    assert git_ops.get_current_branch(empty) is None


def test_detached_head_has_no_branch(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "repo")
    git(repo, "checkout", "--detach")

    assert RealGit().get_current_branch(repo) is None


def test_uncommitted_changes(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "repo")
    git_ops = RealGit()

    assert not git_ops.has_uncommitted_changes(repo)
    (repo / "new.txt").write_text("untracked", encoding="utf-8")
    assert git_ops.has_uncommitted_changes(repo)


def test_unreadable_status_counts_as_dirty(tmp_path: Path) -> None:
    """A worktree whose .git pointer leads nowhere is never reported clean."""
    broken = tmp_path / "broken"
    broken.mkdir()
    (broken / ".git").write_text(f"gitdir: {tmp_path / 'missing'}\n", encoding="utf-8")

    assert RealGit().has_uncommitted_changes(broken)


def test_remote_url(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "repo")
    git(repo, "remote", "add", "origin", "https://github.com/acme/widgets.git")
    git_ops = RealGit()

    assert git_ops.get_remote_url(repo, "origin") == "https://github.com/acme/widgets.git"
    assert git_ops.get_remote_url(repo, "upstream") is None


def test_convert_to_bare_sets_refspec(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "repo")

    RealGit().convert_to_bare(repo / ".git", has_origin=True)

    assert git(repo / ".git", "config", "--bool", "core.bare").strip() == "true"
    refspec = git(repo / ".git", "config", "remote.origin.fetch").strip()
    assert refspec == "+refs/heads/*:refs/remotes/origin/*"


def test_adopt_worktree_writes_both_pointers(tmp_path: Path) -> None:
    """An adopted folder becomes a working linked worktree of the bare store."""
    repo = init_repo(tmp_path / "repo")
    git_dir = repo / ".git"
    git_ops = RealGit()
    git_ops.convert_to_bare(git_dir, has_origin=False)
    git_ops.move_path(repo / "README.md", repo / "main" / "README.md")

    git_ops.adopt_worktree(git_dir, repo / "main", "main", "main")

    assert gitdir_of(repo / "main") == git_dir / "worktrees" / "main"
    assert git(repo / "main", "status", "--porcelain") == ""
    assert git_ops.get_current_branch(repo / "main") == "main"


def test_adopt_worktree_refuses_existing_admin_entry(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "repo")
    (repo / ".git" / "worktrees" / "main").mkdir(parents=True)

    with pytest.raises(RuntimeError, match="already exists"):
        RealGit().adopt_worktree(repo / ".git", repo / "main", "main", "main")


def test_move_worktree_failure_is_runtime_error(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "repo")

    with pytest.raises(RuntimeError, match="Failed to move worktree"):
        RealGit().move_worktree(repo, tmp_path / "missing", tmp_path / "dest", force=False)
