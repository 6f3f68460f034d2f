"""Tests for converting regular repositories into the bare-in-.git layout."""

from pathlib import Path

import pytest

from tests.test_utils.git_repos import (
    add_detached_worktree,
    add_worktree,
    assert_linked,
    commit_file,
    git,
    init_repo,
    snapshot_tree,
    worktree_paths,
)
from wt.core.bare_conversion import execute_migration, validate_migration
from wt.core.errors import (
    AlreadyBare,
    DestinationDoesNotExist,
    NoCurrentBranch,
    NotAGitRepository,
    UnsupportedRepository,
)
from wt.core.git.dry_run import DryRunGit
from wt.core.git.real import RealGit
from wt.core.naming import DEFAULT_WORKTREE_FORMAT
from wt.core.topology import BareRepository, LinkedWorktree, classify


def _migrate(repo: Path, extract_dir: Path | None = None) -> None:
    git_ops = RealGit()
    plan = validate_migration(
        git_ops, repo, worktree_format=DEFAULT_WORKTREE_FORMAT, extract_dir=extract_dir
    )
    execute_migration(git_ops, plan)


def test_working_tree_moves_into_branch_folder(tmp_path: Path) -> None:
    """Edits, staged changes and untracked files all end up in <repo>/main."""
    repo = init_repo(tmp_path / "myrepo")
    commit_file(repo, "src/app.py", "print('v1')\n", "Add app")
    (repo / "README.md").write_text("# edited\n", encoding="utf-8")
    (repo / "dirty.txt").write_text("untracked\n", encoding="utf-8")
    (repo / "src" / "app.py").write_text("print('v2')\n", encoding="utf-8")
    git(repo, "add", "src/app.py")

    _migrate(repo)

    main = repo / "main"
    assert isinstance(classify(repo), BareRepository)
    assert git(repo / ".git", "config", "--bool", "core.bare").strip() == "true"
    assert (main / "README.md").read_text(encoding="utf-8") == "# edited\n"
    assert (main / "dirty.txt").read_text(encoding="utf-8") == "untracked\n"
    assert sorted(p.name for p in repo.iterdir()) == [".git", "main"]
    assert_linked(main, repo)

    status = git(main, "status", "--porcelain").splitlines()
    assert "M  src/app.py" in status
    assert " M README.md" in status
    assert "?? dirty.txt" in status


def test_tracked_folder_named_like_branch(tmp_path: Path) -> None:
    """A tracked 'main' folder ends up at main/main, not merged over the worktree."""
    repo = init_repo(tmp_path / "myrepo")
    commit_file(repo, "main/entry.py", "x = 1\n", "Add main package")

    _migrate(repo)

    assert (repo / "main" / "main" / "entry.py").is_file()
    assert git(repo / "main", "status", "--porcelain") == ""


def test_legacy_external_worktree_loses_repo_prefix(tmp_path: Path) -> None:
    """An external myrepo-feature worktree is renamed to feature and stays linked."""
    repo = init_repo(tmp_path / "myrepo")
    add_worktree(repo, tmp_path / "myrepo-feature", "feature")

    _migrate(repo)

    feature = tmp_path / "feature"
    assert not (tmp_path / "myrepo-feature").exists()
    assert_linked(feature, repo)
    assert git(feature, "branch", "--show-current").strip() == "feature"
    assert set(worktree_paths(repo)) >= {repo / "main", feature}


def test_legacy_rename_skipped_when_target_taken(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    add_worktree(repo, tmp_path / "myrepo-feature", "feature")
    (tmp_path / "feature").mkdir()

    _migrate(repo)

    assert_linked(tmp_path / "myrepo-feature", repo)


def test_nested_worktree_is_extracted(tmp_path: Path) -> None:
    """A worktree under <repo>/worktrees/ moves out and its container stays empty."""
    repo = init_repo(tmp_path / "myrepo")
    add_worktree(repo, repo / "worktrees" / "feature", "feature")
    dest = tmp_path / "wt"
    dest.mkdir()

    _migrate(repo, extract_dir=dest)

    extracted = dest / "myrepo-feature"
    assert_linked(extracted, repo)
    assert (repo / "worktrees").is_dir()
    assert list((repo / "worktrees").iterdir()) == []
    assert not (repo / "main" / "worktrees").exists()


def test_nested_container_leftovers_merge_into_main(tmp_path: Path) -> None:
    """Other content next to a nested worktree is merged into the main worktree."""
    repo = init_repo(tmp_path / "myrepo")
    commit_file(repo, "tools/build.sh", "#!/bin/sh\n", "Add build script")
    add_worktree(repo, repo / "tools" / "wt-feature", "feature")

    _migrate(repo)

    assert (repo / "main" / "tools" / "build.sh").is_file()
    assert_linked(tmp_path / "myrepo-feature", repo)
    assert git(repo / "main", "status", "--porcelain") == ""


def test_detached_worktree_is_repaired_in_place(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    detached = add_detached_worktree(repo, tmp_path / "scratch")

    _migrate(repo)

    assert_linked(detached, repo)


def test_dry_run_changes_nothing(tmp_path: Path) -> None:
    """Executing through DryRunGit leaves the repository untouched."""
    repo = init_repo(tmp_path / "myrepo")
    add_worktree(repo, repo / "worktrees" / "feature", "feature")
    (repo / "staged.txt").write_text("staged", encoding="utf-8")
    git(repo, "add", "staged.txt")
    before = snapshot_tree(tmp_path)

    git_ops = DryRunGit(RealGit())
    plan = validate_migration(
        git_ops, repo, worktree_format=DEFAULT_WORKTREE_FORMAT, extract_dir=None
    )
    result = execute_migration(git_ops, plan)

    assert result.main_worktree_path == repo / "main"
    assert result.unmerged == []
    assert snapshot_tree(tmp_path) == before
    assert git(repo, "config", "--bool", "core.bare").strip() == "false"
    assert isinstance(classify(repo / "worktrees" / "feature"), LinkedWorktree)


def test_plan_lists_worktrees_and_names(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    git(repo, "remote", "add", "origin", "git@github.com:acme/widgets.git")
    add_worktree(repo, repo / ".worktrees" / "x", "fix/login")

    plan = validate_migration(
        RealGit(), repo, worktree_format="{origin}-{branch}", extract_dir=None
    )

    assert plan.current_branch == "main"
    assert plan.has_origin
    assert plan.containers == [".worktrees"]
    [fix] = plan.worktrees_to_fix
    assert fix.is_outside
    assert fix.new_path == tmp_path / "widgets-fix-login"


def test_already_bare_is_rejected(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    _migrate(repo)

    with pytest.raises(AlreadyBare):
        _migrate(repo)


def test_detached_head_is_rejected(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    git(repo, "checkout", "--detach")

    with pytest.raises(NoCurrentBranch):
        _migrate(repo)


def test_submodules_are_rejected(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    commit_file(repo, ".gitmodules", "", "Add empty gitmodules")

    with pytest.raises(UnsupportedRepository, match="submodules"):
        _migrate(repo)


def test_linked_worktree_is_rejected(tmp_path: Path) -> None:
    repo = init_repo(tmp_path / "myrepo")
    wt = add_worktree(repo, tmp_path / "feature", "feature")

    with pytest.raises(NotAGitRepository, match="linked worktree"):
        _migrate(wt)


def test_plain_directory_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "plain").mkdir()

    with pytest.raises(NotAGitRepository):
        _migrate(tmp_path / "plain")


def test_missing_extract_dir_is_rejected(tmp_path: Path) -> None:
    """Extraction into a directory that does not exist fails before any change."""
    repo = init_repo(tmp_path / "myrepo")
    add_worktree(repo, repo / "worktrees" / "feature", "feature")

    with pytest.raises(DestinationDoesNotExist):
        _migrate(repo, extract_dir=tmp_path / "missing")

    assert git(repo, "config", "--bool", "core.bare").strip() == "false"
