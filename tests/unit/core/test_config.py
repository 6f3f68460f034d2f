"""Tests for configuration loading, saving and environment overrides."""

from pathlib import Path

import pytest

from wt.core.config import (
    FilesystemConfigStore,
    WtConfig,
    apply_env_overrides,
    config_from_mapping,
    resolve_dir,
)
from wt.core.errors import ConfigError
from wt.core.naming import DEFAULT_WORKTREE_FORMAT


def test_missing_file_loads_defaults(tmp_path: Path) -> None:
    """Without a config file every key has its default."""
    store = FilesystemConfigStore(tmp_path / "config.toml")

    assert not store.exists()
    assert store.load() == WtConfig()


def test_load_reads_all_keys(tmp_path: Path) -> None:
    """Every supported key is read from TOML."""
    path = tmp_path / "config.toml"
    path.write_text(
        'worktree_dir = "~/worktrees"\n'
        'repo_dir = "/src"\n'
        'worktree_format = "{branch}"\n'
        'dirty_worktrees = "require-force"\n'
        "git_timeout = 30\n",
        encoding="utf-8",
    )

    config = FilesystemConfigStore(path).load()

    assert config == WtConfig(
        worktree_dir="~/worktrees",
        repo_dir="/src",
        worktree_format="{branch}",
        dirty_worktrees="require-force",
        git_timeout=30.0,
    )


def test_unknown_key_is_rejected() -> None:
    """Typos in the config file are reported."""
    with pytest.raises(ConfigError, match="worktree_dirr"):
        config_from_mapping({"worktree_dirr": "/wt"}, "config.toml")


def test_invalid_dirty_policy_is_rejected() -> None:
    """Only the documented dirty-worktree policies are accepted."""
    with pytest.raises(ConfigError, match="dirty_worktrees"):
        config_from_mapping({"dirty_worktrees": "stash"}, "config.toml")


def test_invalid_timeout_is_rejected() -> None:
    """git_timeout must be a positive number."""
    with pytest.raises(ConfigError, match="git_timeout"):
        config_from_mapping({"git_timeout": 0}, "config.toml")


def test_malformed_toml_is_reported(tmp_path: Path) -> None:
    """A TOML syntax error becomes a ConfigError naming the file."""
    path = tmp_path / "config.toml"
    path.write_text("worktree_dir = \n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Cannot parse"):
        FilesystemConfigStore(path).load()


def test_save_preserves_comments(tmp_path: Path) -> None:
    """tomlkit keeps the user's comments and unrelated layout."""
    path = tmp_path / "config.toml"
    path.write_text('# my settings\nworktree_dir = "/old"\n', encoding="utf-8")
    store = FilesystemConfigStore(path)

    store.save(WtConfig(worktree_dir="/new"))

    content = path.read_text(encoding="utf-8")
    assert "# my settings" in content
    assert 'worktree_dir = "/new"' in content
    assert "worktree_format" not in content
    assert store.load().worktree_dir == "/new"


def test_save_creates_file_and_round_trips(tmp_path: Path) -> None:
    """A new file is created with the non-default values."""
    store = FilesystemConfigStore(tmp_path / "nested" / "config.toml")
    config = WtConfig(worktree_dir="/wt", dirty_worktrees="require-force")

    store.save(config)

    assert store.exists()
    assert store.load() == config


def test_env_overrides_take_precedence() -> None:
    """WT_* variables beat the file; empty variables are ignored."""
    config = WtConfig(worktree_dir="/file/wt", repo_dir="/file/repos")

    updated = apply_env_overrides(
        config,
        {"WT_WORKTREE_DIR": "/env/wt", "WT_REPO_DIR": "", "WT_WORKTREE_FORMAT": "{branch}"},
    )

    assert updated.worktree_dir == "/env/wt"
    assert updated.repo_dir == "/file/repos"
    assert updated.worktree_format == "{branch}"


def test_default_format() -> None:
    """The default naming template is {repo}-{branch}."""
    assert WtConfig().worktree_format == DEFAULT_WORKTREE_FORMAT == "{repo}-{branch}"


def test_resolve_dir(tmp_path: Path) -> None:
    """Relative directories resolve against the given cwd; unset stays None."""
    assert resolve_dir("worktrees", tmp_path) == (tmp_path / "worktrees").resolve()
    assert resolve_dir(str(tmp_path), Path("/elsewhere")) == tmp_path.resolve()
    assert resolve_dir(None, tmp_path) is None
    assert resolve_dir("  ", tmp_path) is None
