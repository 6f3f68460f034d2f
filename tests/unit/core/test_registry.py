"""Tests for the repository registry and its JSON store."""

import json
from pathlib import Path

import pytest

from wt.core.errors import (
    RegistryError,
    RepositoryAlreadyRegistered,
    RepositoryNameTaken,
    RepositoryNotRegistered,
)
from wt.core.registry import JsonRegistryStore, RegisteredRepo, Registry


def _registry(tmp_path: Path) -> Registry:
    return Registry(
        [
            RegisteredRepo(path=tmp_path / "api", name="api", labels=("backend",)),
            RegisteredRepo(
                path=tmp_path / "web",
                name="web",
                worktree_format="{branch}",
                labels=("frontend", "work"),
            ),
        ]
    )


def test_find_by_name_then_path(tmp_path: Path) -> None:
    """find() accepts a display name or a path."""
    registry = _registry(tmp_path)

    by_name = registry.find("api")
    by_path = registry.find(str(tmp_path / "web"))

    assert by_name is not None and by_name.name == "api"
    assert by_path is not None and by_path.name == "web"
    assert registry.find("missing") is None


def test_add_rejects_duplicate_name(tmp_path: Path) -> None:
    """Two repositories cannot share a display name."""
    registry = _registry(tmp_path)

    with pytest.raises(RepositoryNameTaken):
        registry.add(RegisteredRepo(path=tmp_path / "other", name="api"))


def test_add_rejects_duplicate_path(tmp_path: Path) -> None:
    """A path can only be registered once."""
    registry = _registry(tmp_path)

    with pytest.raises(RepositoryAlreadyRegistered):
        registry.add(RegisteredRepo(path=tmp_path / "api", name="api2"))


def test_add_sorts_and_dedups_labels(tmp_path: Path) -> None:
    """Labels are stored sorted and unique."""
    registry = Registry()

    entry = registry.add(
        RegisteredRepo(path=tmp_path / "x", name="x", labels=("b", "a", "b"))
    )

    assert entry.labels == ("a", "b")


def test_remove_unknown_repo_raises(tmp_path: Path) -> None:
    """Removing something that is not registered is an error."""
    registry = _registry(tmp_path)

    with pytest.raises(RepositoryNotRegistered):
        registry.remove("missing")


def test_update_path_keeps_name_and_settings(tmp_path: Path) -> None:
    """After a move only the path changes."""
    registry = _registry(tmp_path)

    updated = registry.update_path(tmp_path / "web", tmp_path / "repos" / "web")

    assert updated is not None
    assert updated.path == tmp_path / "repos" / "web"
    assert updated.name == "web"
    assert updated.worktree_format == "{branch}"
    assert registry.find_by_path(tmp_path / "web") is None


def test_update_path_of_unregistered_repo_is_noop(tmp_path: Path) -> None:
    """Unregistered repositories are simply not tracked."""
    registry = _registry(tmp_path)

    assert registry.update_path(tmp_path / "unknown", tmp_path / "elsewhere") is None
    assert len(registry.repos) == 2


def test_labels(tmp_path: Path) -> None:
    """Label filtering matches any label; labels can be added and removed."""
    registry = _registry(tmp_path)

    assert [r.name for r in registry.find_by_labels(["backend", "work"])] == ["api", "web"]
    assert registry.all_labels() == ["backend", "frontend", "work"]

    registry.add_label("api", "work")
    registry.remove_label("web", "work")

    assert [r.name for r in registry.find_by_labels(["work"])] == ["api"]


def test_effective_worktree_format(tmp_path: Path) -> None:
    """A per-repo override wins over the default."""
    registry = _registry(tmp_path)

    assert registry.effective_worktree_format(tmp_path / "web", "{repo}-{branch}") == "{branch}"
    assert (
        registry.effective_worktree_format(tmp_path / "api", "{repo}-{branch}")
        == "{repo}-{branch}"
    )


def test_json_store_round_trip(tmp_path: Path) -> None:
    """Saved entries load back unchanged."""
    store = JsonRegistryStore(tmp_path / ".wt" / "repos.json")
    registry = _registry(tmp_path)

    store.save(registry)
    loaded = store.load()

    assert loaded.repos == registry.repos
    data = json.loads((tmp_path / ".wt" / "repos.json").read_text(encoding="utf-8"))
    assert data["repos"][1] == {
        "path": str(tmp_path / "web"),
        "name": "web",
        "worktree_format": "{branch}",
        "labels": ["frontend", "work"],
    }


def test_json_store_leaves_no_temp_files(tmp_path: Path) -> None:
    """The atomic write cleans up after itself."""
    store = JsonRegistryStore(tmp_path / "repos.json")

    store.save(_registry(tmp_path))

    assert [p.name for p in tmp_path.iterdir()] == ["repos.json"]


def test_json_store_missing_file_is_empty(tmp_path: Path) -> None:
    """No registry file means no registered repositories."""
    assert JsonRegistryStore(tmp_path / "missing.json").load().repos == []


def test_json_store_rejects_garbage(tmp_path: Path) -> None:
    """A corrupt registry file is reported, not silently replaced."""
    path = tmp_path / "repos.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RegistryError, match="Cannot parse"):
        JsonRegistryStore(path).load()
