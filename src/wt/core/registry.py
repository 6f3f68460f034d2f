"""Registry of managed repositories.

The registry maps display names to repository paths and carries per-repo
settings (worktree naming override, labels). It is persisted as JSON at
``~/.wt/repos.json``::

    {"repos": [{"path": "/src/myrepo", "name": "myrepo", "labels": ["work"]}]}
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from wt.core.errors import (
    RegistryError,
    RepositoryAlreadyRegistered,
    RepositoryNameTaken,
    RepositoryNotRegistered,
)


@dataclass(frozen=True)
class RegisteredRepo:
    """A repository known to the registry.

    ``path`` is the repository root: the directory holding ``.git`` (or the
    bare directory itself). ``labels`` are kept sorted and unique.
    """

    path: Path
    name: str
    worktree_format: str | None = None
    labels: tuple[str, ...] = ()

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": str(self.path), "name": self.name}
        if self.worktree_format is not None:
            data["worktree_format"] = self.worktree_format
        if self.labels:
            data["labels"] = list(self.labels)
        return data

    @staticmethod
    def from_json(data: dict[str, Any]) -> "RegisteredRepo":
        path = data.get("path")
        name = data.get("name")
        if not isinstance(path, str) or not isinstance(name, str):
            raise RegistryError(f"Registry entry missing 'path' or 'name': {data}")
        labels = data.get("labels") or []
        return RegisteredRepo(
            path=Path(path),
            name=name,
            worktree_format=data.get("worktree_format"),
            labels=tuple(sorted(set(labels))),
        )


class Registry:
    """In-memory collection of registered repositories.

    Mutating methods change this instance; persist with RegistryStore.save().
    """

    def __init__(self, repos: list[RegisteredRepo] | None = None) -> None:
        self._repos: list[RegisteredRepo] = list(repos or [])

    @property
    def repos(self) -> list[RegisteredRepo]:
        return list(self._repos)

    def find_by_name(self, name: str) -> RegisteredRepo | None:
        for repo in self._repos:
            if repo.name == name:
                return repo
        return None

    def find_by_path(self, path: Path) -> RegisteredRepo | None:
        resolved = path.resolve()
        for repo in self._repos:
            if repo.path.resolve() == resolved:
                return repo
        return None

    def find(self, identifier: str) -> RegisteredRepo | None:
        """Find by name first, then by path."""
        by_name = self.find_by_name(identifier)
        if by_name is not None:
            return by_name
        return self.find_by_path(Path(identifier).expanduser())

    def find_by_labels(self, labels: list[str]) -> list[RegisteredRepo]:
        """Return repositories carrying any of the given labels."""
        wanted = set(labels)
        return [repo for repo in self._repos if wanted.intersection(repo.labels)]

    def all_labels(self) -> list[str]:
        labels: set[str] = set()
        for repo in self._repos:
            labels.update(repo.labels)
        return sorted(labels)

    def add(self, repo: RegisteredRepo) -> RegisteredRepo:
        """Register a repository.

        Raises:
            RepositoryAlreadyRegistered: If the path is already registered
            RepositoryNameTaken: If another repository uses the name
        """
        existing = self.find_by_path(repo.path)
        if existing is not None:
            raise RepositoryAlreadyRegistered(existing.path, existing.name)

        named = self.find_by_name(repo.name)
        if named is not None:
            raise RepositoryNameTaken(repo.name, named.path)

        entry = replace(repo, labels=tuple(sorted(set(repo.labels))))
        self._repos.append(entry)
        return entry

    def remove(self, identifier: str) -> RegisteredRepo:
        """Remove a repository by name or path.

        Raises:
            RepositoryNotRegistered: If nothing matches
        """
        repo = self.find(identifier)
        if repo is None:
            raise RepositoryNotRegistered(identifier)
        self._repos.remove(repo)
        return repo

    def _replace(self, old: RegisteredRepo, new: RegisteredRepo) -> RegisteredRepo:
        index = self._repos.index(old)
        self._repos[index] = new
        return new

    def update_path(self, old_path: Path, new_path: Path) -> RegisteredRepo | None:
        """Point a registered repository at its new location.

        Returns the updated entry, or None if ``old_path`` is not registered.
        """
        repo = self.find_by_path(old_path)
        if repo is None:
            return None
        return self._replace(repo, replace(repo, path=new_path))

    def add_label(self, identifier: str, label: str) -> RegisteredRepo:
        repo = self.find(identifier)
        if repo is None:
            raise RepositoryNotRegistered(identifier)
        labels = tuple(sorted(set(repo.labels) | {label}))
        return self._replace(repo, replace(repo, labels=labels))

    def remove_label(self, identifier: str, label: str) -> RegisteredRepo:
        repo = self.find(identifier)
        if repo is None:
            raise RepositoryNotRegistered(identifier)
        labels = tuple(label_ for label_ in repo.labels if label_ != label)
        return self._replace(repo, replace(repo, labels=labels))

    def effective_worktree_format(self, repo_path: Path, default: str) -> str:
        """Return the repo's naming override if it has one, else ``default``."""
        repo = self.find_by_path(repo_path)
        if repo is not None and repo.worktree_format:
            return repo.worktree_format
        return default


class RegistryStore(ABC):
    """Abstract interface for registry persistence.

    Provides dependency injection for registry access, enabling in-memory
    implementations for tests without touching the filesystem.
    """

    @abstractmethod
    def load(self) -> Registry:
        """Load the registry. A missing file yields an empty registry.

        Raises:
            RegistryError: If the file exists but cannot be parsed
        """
        ...

    @abstractmethod
    def save(self, registry: Registry) -> None:
        """Persist the registry."""
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the registry file (for messages and debugging)."""
        ...


def default_registry_path() -> Path:
    return Path.home() / ".wt" / "repos.json"


class JsonRegistryStore(RegistryStore):
    """Production implementation that reads/writes ~/.wt/repos.json."""

    def __init__(self, registry_path: Path | None = None) -> None:
        self._path = registry_path if registry_path is not None else default_registry_path()

    def load(self) -> Registry:
        if not self._path.exists():
            return Registry()

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise RegistryError(f"Cannot parse registry {self._path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("repos", []), list):
            raise RegistryError(f"Unexpected registry layout in {self._path}")

        return Registry([RegisteredRepo.from_json(entry) for entry in data.get("repos", [])])

    def save(self, registry: Registry) -> None:
        """Write the registry atomically (temp file in the same dir, then rename)."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            {"repos": [repo.to_json() for repo in registry.repos]},
            indent=2,
        )

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload + "\n")
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def path(self) -> Path:
        return self._path


class FakeRegistryStore(RegistryStore):
    """In-memory registry store for tests.

    load() hands out a fresh Registry each time, so changes only become
    visible to later loads once they are saved.
    """

    def __init__(
        self,
        repos: list[RegisteredRepo] | None = None,
        registry_path: Path | None = None,
    ) -> None:
        self._repos = list(repos or [])
        self._path = registry_path if registry_path is not None else Path("/test/.wt/repos.json")
        self._save_count = 0

    def load(self) -> Registry:
        return Registry(self._repos)

    def save(self, registry: Registry) -> None:
        self._repos = registry.repos
        self._save_count += 1

    def path(self) -> Path:
        return self._path

    @property
    def repos(self) -> list[RegisteredRepo]:
        """Entries as of the last save."""
        return list(self._repos)

    @property
    def save_count(self) -> int:
        return self._save_count
