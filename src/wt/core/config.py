"""Global configuration data structures and loading.

Provides immutable config data loaded from ~/.wt/config.toml, with
environment variable overrides applied on top.

Example config:
  worktree_dir = "~/worktrees"
  repo_dir = "~/src"
  worktree_format = "{repo}-{branch}"
  dirty_worktrees = "move"
  git_timeout = 120
"""

import tomllib
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

import tomlkit

from wt.core.errors import ConfigError
from wt.core.naming import DEFAULT_WORKTREE_FORMAT

DirtyPolicy = Literal["move", "require-force"]
DIRTY_POLICIES: tuple[DirtyPolicy, ...] = ("move", "require-force")

DEFAULT_GIT_TIMEOUT = 120.0

ENV_WORKTREE_DIR = "WT_WORKTREE_DIR"
ENV_REPO_DIR = "WT_REPO_DIR"
ENV_WORKTREE_FORMAT = "WT_WORKTREE_FORMAT"

CONFIG_KEYS = ("worktree_dir", "repo_dir", "worktree_format", "dirty_worktrees", "git_timeout")


@dataclass(frozen=True)
class WtConfig:
    """Immutable configuration data.

    Loaded once at CLI entry point and stored in WtContext.
    ``worktree_dir`` and ``repo_dir`` are kept as written (possibly relative
    or ``~``-prefixed); use resolve_dir() to turn them into absolute paths.
    """

    worktree_dir: str | None = None
    repo_dir: str | None = None
    worktree_format: str = DEFAULT_WORKTREE_FORMAT
    dirty_worktrees: DirtyPolicy = "move"
    git_timeout: float = DEFAULT_GIT_TIMEOUT


def resolve_dir(value: str | None, cwd: Path) -> Path | None:
    """Expand ``~`` and resolve a relative directory against ``cwd``."""
    if value is None or not value.strip():
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = cwd / path
    return path.resolve()


def parse_dirty_policy(value: str) -> DirtyPolicy:
    match value:
        case "move":
            return "move"
        case "require-force":
            return "require-force"
        case _:
            raise ConfigError(
                f"Invalid dirty_worktrees value '{value}' (expected one of: "
                f"{', '.join(DIRTY_POLICIES)})"
            )


def config_from_mapping(data: Mapping[str, object], source: str) -> WtConfig:
    """Build a WtConfig from parsed TOML data.

    Raises:
        ConfigError: If a value has the wrong type or an unknown key is present
    """
    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigError(f"Unknown config key(s) in {source}: {', '.join(unknown)}")

    def optional_str(key: str) -> str | None:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ConfigError(f"'{key}' in {source} must be a string")
        return value

    worktree_format = optional_str("worktree_format") or DEFAULT_WORKTREE_FORMAT
    dirty = optional_str("dirty_worktrees") or "move"

    timeout = data.get("git_timeout", DEFAULT_GIT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        raise ConfigError(f"'git_timeout' in {source} must be a positive number")

    return WtConfig(
        worktree_dir=optional_str("worktree_dir"),
        repo_dir=optional_str("repo_dir"),
        worktree_format=worktree_format,
        dirty_worktrees=parse_dirty_policy(dirty),
        git_timeout=float(timeout),
    )


def apply_env_overrides(config: WtConfig, environ: Mapping[str, str]) -> WtConfig:
    """Let WT_* environment variables take precedence over the file."""
    updated = config
    if environ.get(ENV_WORKTREE_DIR):
        updated = replace(updated, worktree_dir=environ[ENV_WORKTREE_DIR])
    if environ.get(ENV_REPO_DIR):
        updated = replace(updated, repo_dir=environ[ENV_REPO_DIR])
    if environ.get(ENV_WORKTREE_FORMAT):
        updated = replace(updated, worktree_format=environ[ENV_WORKTREE_FORMAT])
    return updated


class ConfigStore(ABC):
    """Abstract interface for config operations.

    Provides dependency injection for config access, enabling in-memory
    implementations for tests without touching filesystem.
    """

    @abstractmethod
    def exists(self) -> bool:
        """Check if the config file exists."""
        ...

    @abstractmethod
    def load(self) -> WtConfig:
        """Load config, returning defaults when no file exists.

        Raises:
            ConfigError: If the file is malformed
        """
        ...

    @abstractmethod
    def save(self, config: WtConfig) -> None:
        """Save config.

        Args:
            config: WtConfig instance to save
        """
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the config file.

        Returns:
            Path to config file (for error messages and debugging)
        """
        ...


class FilesystemConfigStore(ConfigStore):
    """Production implementation that reads/writes ~/.wt/config.toml."""

    def __init__(self, config_path: Path | None = None) -> None:
        self._path = config_path if config_path is not None else Path.home() / ".wt" / "config.toml"

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> WtConfig:
        if not self._path.exists():
            return WtConfig()

        try:
            data = tomllib.loads(self._path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Cannot parse {self._path}: {e}") from e

        return config_from_mapping(data, str(self._path))

    def save(self, config: WtConfig) -> None:
        """Save config, preserving comments and layout of an existing file.

        Keys holding defaults are written only if the file already has them.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        if self._path.exists():
            doc = tomlkit.parse(self._path.read_text(encoding="utf-8"))
        else:
            doc = tomlkit.document()
            doc.add(tomlkit.comment("wt configuration"))

        defaults = WtConfig()
        for key in CONFIG_KEYS:
            value = getattr(config, key)
            if value is None:
                if key in doc:
                    del doc[key]
                continue
            if value == getattr(defaults, key) and key not in doc:
                continue
            doc[key] = value

        self._path.write_text(tomlkit.dumps(doc), encoding="utf-8")

    def path(self) -> Path:
        return self._path


class FakeConfigStore(ConfigStore):
    """In-memory config store for tests.

    ``config=None`` behaves like a missing config file: exists() is False and
    load() returns defaults.
    """

    def __init__(self, config: WtConfig | None = None, config_path: Path | None = None) -> None:
        self._config = config
        self._path = config_path if config_path is not None else Path("/test/.wt/config.toml")

    def exists(self) -> bool:
        return self._config is not None

    def load(self) -> WtConfig:
        return self._config if self._config is not None else WtConfig()

    def save(self, config: WtConfig) -> None:
        self._config = config

    def path(self) -> Path:
        return self._path

    @property
    def saved_config(self) -> WtConfig | None:
        return self._config
