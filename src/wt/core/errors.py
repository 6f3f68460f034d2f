"""Error types raised by the topology engine.

Core modules raise these; the CLI layer turns them into a red ``Error:`` line
and exit code 1. Per-entity problems during a relocation are not errors: they
are recorded in the relocation report and the command still succeeds.
"""

from pathlib import Path


class WtError(Exception):
    """Base class for all fatal wt errors."""


class InvalidFormat(WtError):
    """Worktree naming template is empty, unknown, or renders an unsafe name."""

    def __init__(self, template: str, reason: str) -> None:
        self.template = template
        self.reason = reason
        super().__init__(f"Invalid worktree format '{template}': {reason}")


class DestinationNotConfigured(WtError):
    """No worktree destination directory is configured."""

    def __init__(self) -> None:
        super().__init__(
            "Worktree directory is not configured. "
            "Set WT_WORKTREE_DIR or run 'wt config set worktree_dir <path>'"
        )


class DestinationDoesNotExist(WtError):
    """A configured destination directory is missing or is not a directory."""

    def __init__(self, label: str, path: Path) -> None:
        self.label = label
        self.path = path
        super().__init__(f"{label} does not exist or is not a directory: {path}")


class PathDoesNotExist(WtError):
    """An explicitly given path does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Path does not exist: {path}")


class NotAGitRepository(WtError):
    """Path is not a repository root (missing, plain directory, or a linked worktree)."""

    def __init__(self, path: Path, detail: str | None = None) -> None:
        self.path = path
        message = f"Not a git repository: {path}"
        if detail is not None:
            message += f" ({detail})"
        super().__init__(message)


class AlreadyBare(WtError):
    """Repository is already stored in the bare layout."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Repository is already bare: {path}")


class NoCurrentBranch(WtError):
    """HEAD is detached or unborn, so there is no branch to name the main worktree."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            f"Cannot determine current branch in {path} (detached HEAD or no commits). "
            "Check out a branch first"
        )


class UnsupportedRepository(WtError):
    """Repository layout that conversion cannot handle safely."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot convert {path}: {reason}")


class RegistryError(WtError):
    """Registry file is unreadable or an update conflicts with existing entries."""


class RepositoryNameTaken(RegistryError):
    """A different repository is already registered under the requested name."""

    def __init__(self, name: str, existing_path: Path) -> None:
        self.name = name
        self.existing_path = existing_path
        super().__init__(f"Repository name '{name}' is already registered for {existing_path}")


class RepositoryAlreadyRegistered(RegistryError):
    """The repository path is already present in the registry."""

    def __init__(self, path: Path, name: str) -> None:
        self.path = path
        self.name = name
        super().__init__(f"Repository already registered as '{name}': {path}")


class RepositoryNotRegistered(RegistryError):
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Repository not found in registry: {identifier}")


class ConfigError(WtError):
    """Configuration file is malformed or a key/value is invalid."""


class OperationCancelled(WtError):
    """An interrupt was received; the run stopped at an entity boundary."""

    def __init__(self) -> None:
        super().__init__("Operation cancelled")
