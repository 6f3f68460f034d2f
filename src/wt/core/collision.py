"""Destination collision resolution.

``unique_path`` appends ``-1``, ``-2``, ... to the last path segment until it
finds a free candidate. ``ClaimedPaths`` remembers what earlier entities of the
same run already took, so two worktrees that render to the same name never
race for one destination.
"""

import threading
from collections.abc import Callable
from pathlib import Path


def unique_path(desired: Path, is_taken: Callable[[Path], bool]) -> Path:
    """Return ``desired`` or the first free ``desired-N`` candidate."""
    if not is_taken(desired):
        return desired

    suffix = 1
    while True:
        candidate = desired.with_name(f"{desired.name}-{suffix}")
        if not is_taken(candidate):
            return candidate
        suffix += 1


class ClaimedPaths:
    """Thread-safe set of destinations claimed during a single run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claimed: set[Path] = set()

    def __contains__(self, path: Path) -> bool:
        with self._lock:
            return path in self._claimed

    def claim(self, path: Path) -> bool:
        """Claim a path. Returns False if it was already claimed."""
        with self._lock:
            if path in self._claimed:
                return False
            self._claimed.add(path)
            return True

    def claim_unique(
        self,
        desired: Path,
        exists: Callable[[Path], bool],
        own_path: Path | None = None,
    ) -> Path:
        """Resolve and claim a collision-free destination in one step.

        Args:
            desired: Preferred destination
            exists: Filesystem existence check for candidates
            own_path: The entity's current location. A candidate equal to it is
                free, so an entity already at its destination keeps its name.

        Returns:
            The claimed destination
        """

        def is_taken(candidate: Path) -> bool:
            if candidate in self._claimed:
                return True
            if own_path is not None and candidate == own_path:
                return False
            return exists(candidate)

        with self._lock:
            resolved = unique_path(desired, is_taken)
            self._claimed.add(resolved)
            return resolved
