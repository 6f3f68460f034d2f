"""Git operations subpackage.

This subpackage provides abstractions over git operations with support for
testing via fakes and dry-run via wrappers.
"""

from wt.core.git.abc import Git, WorktreeInfo
from wt.core.git.dry_run import DryRunGit
from wt.core.git.real import RealGit

__all__ = [
    "Git",
    "WorktreeInfo",
    "RealGit",
    "DryRunGit",
]
