"""Worktree folder naming from user templates.

A template such as ``{repo}-{branch}`` is rendered into a single path segment.
Placeholder values are sanitized so a branch like ``feature/login`` becomes
``feature-login`` and can never introduce extra directory levels.
"""

import re
from dataclasses import dataclass

from wt.core.errors import InvalidFormat

DEFAULT_WORKTREE_FORMAT = "{repo}-{branch}"

# {folder} is an alias of {repo}: both are the repository's current folder name.
PLACEHOLDERS = ("repo", "folder", "branch", "origin")

_PLACEHOLDER_RE = re.compile(r"\{([^{}]*)\}")
_UNSAFE_CHARS = ("/", "\\", ":", "*", "?", '"', "<", ">", "|")


@dataclass(frozen=True)
class FormatParams:
    """Values substituted into a worktree naming template.

    ``origin`` is the name derived from the repository's ``origin`` remote.
    Callers pass the folder name when no remote exists.
    """

    repo: str
    branch: str
    origin: str
    folder: str


def sanitize_for_path(value: str) -> str:
    """Replace characters that are invalid in a single path segment with '-'."""
    result = value
    for char in _UNSAFE_CHARS:
        result = result.replace(char, "-")
    return result


def validate_format(template: str) -> None:
    """Check that a template is usable.

    Raises:
        InvalidFormat: If the template is empty, references an unknown
            placeholder, or references no placeholder at all.
    """
    if not template.strip():
        raise InvalidFormat(template, "format is empty")

    found = _PLACEHOLDER_RE.findall(template)
    for name in found:
        if name not in PLACEHOLDERS:
            valid = ", ".join("{" + p + "}" for p in PLACEHOLDERS)
            raise InvalidFormat(template, f"unknown placeholder {{{name}}} (valid: {valid})")

    if not found:
        raise InvalidFormat(template, "format must contain at least one placeholder")


def format_worktree_name(template: str, params: FormatParams) -> str:
    """Render a template into a worktree folder name.

    Args:
        template: Naming template, validated with validate_format
        params: Values for the placeholders

    Returns:
        A single path segment

    Raises:
        InvalidFormat: If the template is invalid or the rendered name would
            escape its destination directory
    """
    validate_format(template)

    values = {
        "repo": sanitize_for_path(params.repo),
        "folder": sanitize_for_path(params.folder),
        "branch": sanitize_for_path(params.branch),
        "origin": sanitize_for_path(params.origin),
    }
    name = _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)

    if "/" in name or "\\" in name:
        raise InvalidFormat(template, f"rendered name '{name}' contains a path separator")
    if name in ("", ".", ".."):
        raise InvalidFormat(template, f"rendered name '{name}' is not a valid folder name")

    return name


def strip_repo_prefix(repo_name: str, folder_name: str) -> str:
    """Drop a legacy ``<repo>-`` prefix from a worktree folder name.

    Returns the name unchanged when it has no such prefix or when stripping
    would leave nothing behind.
    """
    prefix = f"{repo_name}-"
    if folder_name.startswith(prefix) and len(folder_name) > len(prefix):
        return folder_name[len(prefix) :]
    return folder_name


def origin_name_from_url(url: str | None, fallback: str) -> str:
    """Derive a repository name from a remote URL.

    Handles ``git@host:org/name.git`` and ``https://host/org/name(.git)``
    forms. Falls back to ``fallback`` when the URL is missing or yields
    nothing usable.
    """
    if url is None:
        return fallback
    trimmed = url.strip().rstrip("/")
    if trimmed.endswith(".git"):
        trimmed = trimmed[: -len(".git")]
    last = re.split(r"[/:]", trimmed)[-1] if trimmed else ""
    if not last:
        return fallback
    return last
