"""Run git and friends, turning failures into readable RuntimeErrors."""

import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any


def _failure_message(headline: str, cmd: Sequence[str], *details: str) -> str:
    lines = [headline, f"Command: {' '.join(str(arg) for arg in cmd)}"]
    lines.extend(detail for detail in details if detail)
    return "\n".join(lines)


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    check: bool = True,
    timeout: float | None = None,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Run ``cmd`` with captured UTF-8 output.

    ``operation_context`` completes the sentence "Failed to ..." and should
    name what the caller was doing, e.g. "move worktree from A to B".
    Extra keyword arguments go straight to subprocess.run().

    Raises:
        RuntimeError: If the command exits non-zero (when ``check``), runs
            past ``timeout`` seconds, or is not installed. The message carries
            the command line, exit code and trimmed stdout/stderr.
    """
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=check,
            timeout=timeout,
            **kwargs,
        )
    except subprocess.CalledProcessError as e:
        stdout = (e.stdout or "").strip()
        stderr = (e.stderr or "").strip()
        message = _failure_message(
            f"Failed to {operation_context}",
            cmd,
            f"Exit code: {e.returncode}",
            f"stdout: {stdout}" if stdout else "",
            f"stderr: {stderr}" if stderr else "",
        )
        raise RuntimeError(message) from e
    except subprocess.TimeoutExpired as e:
        message = _failure_message(
            f"Timed out after {timeout}s while trying to {operation_context}", cmd
        )
        raise RuntimeError(message) from e
    except FileNotFoundError as e:
        message = _failure_message(
            f"Command not found while trying to {operation_context}: {cmd[0]}", cmd
        )
        raise RuntimeError(message) from e
