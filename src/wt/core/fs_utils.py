"""Filesystem helpers for moving trees without losing data."""

import errno
import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def _relative_entries(root: Path) -> set[str]:
    entries: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        base = Path(dirpath)
        for name in dirnames + filenames:
            entries.add((base / name).relative_to(root).as_posix())
    return entries


def _verify_copy(src: Path, dst: Path) -> None:
    if src.is_dir() and not src.is_symlink():
        missing = _relative_entries(src) - _relative_entries(dst)
        if missing:
            sample = ", ".join(sorted(missing)[:5])
            raise OSError(f"Copy of {src} to {dst} is incomplete (missing: {sample}); source kept")
        return
    if not dst.is_symlink() and dst.stat().st_size != src.stat().st_size:
        raise OSError(f"Copy of {src} to {dst} has a different size; source kept")


def move_tree(src: Path, dst: Path) -> None:
    """Move a file or directory tree from ``src`` to ``dst``.

    A plain rename is used when both sides are on the same filesystem. Across
    filesystems the tree is copied, the copy is checked to contain every
    entry of the source, and only then is the source removed.

    Raises:
        FileExistsError: If ``dst`` already exists
        OSError: If the move fails; the source is left intact
    """
    if dst.exists() or dst.is_symlink():
        raise FileExistsError(f"Destination already exists: {dst}")

    dst.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.rename(src, dst)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    logger.debug("Cross-device move, copying %s -> %s", src, dst)
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dst, symlinks=True)
        _verify_copy(src, dst)
        shutil.rmtree(src)
    else:
        shutil.copy2(src, dst, follow_symlinks=False)
        _verify_copy(src, dst)
        src.unlink()
