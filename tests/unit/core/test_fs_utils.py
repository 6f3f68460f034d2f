"""Tests for moving trees across and within filesystems."""

import errno
import os
from pathlib import Path

import pytest

from wt.core import fs_utils
from wt.core.fs_utils import move_tree


def _make_tree(root: Path) -> None:
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "src" / "pkg" / "mod.py").write_text("x = 1\n", encoding="utf-8")
    (root / "README.md").write_text("# readme\n", encoding="utf-8")
    os.symlink("README.md", root / "link.md")


def test_move_tree_renames_directory(tmp_path: Path) -> None:
    """Moving within a filesystem keeps every entry, symlinks included."""
    src = tmp_path / "src-tree"
    _make_tree(src)
    dst = tmp_path / "nested" / "dst-tree"

    move_tree(src, dst)

    assert not src.exists()
    assert (dst / "src" / "pkg" / "mod.py").read_text(encoding="utf-8") == "x = 1\n"
    assert (dst / "link.md").is_symlink()


def test_move_tree_refuses_existing_destination(tmp_path: Path) -> None:
    src = tmp_path / "a"
    src.mkdir()
    dst = tmp_path / "b"
    dst.mkdir()

    with pytest.raises(FileExistsError):
        move_tree(src, dst)

    assert src.is_dir()


def test_move_tree_copies_across_devices(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An EXDEV rename falls back to copy, verify, then delete the source."""
    src = tmp_path / "src-tree"
    _make_tree(src)
    dst = tmp_path / "dst-tree"

    def cross_device_rename(a: object, b: object) -> None:
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(fs_utils.os, "rename", cross_device_rename)

    move_tree(src, dst)

    assert not src.exists()
    assert (dst / "README.md").read_text(encoding="utf-8") == "# readme\n"
    assert (dst / "src" / "pkg" / "mod.py").is_file()
    assert os.readlink(dst / "link.md") == "README.md"


def test_move_tree_propagates_other_rename_errors(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Errors other than EXDEV are raised and the source stays put."""
    src = tmp_path / "file.txt"
    src.write_text("data", encoding="utf-8")

    def denied_rename(a: object, b: object) -> None:
        raise PermissionError(errno.EACCES, "Permission denied")

    monkeypatch.setattr(fs_utils.os, "rename", denied_rename)

    with pytest.raises(PermissionError):
        move_tree(src, tmp_path / "moved.txt")

    assert src.read_text(encoding="utf-8") == "data"
