"""Small filesystem helpers: extensions, sizes, copies and directory totals."""

from __future__ import annotations

import os
import shutil
import stat
from datetime import datetime, timezone
from typing import Iterator


def get_file_extension(filename: str) -> str:
    """Return the extension including the dot; hidden files like ".env" have none."""
    base = filename.rsplit(os.sep, 1)[-1]
    if os.altsep:
        base = base.rsplit(os.altsep, 1)[-1]
    if base.startswith(".") and len(base) > 1 and base.rfind(".") == 0:
        return ""
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def is_hidden_file(filename: str) -> bool:
    """True if the name starts with a dot."""
    return filename.startswith(".")


def get_file_size(path: str | os.PathLike[str]) -> int:
    """Return the size of a file in bytes."""
    return os.stat(path).st_size


def get_file_mod_time(path: str | os.PathLike[str]) -> datetime:
    """Return the modification time of a file as an aware local datetime."""
    mtime = os.stat(path).st_mtime
    return datetime.fromtimestamp(mtime, tz=timezone.utc).astimezone()


def is_directory(path: str | os.PathLike[str]) -> bool:
    """True if the path exists and is a directory."""
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except OSError:
        return False


def is_symlink(path: str | os.PathLike[str]) -> bool:
    """True if the path itself is a symbolic link."""
    try:
        return stat.S_ISLNK(os.lstat(path).st_mode)
    except OSError:
        return False


def get_symlink_target(path: str | os.PathLike[str]) -> str:
    """Return the absolute path a symbolic link points to."""
    path = os.fspath(path)
    target = os.readlink(path)
    if not os.path.isabs(target):
        target = os.path.join(os.path.dirname(path), target)
    return os.path.abspath(target)


def create_directory(path: str | os.PathLike[str]) -> None:
    """Create a directory and its parents; an existing directory is fine."""
    os.makedirs(path, mode=0o755, exist_ok=True)


def remove_directory(path: str | os.PathLike[str]) -> None:
    """Remove a path and everything below it; a missing path is not an error."""
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return
    if stat.S_ISDIR(st.st_mode):
        shutil.rmtree(path)
    else:
        os.remove(path)


def copy_file(src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> None:
    """Copy the contents of one file to another, replacing the destination."""
    shutil.copyfile(src, dst)


def move_file(src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> None:
    """Rename a file."""
    os.rename(src, dst)


def _non_directories(path: str) -> Iterator[os.stat_result]:
    st = os.lstat(path)
    if not stat.S_ISDIR(st.st_mode):
        yield st
        return
    for name in sorted(os.listdir(path)):
        yield from _non_directories(os.path.join(path, name))


def get_directory_size(path: str | os.PathLike[str]) -> int:
    """Return the total size of all non-directory entries below the path."""
    return sum(st.st_size for st in _non_directories(os.fspath(path)))


def get_directory_file_count(path: str | os.PathLike[str]) -> int:
    """Return the number of non-directory entries below the path."""
    return sum(1 for _ in _non_directories(os.fspath(path)))