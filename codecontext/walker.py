"""Directory scanning with depth limits, glob filters and size checks."""

from __future__ import annotations

import os
import stat
import sys
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Optional

from codecontext.config import get_default_config
from codecontext.models import Config, ContextData, FileInfo, FolderInfo, WalkOptions

ProgressCallback = Callable[[int, int, str], None]

DEFAULT_MAX_FILE_COUNT = 1000
DEFAULT_WALK_FILE_SIZE = 10 * 1024 * 1024
_SNIFF_BYTES = 8192
_PROGRESS_EVERY = 10


class WalkError(Exception):
    """Raised when a scan or a file lookup cannot be carried out."""


@lru_cache(maxsize=512)
def _compile_glob(pattern: str):
    """Translate a shell glob into a regex; None when the pattern is malformed.

    ``*`` and ``?`` never match the path separator; ``[^...]`` negates a class.
    """
    import re

    sep = os.sep
    escapes = sep != "\\"
    not_sep = "[^" + re.escape(sep) + "]"
    out: list[str] = []
    n = len(pattern)
    i = 0

    def read_class_char(pos: int) -> tuple[Optional[str], int]:
        if pos >= n or pattern[pos] in "-]":
            return None, pos
        if pattern[pos] == "\\" and escapes:
            pos += 1
            if pos >= n:
                return None, pos
        return pattern[pos], pos + 1

    while i < n:
        char = pattern[i]
        if char == "*":
            out.append(not_sep + "*")
            i += 1
        elif char == "?":
            out.append(not_sep)
            i += 1
        elif char == "[":
            i += 1
            negate = i < n and pattern[i] == "^"
            if negate:
                i += 1
            items: list[str] = []
            while True:
                if i >= n:
                    return None
                if pattern[i] == "]" and items:
                    i += 1
                    break
                lo, i = read_class_char(i)
                if lo is None:
                    return None
                if i < n and pattern[i] == "-":
                    hi, i = read_class_char(i + 1)
                    if hi is None or lo > hi:
                        return None
                    items.append(re.escape(lo) + "-" + re.escape(hi))
                else:
                    items.append(re.escape(lo))
            out.append("[" + ("^" if negate else "") + "".join(items) + "]")
        elif char == "\\" and escapes:
            i += 1
            if i >= n:
                return None
            out.append(re.escape(pattern[i]))
            i += 1
        else:
            out.append(re.escape(char))
            i += 1
    return re.compile("".join(out), re.DOTALL)


def _glob_match(pattern: str, name: str) -> bool:
    regex = _compile_glob(pattern)
    return bool(regex is not None and regex.fullmatch(name))


def _to_slash(path: str) -> str:
    return path.replace(os.sep, "/") if os.sep != "/" else path


def _relative(root: str, path: str) -> str:
    """Path of ``path`` relative to ``root``; empty when no relation exists."""
    base = root or "."
    if os.path.isabs(base) != os.path.isabs(path):
        return ""
    try:
        return os.path.relpath(path, base)
    except ValueError:
        return ""


def _looks_binary(path: str) -> bool:
    try:
        with open(path, "rb") as handle:
            chunk = handle.read(_SNIFF_BYTES)
    except OSError:
        return True
    return b"\0" in chunk


def _mod_time(st: os.stat_result) -> datetime:
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).astimezone()


def _walk_tree(root: str, visit: Callable[[str, bool, Optional[OSError]], bool]) -> None:
    """Visit ``root`` and its descendants in lexical order without following links.

    ``visit`` returns True for a directory to skip its contents.
    """
    try:
        st = os.lstat(root)
    except OSError as exc:
        visit(root, False, exc)
        return
    _walk_node(root, stat.S_ISDIR(st.st_mode), visit)


def _walk_node(path: str, is_dir: bool, visit) -> None:
    if visit(path, is_dir, None) or not is_dir:
        return
    try:
        names = sorted(os.listdir(path))
    except OSError as exc:
        visit(path, True, exc)
        return
    for name in names:
        child = os.path.join(path, name)
        try:
            st = os.lstat(child)
        except OSError as exc:
            visit(child, False, exc)
            continue
        _walk_node(child, stat.S_ISDIR(st.st_mode), visit)


def _matches_any_path(path: str, candidates: Iterable[str]) -> bool:
    target = os.path.abspath(path)
    return any(os.path.abspath(candidate) == target for candidate in candidates)


class FileSystemWalker:
    """Scans directories into ContextData according to WalkOptions."""

    def __init__(self, config: Config | None = None, *, max_file_count: int = DEFAULT_MAX_FILE_COUNT) -> None:
        self.config = config
        self.max_file_count = max_file_count

    def set_config(self, config: Config | None) -> None:
        """Use this configuration when building file information."""
        self.config = config

    def walk(self, root_path: str | os.PathLike[str], options: WalkOptions | None = None) -> ContextData:
        """Scan ``root_path`` without progress reporting."""
        return self.walk_with_progress(root_path, options, None)

    def walk_with_progress(
        self,
        root_path: str | os.PathLike[str],
        options: WalkOptions | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ContextData:
        """Scan ``root_path``, calling ``progress_callback(done, total, name)`` as files are read.

        Raises WalkError if the root is missing or holds too many matching files.
        """
        if options is None:
            options = WalkOptions(
                max_depth=-1,
                max_file_size=DEFAULT_WALK_FILE_SIZE,
                exclude_patterns=list(get_default_config().filters.exclude_patterns),
            )
        if options.multiple_files:
            return self._process_multiple_files(options.multiple_files, options, progress_callback)

        root = os.fspath(root_path)
        try:
            os.stat(root)
        except OSError as exc:
            raise WalkError(f"root path does not exist: {exc}") from exc

        total = 0

        def count(path: str, is_dir: bool, error: Optional[OSError]) -> bool:
            nonlocal total
            if error is None and not is_dir and self.should_include_file(path, root, options):
                total += 1
            return False

        _walk_tree(root, count)
        if total > self.max_file_count:
            raise WalkError(f"too many files: {total} > {self.max_file_count}")

        data = ContextData(metadata={"root_path": root})
        errors: list[Exception] = []
        seen: set[str] = set()
        processed = 0

        def visit(path: str, is_dir: bool, error: Optional[OSError]) -> bool:
            nonlocal processed
            if error is not None:
                errors.append(error)
                return False
            depth = os.path.relpath(path, root).count(os.sep)
            if options.max_depth >= 0 and depth >= options.max_depth:
                return is_dir

            if not is_dir:
                if not self.should_include_file(path, root, options):
                    return False
                try:
                    info = self.get_file_info(path)
                except WalkError as exc:
                    errors.append(exc)
                    return False
                if info.path not in seen:
                    seen.add(info.path)
                    data.files.append(info)
                    data.file_count += 1
                    data.total_size += info.size
                processed += 1
                if progress_callback is not None and processed % _PROGRESS_EVERY == 0:
                    progress_callback(processed, total, os.path.basename(path))
            elif path != root and not self._folder_excluded(path, root, options.exclude_patterns):
                try:
                    folder = self.get_folder_info(path)
                except WalkError as exc:
                    errors.append(exc)
                    return False
                data.folders.append(folder)
                data.folder_count += 1
                data.total_size += folder.size
            return False

        _walk_tree(root, visit)

        if progress_callback is not None:
            progress_callback(total, total, "done")

        if errors:
            print(f"encountered {len(errors)} errors while scanning", file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
        return data

    @staticmethod
    def _folder_excluded(path: str, root: str, patterns: list[str]) -> bool:
        name = os.path.basename(path)
        rel = _to_slash(_relative(root, path))
        for pattern in patterns:
            if _glob_match(pattern, name):
                return True
            if "/" in pattern:
                if _glob_match(pattern, rel):
                    return True
                if pattern.endswith("/") and _glob_match(pattern[:-1], name):
                    return True
        return False

    def get_file_info(self, path: str | os.PathLike[str]) -> FileInfo:
        """Describe one file and read its text; raises WalkError on failure."""
        path = os.fspath(path)
        try:
            st = os.stat(path)
        except OSError as exc:
            raise WalkError(f"cannot stat file: {exc}") from exc

        is_binary = _looks_binary(path)
        content = ""
        if not is_binary:
            try:
                content = Path(path).read_bytes().decode("utf-8", errors="replace")
            except OSError as exc:
                raise WalkError(f"cannot read file content: {exc}") from exc

        name = os.path.basename(path)
        info = FileInfo(path=path, name=name, content=content, size=st.st_size)
        if self.config is not None and self.config.output.include_metadata:
            info.mod_time = _mod_time(st)
            info.is_dir = stat.S_ISDIR(st.st_mode)
            info.is_hidden = name.startswith(".")
            info.is_binary = is_binary
        return info

    def get_folder_info(self, path: str | os.PathLike[str]) -> FolderInfo:
        """Describe a directory and the files directly inside it."""
        path = os.fspath(path)
        try:
            st = os.stat(path)
            entries = sorted(os.scandir(path), key=lambda entry: entry.name)
        except OSError as exc:
            raise WalkError(f"cannot read folder: {exc}") from exc

        files: list[FileInfo] = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if is_dir:
                continue
            try:
                files.append(self.get_file_info(os.path.join(path, entry.name)))
            except WalkError:
                continue
        return FolderInfo(
            path=path,
            name=os.path.basename(os.path.normpath(path)),
            mod_time=_mod_time(st),
            files=files,
        )

    def filter_files(self, files: list[str], patterns: list[str]) -> list[str]:
        """Keep files whose base name matches any pattern; no patterns keeps all."""
        if not patterns:
            return files
        return [
            file
            for file in files
            if any(_glob_match(pattern, os.path.basename(file)) for pattern in patterns)
        ]

    def filter_by_size(self, path: str | os.PathLike[str], max_size: int) -> bool:
        """True if the file exists and is within ``max_size`` (0 or less means unlimited)."""
        try:
            size = os.stat(path).st_size
        except OSError:
            return False
        return max_size <= 0 or size <= max_size

    def should_include_file(self, path: str, root_path: str, options: WalkOptions) -> bool:
        """Decide whether a file passes the selection, size, binary and pattern filters."""
        if options.multiple_files:
            return _matches_any_path(path, options.multiple_files)
        if options.selected_files:
            return _matches_any_path(path, options.selected_files)
        return self._passes_filters(path, root_path, options)

    def _passes_filters(self, path: str, root_path: str, options: WalkOptions) -> bool:
        if not self.filter_by_size(path, options.max_file_size):
            return False
        if options.exclude_binary and _looks_binary(path):
            return False

        filename = os.path.basename(path)
        if options.include_patterns:
            matched = False
            for pattern in options.include_patterns:
                if _glob_match(pattern, filename):
                    matched = True
                    break
                if "/" in pattern and _glob_match(pattern, _to_slash(_relative(root_path, path))):
                    matched = True
                    break
            if not matched:
                return False

        for pattern in options.exclude_patterns:
            if _glob_match(pattern, filename):
                return False
            if "/" not in pattern:
                continue
            rel = _to_slash(_relative(root_path, path))
            if _glob_match(pattern, rel):
                return False
            if pattern.endswith("/"):
                dir_pattern = pattern[:-1]
                if rel.startswith(dir_pattern + "/"):
                    return False
                parts = rel.split("/")
                for position, part in enumerate(parts):
                    if _glob_match(dir_pattern, part) and (
                        position < len(parts) - 1 or rel == dir_pattern
                    ):
                        return False
        return True

    def _process_multiple_files(
        self,
        files: list[str],
        options: WalkOptions,
        progress_callback: ProgressCallback | None,
    ) -> ContextData:
        data = ContextData()
        seen_folders: set[str] = set()
        seen_files: set[str] = set()
        queue = list(files)
        total = len(queue)
        processed = 0

        while queue:
            abs_path = os.path.abspath(queue.pop(0))
            try:
                st = os.stat(abs_path)
            except OSError:
                continue

            if stat.S_ISDIR(st.st_mode):
                try:
                    entries = sorted(os.scandir(abs_path), key=lambda entry: entry.name)
                except OSError:
                    continue
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            continue
                    except OSError:
                        continue
                    queue.append(os.path.join(abs_path, entry.name))
                    total += 1
                continue

            if abs_path in seen_files:
                continue
            if not self._passes_filters(abs_path, os.path.dirname(abs_path), options):
                continue
            try:
                info = self.get_file_info(abs_path)
            except WalkError:
                continue

            data.files.append(info)
            data.file_count += 1
            data.total_size += info.size
            seen_files.add(abs_path)
            processed += 1

            dir_path = os.path.dirname(abs_path)
            if dir_path not in seen_folders:
                folder = self._summarise_folder(dir_path)
                if folder is not None:
                    data.folders.append(folder)
                    data.folder_count += 1
                    seen_folders.add(dir_path)

            if progress_callback is not None:
                progress_callback(processed, total, os.path.basename(abs_path))

        if progress_callback is not None:
            progress_callback(processed, total, "done")
        return data

    @staticmethod
    def _summarise_folder(dir_path: str) -> FolderInfo | None:
        try:
            st = os.stat(dir_path)
        except OSError:
            return None
        if not stat.S_ISDIR(st.st_mode):
            return None
        try:
            count = sum(1 for entry in os.scandir(dir_path) if not entry.is_dir(follow_symlinks=False))
        except OSError:
            count = 0
        name = os.path.basename(dir_path)
        return FolderInfo(
            name=name,
            path=dir_path,
            files=[],
            mod_time=_mod_time(st),
            is_hidden=name.startswith("."),
            size=0,
            count=count,
        )