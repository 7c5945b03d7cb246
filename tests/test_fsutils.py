import os
from datetime import datetime, timedelta, timezone

import pytest

from codecontext import fsutils


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("test.go", ".go"),
        ("test.txt", ".txt"),
        ("test", ""),
        ("test.tar.gz", ".gz"),
        ("", ""),
        (".hidden", ""),
    ],
)
def test_get_file_extension(filename, expected):
    assert fsutils.get_file_extension(filename) == expected


@pytest.mark.parametrize(
    "filename, expected",
    [
        (".hidden", True),
        ("normal.txt", False),
        ("", False),
        ("..", True),
        (".git", True),
    ],
)
def test_is_hidden_file(filename, expected):
    assert fsutils.is_hidden_file(filename) is expected


def test_is_directory(tmp_path):
    file_path = tmp_path / "test_file"
    file_path.write_text("x")
    assert fsutils.is_directory(tmp_path) is True
    assert fsutils.is_directory(file_path) is False
    assert fsutils.is_directory(tmp_path / "nonexistent") is False


def test_get_file_size(tmp_path):
    data = b"Hello, World!"
    file_path = tmp_path / "test_file"
    file_path.write_bytes(data)
    assert fsutils.get_file_size(file_path) == len(data)


def test_get_file_size_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fsutils.get_file_size(tmp_path / "missing")


def test_get_file_mod_time_is_recent(tmp_path):
    file_path = tmp_path / "test_file"
    file_path.write_text("")
    mod_time = fsutils.get_file_mod_time(file_path)
    now = datetime.now(timezone.utc)
    assert now - timedelta(minutes=1) <= mod_time <= now + timedelta(seconds=2)


def test_create_directory(tmp_path):
    new_dir = tmp_path / "new_directory"
    fsutils.create_directory(new_dir)
    assert new_dir.is_dir()
    fsutils.create_directory(new_dir)
    assert new_dir.is_dir()


def test_create_directory_nested(tmp_path):
    nested = tmp_path / "a" / "b" / "c"
    fsutils.create_directory(nested)
    assert nested.is_dir()


def test_remove_directory(tmp_path):
    target = tmp_path / "test_remove"
    (target / "sub").mkdir(parents=True)
    (target / "sub" / "file.txt").write_text("x")
    fsutils.remove_directory(target)
    assert not target.exists()


def test_remove_directory_missing_path_is_ignored(tmp_path):
    missing = tmp_path / "nothing_here"
    fsutils.remove_directory(missing)
    assert not missing.exists()


def test_copy_file(tmp_path):
    src = tmp_path / "src_file"
    dst = tmp_path / "dst_file"
    src.write_bytes(b"Hello, Copy Test!")
    dst.write_bytes(b"old contents that are longer")
    fsutils.copy_file(src, dst)
    assert dst.read_bytes() == b"Hello, Copy Test!"
    assert src.read_bytes() == b"Hello, Copy Test!"


def test_move_file(tmp_path):
    src = tmp_path / "src_file"
    src.write_bytes(b"Hello, Move Test!")
    dest_dir = tmp_path / "move_test"
    dest_dir.mkdir()
    dst = dest_dir / "moved_file.txt"
    fsutils.move_file(src, dst)
    assert not src.exists()
    assert dst.read_bytes() == b"Hello, Move Test!"


def test_get_directory_size(tmp_path):
    for name, size in [("file1.txt", 100), ("file2.txt", 200), ("subdir/file3.txt", 150)]:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes(size))
    assert fsutils.get_directory_size(tmp_path) == 450


def test_get_directory_size_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fsutils.get_directory_size(tmp_path / "missing")


def test_get_directory_file_count(tmp_path):
    names = ["file1.txt", "file2.txt", "subdir/file3.txt", "subdir/nested/file4.txt"]
    for name in names:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("test")
    assert fsutils.get_directory_file_count(tmp_path) == len(names)


def test_symlink_helpers(tmp_path):
    target = tmp_path / "target.txt"
    target.write_text("x")
    link = tmp_path / "link"
    os.symlink("target.txt", link)
    assert fsutils.is_symlink(link) is True
    assert fsutils.is_symlink(target) is False
    assert fsutils.is_symlink(tmp_path / "missing") is False
    assert fsutils.get_symlink_target(link) == str(target)


def test_get_symlink_target_not_a_link(tmp_path):
    regular = tmp_path / "regular.txt"
    regular.write_text("x")
    with pytest.raises(OSError):
        fsutils.get_symlink_target(regular)