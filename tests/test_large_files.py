"""Tests for the large files scanner."""

import pytest

from kanri.cleaners.large_files import (
    GIB,
    LargeFilesCleaner,
    find_large_items,
    parse_extensions,
    resolve_include_flags,
)


def _sparse(path, size):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


def test_threshold_and_extension_filter(tmp_path):
    big = _sparse(tmp_path / "model.ckpt", 3 * GIB)
    _sparse(tmp_path / "small.ckpt", GIB // 2)
    _sparse(tmp_path / "big.iso", 2 * GIB)

    items = find_large_items(tmp_path, GIB, extensions=[".ckpt"], include_dirs=False)

    assert [item.path for item in items] == [big]
    assert items[0].size == 3 * GIB
    assert items[0].is_dir is False


def test_sorted_largest_first(tmp_path):
    _sparse(tmp_path / "one.bin", GIB)
    _sparse(tmp_path / "three.bin", 3 * GIB)

    items = find_large_items(tmp_path, GIB, include_dirs=False)

    assert [item.path.name for item in items] == ["three.bin", "one.bin"]


def test_root_never_reported(tmp_path):
    _sparse(tmp_path / "data" / "blob.bin", 2 * GIB)

    items = find_large_items(tmp_path, GIB, include_files=False)

    assert [item.path for item in items] == [tmp_path / "data"]
    assert items[0].is_dir is True


def test_excluded_directories_skipped(tmp_path):
    _sparse(tmp_path / "node_modules" / "huge.bin", 2 * GIB)
    _sparse(tmp_path / ".git" / "pack.bin", 2 * GIB)

    assert find_large_items(tmp_path, GIB) == []


def test_resolve_include_flags():
    assert resolve_include_flags(False, False) == (True, True)
    assert resolve_include_flags(True, False) == (True, False)
    assert resolve_include_flags(False, True) == (False, True)
    with pytest.raises(ValueError):
        resolve_include_flags(True, True)


def test_parse_extensions():
    assert parse_extensions(None) is None
    assert parse_extensions(".ckpt, bin,") == [".ckpt", "bin"]


def test_cleaner_scan_names(tmp_path):
    _sparse(tmp_path / "video.mov", GIB)

    items = LargeFilesCleaner(tmp_path, include_dirs=False).scan()

    assert [item.name for item in items] == [f"{tmp_path / 'video.mov'} (file)"]
