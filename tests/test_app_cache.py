"""Tests for the application cache cleaner."""

from unittest.mock import patch

from kanri.cleaners.app_cache import AppCacheCleaner, is_safe_cache, scan_user_caches


def _cache(root, name, size):
    path = root / name
    path.mkdir(parents=True)
    (path / "blob").write_bytes(b"x" * size)
    return path


def test_is_safe_cache():
    assert is_safe_cache("Homebrew")
    assert is_safe_cache("com.spotify.client")
    assert not is_safe_cache("com.example.UnknownApp")


def test_scan_labels_and_threshold(tmp_path):
    _cache(tmp_path, "Homebrew", 300)
    _cache(tmp_path, "com.example.UnknownApp", 200)
    _cache(tmp_path, "pip", 10)
    (tmp_path / "stray-file").write_bytes(b"x" * 1000)

    items = scan_user_caches(100, tmp_path)

    assert [item.name for item in items] == ["Homebrew", "com.example.UnknownApp"]
    assert items[0].is_safe is True
    assert items[0].safety_label == "safe"
    assert items[1].is_safe is False
    assert items[1].safety_label == "unverified"


def test_missing_cache_dir(tmp_path):
    assert scan_user_caches(0, tmp_path / "missing") == []


def test_safe_only(tmp_path):
    _cache(tmp_path, "Homebrew", 300)
    _cache(tmp_path, "com.example.UnknownApp", 200)

    items = AppCacheCleaner(min_size=1, cache_dir=tmp_path, safe_only=True).scan()

    assert [item.name for item in items] == ["Homebrew"]


def test_default_cache_dir_from_platformdirs(tmp_path):
    _cache(tmp_path, "yarn", 50)

    with patch("kanri.cleaners.app_cache.platformdirs.user_cache_dir", return_value=str(tmp_path)):
        items = AppCacheCleaner(min_size=1).scan()

    assert [item.name for item in items] == ["yarn"]
