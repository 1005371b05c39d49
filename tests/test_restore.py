"""Tests for restore resolution and downloads."""

import hashlib

import pytest

from kanri.archive.catalog import ArchiveIndex
from kanri.archive.models import Archive, ArchiveItem
from kanri.archive.restore import (
    RestoreMode,
    RestorePair,
    resolve_restore_set,
    restore_archive_by_id,
    restore_files,
)
from kanri.core.errors import ArchiveNotFound, RestoreError

FILES = [
    "a/20240101_000000/x.bin",
    "a/20240202_000000/x.bin",
    "a/20240101_000000/only-old.bin",
    "a/unversioned.bin",
]


def _sha(data):
    return hashlib.sha256(data).hexdigest()


def test_latest_picks_newest_generation():
    pairs = resolve_restore_set(FILES[:2], "", RestoreMode.LATEST)
    assert pairs == [RestorePair("a/20240202_000000/x.bin", "a/x.bin")]


def test_latest_strips_prefix():
    pairs = resolve_restore_set(FILES[:2], "a", RestoreMode.LATEST)
    assert pairs == [RestorePair("a/20240202_000000/x.bin", "x.bin")]


def test_prefix_only_stripped_at_segment_boundary():
    files = ["destination2/20240101_000000/x.bin", "dest/20240101_000000/y.bin"]

    pairs = resolve_restore_set(files, "dest", RestoreMode.LATEST)

    assert pairs == [
        RestorePair("destination2/20240101_000000/x.bin", "destination2/x.bin"),
        RestorePair("dest/20240101_000000/y.bin", "y.bin"),
    ]


def test_latest_keeps_files_only_in_older_generations():
    pairs = resolve_restore_set(FILES, "a", RestoreMode.LATEST)
    assert pairs == [
        RestorePair("a/20240101_000000/only-old.bin", "only-old.bin"),
        RestorePair("a/20240202_000000/x.bin", "x.bin"),
    ]


def test_version_filters_one_generation():
    pairs = resolve_restore_set(FILES, "a", RestoreMode.VERSION, version="20240101_000000")
    assert pairs == [
        RestorePair("a/20240101_000000/only-old.bin", "only-old.bin"),
        RestorePair("a/20240101_000000/x.bin", "x.bin"),
    ]


def test_version_requires_version():
    with pytest.raises(RestoreError):
        resolve_restore_set(FILES, "a", RestoreMode.VERSION)


def test_raw_keeps_generation_segments():
    pairs = resolve_restore_set(FILES[:2], "a", RestoreMode.RAW)
    assert [pair.local_path for pair in pairs] == ["20240101_000000/x.bin", "20240202_000000/x.bin"]


def test_restore_files_verifies_digests(tmp_path, fake_client):
    fake_client.objects = {"a/20240101_000000/x.bin": b"good", "a/20240101_000000/y.bin": b"tampered"}
    pairs = resolve_restore_set(fake_client.objects, "a", RestoreMode.LATEST)
    digests = {
        "a/20240101_000000/x.bin": _sha(b"good"),
        "a/20240101_000000/y.bin": _sha(b"original"),
    }

    report = restore_files(fake_client, "bucket", pairs, tmp_path / "out", digests)

    assert (tmp_path / "out" / "x.bin").read_bytes() == b"good"
    # A mismatch is reported, not fatal, and the file is kept
    assert (tmp_path / "out" / "y.bin").read_bytes() == b"tampered"
    assert report.verified == [tmp_path / "out" / "x.bin"]
    assert report.mismatches == [tmp_path / "out" / "y.bin"]
    assert not report.ok


def test_restore_files_dry_run(tmp_path, fake_client):
    fake_client.objects = {"a/20240101_000000/x.bin": b"data"}
    pairs = resolve_restore_set(fake_client.objects, "a", RestoreMode.LATEST)

    report = restore_files(fake_client, "bucket", pairs, tmp_path / "out", dry_run=True)

    assert report.restored == []
    assert fake_client.downloads == []
    assert not (tmp_path / "out").exists()


def test_restore_archive_by_id(tmp_path, fake_client):
    fake_client.objects = {
        "dest/20240101_000000/models/a.bin": b"old",
        "dest/20240202_000000/models/a.bin": b"new",
    }
    archive = Archive("large-files", "dest/20240101_000000")
    archive.add_item(ArchiveItem("/data/models/a.bin", "dest/20240101_000000/models/a.bin", _sha(b"old"), 3, False))
    index = ArchiveIndex(tmp_path / "index.json", [archive])

    report = restore_archive_by_id(fake_client, "bucket", index, archive.id, tmp_path / "out")

    assert (tmp_path / "out" / "models" / "a.bin").read_bytes() == b"old"
    assert fake_client.downloads == ["dest/20240101_000000/models/a.bin"]
    assert report.ok
    assert len(report.verified) == 1


def test_restore_unknown_archive(tmp_path, fake_client):
    index = ArchiveIndex(tmp_path / "index.json")
    with pytest.raises(ArchiveNotFound):
        restore_archive_by_id(fake_client, "bucket", index, "missing", tmp_path)
