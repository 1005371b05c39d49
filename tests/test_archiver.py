"""Tests for upload-then-delete archiving."""

import pytest
from unittest.mock import patch

from kanri.archive.archiver import archive_large_files
from kanri.archive.catalog import ArchiveIndex
from kanri.archive.generation import Generation
from kanri.archive.models import Archive
from kanri.core.errors import StorageError

GENERATION = Generation("20240101_120000")


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "data"
    (root / "models").mkdir(parents=True)
    (root / "models" / "a.ckpt").write_bytes(b"a" * 100)
    (root / "models" / "b.ckpt").write_bytes(b"b" * 50)
    (root / "big.iso").write_bytes(b"i" * 200)
    (root / "small.txt").write_bytes(b"s")
    return root


def test_archive_uploads_and_records(tree, tmp_path, fake_client):
    index = ArchiveIndex(tmp_path / "index.json")

    archive = archive_large_files(fake_client, "bucket", tree, "backup", min_size=100,
                                  index=index, generation=GENERATION)

    assert fake_client.authorized == 1
    assert sorted(fake_client.objects) == [
        "backup/20240101_120000/big.iso",
        "backup/20240101_120000/models/a.ckpt",
        "backup/20240101_120000/models/b.ckpt",
    ]
    assert archive.destination == "backup/20240101_120000"
    assert archive.total_size == 450
    by_remote = {item.remote_path: item for item in archive.items}
    assert by_remote["backup/20240101_120000/models"].is_dir is True
    assert by_remote["backup/20240101_120000/models"].sha256 == ""
    assert by_remote["backup/20240101_120000/big.iso"].sha256 != ""

    reloaded = ArchiveIndex.load(tmp_path / "index.json")
    assert [a.id for a in reloaded.archives] == [archive.id]
    assert (tree / "big.iso").exists()


def test_dry_run_uploads_nothing(tree, tmp_path, fake_client):
    index = ArchiveIndex(tmp_path / "index.json")

    planned = archive_large_files(fake_client, "bucket", tree, "backup", min_size=100,
                                  include_dirs=False, dry_run=True, index=index,
                                  generation=GENERATION)

    assert [(item.path, remote) for item, remote in planned] == [
        (tree / "big.iso", "backup/20240101_120000/big.iso"),
        (tree / "models" / "a.ckpt", "backup/20240101_120000/models/a.ckpt"),
    ]
    assert fake_client.objects == {}
    assert not (tmp_path / "index.json").exists()


def test_delete_after_removes_locals(tree, tmp_path, fake_client):
    index = ArchiveIndex(tmp_path / "index.json")

    archive_large_files(fake_client, "bucket", tree, "backup", min_size=100,
                        extensions=[".iso"], include_dirs=False, delete_after=True,
                        index=index, generation=GENERATION)

    assert not (tree / "big.iso").exists()
    assert (tree / "models" / "a.ckpt").exists()
    assert fake_client.objects["backup/20240101_120000/big.iso"] == b"i" * 200


def test_failed_upload_deletes_nothing(tree, tmp_path, fake_client):
    index = ArchiveIndex(tmp_path / "index.json")

    with patch.object(fake_client, "upload_file", side_effect=StorageError("network down")):
        with pytest.raises(StorageError):
            archive_large_files(fake_client, "bucket", tree, "backup", min_size=100,
                                include_dirs=False, delete_after=True, index=index)

    assert (tree / "big.iso").exists()
    assert len(ArchiveIndex.load(tmp_path / "index.json")) == 0


def test_nothing_to_archive(tree, tmp_path, fake_client):
    index = ArchiveIndex(tmp_path / "index.json")
    assert archive_large_files(fake_client, "bucket", tree, "backup", min_size=10_000, index=index) is None
    assert fake_client.authorized == 0


def test_archive_keeps_entries_written_by_another_process(tree, tmp_path, fake_client):
    path = tmp_path / "index.json"
    stale = ArchiveIndex(path)
    other = Archive("large-files", "elsewhere/20230101_000000")
    ArchiveIndex(path, [other]).save()

    archive = archive_large_files(fake_client, "bucket", tree, "backup", min_size=100,
                                  include_dirs=False, index=stale, generation=GENERATION)

    reloaded = ArchiveIndex.load(path)
    assert [a.id for a in reloaded.archives] == [other.id, archive.id]
