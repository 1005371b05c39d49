"""Shared fixtures for Kanri tests."""

from pathlib import Path

import pytest

from kanri.archive.storage import StorageClient


class FakeStorageClient(StorageClient):
    """In-memory object store keyed by remote path."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.authorized = 0
        self.downloads = []

    def authorize(self):
        self.authorized += 1

    def upload_file(self, bucket, local_path, remote_path):
        self.objects[remote_path] = Path(local_path).read_bytes()
        return remote_path

    def download_file_by_name(self, bucket, remote_path, local_path):
        self.downloads.append(remote_path)
        Path(local_path).write_bytes(self.objects[remote_path])

    def list_files(self, bucket, prefix):
        return sorted(name for name in self.objects if name.startswith(prefix))


@pytest.fixture
def fake_client():
    return FakeStorageClient()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the home directory (config and catalog location) at a temp dir."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.delenv("B2_APPLICATION_KEY_ID", raising=False)
    monkeypatch.delenv("B2_APPLICATION_KEY", raising=False)
    return home_dir
