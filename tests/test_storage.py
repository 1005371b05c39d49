"""Tests for the command-line backed storage clients."""

import subprocess

import pytest
from unittest.mock import patch

from kanri.archive.storage import B2Client, RcloneClient, join_remote
from kanri.core.errors import CommandError, ConfigError, StorageError


def _completed(stdout=""):
    return subprocess.CompletedProcess([], 0, stdout=stdout, stderr="")


def test_join_remote():
    assert join_remote("dest/", "/a/b.bin") == "dest/a/b.bin"
    assert join_remote("", "a.bin") == "a.bin"


def test_b2_requires_credentials():
    with pytest.raises(ConfigError):
        B2Client("", "key")


@patch("kanri.archive.storage.run_command")
def test_b2_upload_and_list(mock_run):
    mock_run.side_effect = [_completed("file-id\n"), _completed("dest/a.bin\ndest/sub/b.bin\n\n")]
    client = B2Client("id", "key")

    assert client.upload_file("bucket", "/tmp/a.bin", "dest/a.bin") == "file-id"
    assert client.list_files("bucket", "dest/") == ["dest/a.bin", "dest/sub/b.bin"]

    assert mock_run.call_args_list[0].args[0] == [
        "b2", "upload-file", "--noProgress", "bucket", "/tmp/a.bin", "dest/a.bin"
    ]
    assert mock_run.call_args_list[1].args[0] == ["b2", "ls", "--recursive", "b2://bucket/dest"]


@patch("kanri.archive.storage.run_command")
def test_b2_failure_becomes_storage_error(mock_run):
    mock_run.side_effect = CommandError(["b2", "authorize-account"], 1, "bad key")
    client = B2Client("id", "key")

    with pytest.raises(StorageError, match="bad key"):
        client.authorize()


@patch("kanri.archive.storage.run_command")
def test_b2_upload_directory_walks_files(mock_run, tmp_path):
    mock_run.return_value = _completed("id\n")
    (tmp_path / "sub").mkdir()
    (tmp_path / "a.bin").write_bytes(b"a")
    (tmp_path / "sub" / "b.bin").write_bytes(b"b")

    B2Client("id", "key").upload_directory("bucket", tmp_path, "dest/models")

    remotes = [call.args[0][-1] for call in mock_run.call_args_list]
    assert remotes == ["dest/models/a.bin", "dest/models/sub/b.bin"]


def test_rclone_requires_remote():
    with pytest.raises(ConfigError):
        RcloneClient("")


@patch("kanri.archive.storage.run_command")
def test_rclone_commands(mock_run, tmp_path):
    mock_run.return_value = _completed("a.bin\nsub/b.bin\n")
    client = RcloneClient("b2:bucket")

    assert client.list_files("ignored", "dest") == ["dest/a.bin", "dest/sub/b.bin"]
    client.download_file_by_name("ignored", "dest/a.bin", tmp_path / "out" / "a.bin")

    assert mock_run.call_args_list[0].args[0] == [
        "rclone", "lsf", "b2:bucket:dest", "--recursive", "--files-only"
    ]
    assert mock_run.call_args_list[1].args[0] == [
        "rclone", "copyto", "b2:bucket:dest/a.bin", str(tmp_path / "out" / "a.bin")
    ]
    assert (tmp_path / "out").is_dir()
