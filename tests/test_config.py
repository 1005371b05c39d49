"""Tests for configuration loading and backend selection."""

import pytest

from kanri.archive.storage import B2Client, RcloneClient
from kanri.config import B2Config, Config, StorageConfig, default_config_path, load_config, save_config
from kanri.core.errors import ConfigError


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "config.toml")
    assert config.b2 is None
    assert config.storage_backend() == "b2"


def test_default_path_under_home(home):
    assert default_config_path() == home / ".kanri" / "config.toml"


def test_load_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[b2]\nbucket = "archive"\napplication_key_id = "file-id"\napplication_key = "file-key"\n'
        '\n[storage]\nbackend = "rclone"\nrclone_remote = "b2:archive"\n'
    )

    config = load_config(path)

    assert config.b2_bucket() == "archive"
    assert config.storage_backend() == "rclone"
    assert config.storage.rclone_remote == "b2:archive"


@pytest.mark.parametrize("content", ["[b2\nbucket =", '[storage]\nbackend = "ftp"\n'])
def test_malformed_file_raises(tmp_path, content):
    path = tmp_path / "config.toml"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(path)


def test_save_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.toml"
    save_config(Config(b2=B2Config(bucket="archive")), path)

    config = load_config(path)

    assert config.b2.bucket == "archive"
    assert config.b2.application_key is None


def test_credentials_prefer_environment(home, monkeypatch):
    config = Config(b2=B2Config(bucket="b", application_key_id="file-id", application_key="file-key"))
    assert config.b2_credentials() == ("file-id", "file-key")

    monkeypatch.setenv("B2_APPLICATION_KEY_ID", "env-id")
    monkeypatch.setenv("B2_APPLICATION_KEY", "env-key")
    assert config.b2_credentials() == ("env-id", "env-key")


def test_missing_credentials(home):
    with pytest.raises(ConfigError):
        Config(b2=B2Config(bucket="b")).b2_credentials()


def test_missing_bucket():
    with pytest.raises(ConfigError):
        Config().b2_bucket()


def test_create_b2_client(home, monkeypatch):
    monkeypatch.setenv("B2_APPLICATION_KEY_ID", "env-id")
    monkeypatch.setenv("B2_APPLICATION_KEY", "env-key")

    client = Config().create_storage_client()

    assert isinstance(client, B2Client)
    assert client.key_id == "env-id"


def test_create_rclone_client():
    config = Config(storage=StorageConfig(backend="rclone", rclone_remote="b2:archive"))

    client = config.create_storage_client()

    assert isinstance(client, RcloneClient)
    assert client.remote == "b2:archive"
    assert config.storage_bucket() == ""


def test_rclone_without_remote():
    with pytest.raises(ConfigError):
        Config(storage=StorageConfig(backend="rclone")).create_storage_client()
