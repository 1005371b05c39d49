"""Configuration file loading and storage backend selection."""

import logging
import os
from pathlib import Path
from typing import Literal, Optional, Tuple

import toml
from pydantic import BaseModel, ValidationError

from kanri.archive.storage import B2Client, RcloneClient, StorageClient
from kanri.core.errors import ConfigError

logger = logging.getLogger("kanri.config")

KEY_ID_ENV = "B2_APPLICATION_KEY_ID"
KEY_ENV = "B2_APPLICATION_KEY"


class B2Config(BaseModel):
    bucket: str
    application_key_id: Optional[str] = None
    application_key: Optional[str] = None


class StorageConfig(BaseModel):
    backend: Literal["b2", "rclone"] = "b2"
    rclone_remote: Optional[str] = None


class Config(BaseModel):
    b2: Optional[B2Config] = None
    storage: Optional[StorageConfig] = None

    def b2_credentials(self) -> Tuple[str, str]:
        """
        Resolve B2 credentials, preferring the environment over the file.

        Returns:
            (application key id, application key)

        Raises:
            ConfigError: If either value is missing from both sources
        """
        key_id = os.environ.get(KEY_ID_ENV) or (self.b2.application_key_id if self.b2 else None)
        if not key_id:
            raise ConfigError(f"{KEY_ID_ENV} not found in environment or config")

        key = os.environ.get(KEY_ENV) or (self.b2.application_key if self.b2 else None)
        if not key:
            raise ConfigError(f"{KEY_ENV} not found in environment or config")

        return key_id, key

    def b2_bucket(self) -> str:
        if self.b2 is None or not self.b2.bucket:
            raise ConfigError("B2 bucket not configured")
        return self.b2.bucket

    def storage_backend(self) -> str:
        return self.storage.backend if self.storage else "b2"

    def storage_bucket(self) -> str:
        """Bucket to pass to the storage client; rclone remotes already name theirs."""
        if self.storage_backend() == "rclone":
            return self.b2.bucket if self.b2 else ""
        return self.b2_bucket()

    def create_storage_client(self) -> StorageClient:
        """
        Build the storage client for the configured backend.

        Raises:
            ConfigError: If the selected backend is not fully configured
        """
        backend = self.storage_backend()
        if backend == "rclone":
            remote = self.storage.rclone_remote if self.storage else None
            if not remote:
                raise ConfigError("Rclone remote not configured")
            logger.debug(f"Using rclone remote {remote}")
            return RcloneClient(remote)

        key_id, key = self.b2_credentials()
        logger.debug("Using B2 backend")
        return B2Client(key_id, key)


def default_config_path() -> Path:
    """Get the configuration file location, ~/.kanri/config.toml."""
    return Path.home() / ".kanri" / "config.toml"


def load_config(path=None) -> Config:
    """
    Load the configuration file.

    Args:
        path: Config file location (defaults to default_config_path())

    Returns:
        The parsed configuration, or an empty one if the file does not exist

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    path = Path(path) if path else default_config_path()
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return Config()

    try:
        data = toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def save_config(config: Config, path=None) -> Path:
    """
    Write the configuration file, creating its directory if needed.

    Returns:
        The path written to
    """
    path = Path(path) if path else default_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            toml.dump(config.model_dump(exclude_none=True), f)
    except OSError as e:
        raise ConfigError(f"Failed to write config file {path}: {e}") from e

    logger.info(f"Saved configuration to {path}")
    return path
