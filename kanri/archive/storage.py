"""
Remote storage capability and its command-line backed implementations.

Archiving and restoring only depend on the StorageClient interface. The
B2 and rclone clients drive the ``b2`` and ``rclone`` command-line tools.
"""

import abc
import logging
import os
from pathlib import Path
from typing import List

from kanri.core.errors import CommandError, ConfigError, StorageError
from kanri.core.utils import is_command_available, run_command

logger = logging.getLogger("kanri.archive.storage")


def join_remote(prefix: str, relative: str) -> str:
    """Join a remote prefix and a relative path with a single slash."""
    relative = relative.replace(os.sep, "/").lstrip("/")
    if not prefix:
        return relative
    return f"{prefix.rstrip('/')}/{relative}"


class StorageClient(abc.ABC):
    """Interface to a remote object store."""

    @abc.abstractmethod
    def authorize(self) -> None:
        """
        Authenticate with the backend. Safe to call repeatedly.

        Raises:
            StorageError: If authorization fails
        """
        pass

    @abc.abstractmethod
    def upload_file(self, bucket: str, local_path, remote_path: str) -> str:
        """
        Upload one file.

        Returns:
            A backend-specific identifier for the uploaded object
        """
        pass

    def upload_directory(self, bucket: str, local_dir, remote_prefix: str) -> List[str]:
        """
        Upload every file under a directory to remote_prefix/<relative path>.

        Returns:
            Identifiers of the uploaded objects
        """
        local_dir = Path(local_dir)
        uploaded = []
        for dirpath, dirnames, filenames in os.walk(local_dir):
            dirnames.sort()
            for f in sorted(filenames):
                local_path = Path(dirpath) / f
                if not local_path.is_file():
                    continue
                relative = local_path.relative_to(local_dir).as_posix()
                uploaded.append(self.upload_file(bucket, local_path, join_remote(remote_prefix, relative)))
        return uploaded

    @abc.abstractmethod
    def download_file_by_name(self, bucket: str, remote_path: str, local_path) -> None:
        """Download one object to a local path."""
        pass

    @abc.abstractmethod
    def list_files(self, bucket: str, prefix: str) -> List[str]:
        """
        List object names under a prefix.

        Returns:
            Full remote paths of every file under the prefix
        """
        pass


class B2Client(StorageClient):
    """Backblaze B2 storage through the ``b2`` command-line tool."""

    def __init__(self, key_id: str, key: str):
        if not key_id or not key:
            raise ConfigError("B2 application key id and key are required")
        self.key_id = key_id
        self.key = key

    @staticmethod
    def is_installed() -> bool:
        return is_command_available(["b2", "version"])

    def _run(self, args: List[str], action: str) -> str:
        try:
            return run_command(["b2"] + args).stdout
        except CommandError as e:
            raise StorageError(f"B2 {action} failed: {e.stderr.strip() or e}") from e

    def authorize(self) -> None:
        logger.info("Authorizing B2 account")
        self._run(["authorize-account", self.key_id, self.key], "authorization")

    def upload_file(self, bucket: str, local_path, remote_path: str) -> str:
        logger.info(f"Uploading {local_path} -> b2://{bucket}/{remote_path}")
        output = self._run(["upload-file", "--noProgress", bucket, str(local_path), remote_path], "upload")
        return output.strip()

    def download_file_by_name(self, bucket: str, remote_path: str, local_path) -> None:
        logger.info(f"Downloading b2://{bucket}/{remote_path} -> {local_path}")
        self._run(["download-file-by-name", "--noProgress", bucket, remote_path, str(local_path)], "download")

    def list_files(self, bucket: str, prefix: str) -> List[str]:
        output = self._run(["ls", "--recursive", f"b2://{bucket}/{prefix.strip('/')}"], "listing")
        return [line.strip() for line in output.splitlines() if line.strip()]


class RcloneClient(StorageClient):
    """
    Storage through an ``rclone`` remote.

    The remote (e.g. "b2:my-bucket") already names the bucket, so the bucket
    argument of each operation is ignored.
    """

    def __init__(self, remote: str):
        if not remote:
            raise ConfigError("Rclone remote is empty")
        self.remote = remote

    def build_remote_path(self, path: str) -> str:
        return f"{self.remote}:{path}"

    def _run(self, args: List[str], action: str) -> str:
        try:
            return run_command(["rclone"] + args).stdout
        except CommandError as e:
            raise StorageError(f"rclone {action} failed: {e.stderr.strip() or e}") from e

    def authorize(self) -> None:
        # rclone is configured through its own config file; probe the remote instead
        logger.info(f"Checking access to rclone remote {self.remote}")
        self._run(["lsd", self.remote, "--max-depth", "1"], "access check")

    def upload_file(self, bucket: str, local_path, remote_path: str) -> str:
        remote_full = self.build_remote_path(remote_path)
        logger.info(f"Uploading {local_path} -> {remote_full}")
        self._run(["copyto", str(local_path), remote_full], "upload")
        return remote_full

    def upload_directory(self, bucket: str, local_dir, remote_prefix: str) -> List[str]:
        remote_full = self.build_remote_path(remote_prefix)
        logger.info(f"Uploading directory {local_dir} -> {remote_full}")
        self._run(["copy", str(local_dir), remote_full], "upload")
        # rclone copy does not report per-file identifiers
        return []

    def download_file_by_name(self, bucket: str, remote_path: str, local_path) -> None:
        remote_full = self.build_remote_path(remote_path)
        logger.info(f"Downloading {remote_full} -> {local_path}")
        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        self._run(["copyto", remote_full, str(local_path)], "download")

    def list_files(self, bucket: str, prefix: str) -> List[str]:
        output = self._run(["lsf", self.build_remote_path(prefix), "--recursive", "--files-only"], "listing")
        return [join_remote(prefix, line.strip()) for line in output.splitlines() if line.strip()]
