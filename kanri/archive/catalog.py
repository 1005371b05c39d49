"""
Archive catalog persistence.

The catalog is a single JSON document under the user's home directory. It
is loaded whole, mutated in memory and written back whole. Writes go to a
temporary file in the same directory which then replaces the catalog, so a
crash mid-write never leaves a truncated catalog behind.
"""

import contextlib
import fcntl
import json
import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional

from kanri.archive.models import Archive
from kanri.core.errors import CatalogError

logger = logging.getLogger("kanri.archive.catalog")


def default_index_path() -> Path:
    """Get the catalog location, ~/.kanri/archive_index.json."""
    return Path.home() / ".kanri" / "archive_index.json"


class ArchiveIndex:
    """
    The ordered list of every archive ever made.

    Instances are repositories: construct one (optionally with an explicit
    path), call load(), mutate, then save(). Concurrent writers are not
    supported unless they go through locked().
    """

    def __init__(self, path=None, archives: Optional[List[Archive]] = None):
        self.path = Path(path) if path else default_index_path()
        self.archives: List[Archive] = list(archives) if archives else []

    @classmethod
    def load(cls, path=None) -> "ArchiveIndex":
        """
        Read the catalog, or return an empty one if the file does not exist.

        Args:
            path: Catalog location (defaults to default_index_path())

        Returns:
            The loaded catalog

        Raises:
            CatalogError: If the file cannot be read or is malformed
        """
        index = cls(path)
        index.reload()
        return index

    def reload(self) -> None:
        """Replace the in-memory archives with the contents of the file."""
        if not self.path.exists():
            logger.debug(f"No archive catalog at {self.path}, starting empty")
            self.archives = []
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise CatalogError(f"Failed to read archive index {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise CatalogError(f"Failed to parse archive index {self.path}: {e}") from e

        records = data.get("archives") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise CatalogError(f"Failed to parse archive index {self.path}: expected a list of archives")

        try:
            self.archives = [Archive.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CatalogError(f"Failed to parse archive index {self.path}: invalid record ({e})") from e

        logger.debug(f"Loaded {len(self.archives)} archives from {self.path}")

    def save(self) -> None:
        """
        Write the whole catalog atomically.

        Raises:
            CatalogError: If the catalog cannot be written
        """
        document = {"archives": [archive.to_dict() for archive in self.archives]}
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise CatalogError(f"Failed to write archive index {self.path}: {e}") from e

        logger.debug(f"Saved {len(self.archives)} archives to {self.path}")

    @contextlib.contextmanager
    def locked(self) -> Iterator["ArchiveIndex"]:
        """
        Hold an exclusive lock on the catalog for a load-mutate-save cycle.

        The catalog is reloaded once the lock is held and saved when the
        block exits without an exception.
        """
        lock_path = self.path.with_name(f"{self.path.name}.lock")
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            lock_file = open(lock_path, "w")
        except OSError as e:
            raise CatalogError(f"Failed to open catalog lock {lock_path}: {e}") from e

        with lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                self.reload()
                yield self
                self.save()
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def add_archive(self, archive: Archive) -> None:
        self.archives.append(archive)

    def find_by_id(self, archive_id: str) -> Optional[Archive]:
        for archive in self.archives:
            if archive.id == archive_id:
                return archive
        return None

    def remove_archive(self, archive_id: str) -> bool:
        """Remove the first archive with the given id. Returns whether one was found."""
        for i, archive in enumerate(self.archives):
            if archive.id == archive_id:
                del self.archives[i]
                return True
        return False

    def __len__(self) -> int:
        return len(self.archives)
