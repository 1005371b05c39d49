"""Archive records: what was uploaded, where, and with which content hash."""

import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from kanri.core.errors import ArchiveError
from kanri.core.utils import calculate_dir_size, sha256_file


class ArchiveItem:
    """
    One uploaded file or directory.

    ``sha256`` is empty exactly when ``is_dir`` is true: directories are not
    hashed as a unit.
    """

    def __init__(self, local_path, remote_path: str, sha256: str, size: int, is_dir: bool):
        self.local_path = Path(local_path)
        self.remote_path = remote_path
        self.sha256 = sha256
        self.size = size
        self.is_dir = is_dir

    @classmethod
    def from_file(cls, local_path, remote_path: str) -> "ArchiveItem":
        """
        Build an item by inspecting a local file or directory.

        Args:
            local_path: The local file or directory that was uploaded
            remote_path: Where it was uploaded to

        Returns:
            The item with its size and (for files) SHA-256 digest

        Raises:
            ArchiveError: If the path cannot be read
        """
        local_path = Path(local_path)
        try:
            st = os.stat(local_path)
            if local_path.is_dir():
                return cls(local_path, remote_path, "", calculate_dir_size(local_path), True)
            return cls(local_path, remote_path, sha256_file(local_path), st.st_size, False)
        except OSError as e:
            raise ArchiveError(f"Failed to read {local_path}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_path": str(self.local_path),
            "remote_path": self.remote_path,
            "sha256": self.sha256,
            "size": self.size,
            "is_dir": self.is_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchiveItem":
        # Catalogs written by older releases call the remote path "b2_path"
        remote_path = data.get("remote_path", data.get("b2_path"))
        if remote_path is None:
            raise KeyError("remote_path")
        return cls(
            data["local_path"],
            remote_path,
            data.get("sha256", ""),
            int(data["size"]),
            bool(data["is_dir"]),
        )

    def __repr__(self) -> str:
        return f"ArchiveItem(local_path={str(self.local_path)!r}, remote_path={self.remote_path!r})"


class Archive:
    """
    One archive run: a set of items uploaded under a single destination.

    ``total_size`` is only ever changed by add_item(), so it always equals
    the sum of the item sizes.
    """

    def __init__(self, cleaner: str, destination: str, archive_id: Optional[str] = None,
                 created_at: Optional[datetime] = None):
        self.id = archive_id or str(uuid.uuid4())
        self.created_at = created_at or datetime.now(timezone.utc)
        self.cleaner = cleaner
        self.destination = destination
        self.items: List[ArchiveItem] = []
        self.total_size = 0

    def add_item(self, item: ArchiveItem) -> None:
        """Append an item and account for its size."""
        self.total_size += item.size
        self.items.append(item)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "cleaner": self.cleaner,
            "destination": self.destination,
            "items": [item.to_dict() for item in self.items],
            "total_size": self.total_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Archive":
        created_at = datetime.fromisoformat(data["created_at"].replace("Z", "+00:00"))
        archive = cls(data["cleaner"], data["destination"], archive_id=data["id"],
                      created_at=created_at)
        for item in data.get("items", []):
            archive.add_item(ArchiveItem.from_dict(item))
        return archive

    def __repr__(self) -> str:
        return f"Archive(id={self.id!r}, destination={self.destination!r}, items={len(self.items)})"
