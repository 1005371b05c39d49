"""
Restore resolution.

Turns a flat listing of timestamp-versioned remote files into the set of
(remote file, local destination) pairs to download, then downloads them and
checks content hashes where the catalog recorded one.

Three modes are supported:
- LATEST: for every file, only its most recent generation, with the
  generation segment removed from the local path
- VERSION: only the files of one generation, generation segment removed
- RAW: every remote file as-is, so generations sit side by side on disk
"""

import enum
import logging
from collections import namedtuple
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from kanri.archive.catalog import ArchiveIndex
from kanri.archive.generation import VersionedPath
from kanri.archive.models import Archive
from kanri.archive.storage import StorageClient
from kanri.core.errors import ArchiveNotFound, RestoreError
from kanri.core.utils import sha256_file

logger = logging.getLogger("kanri.archive.restore")

RestorePair = namedtuple("RestorePair", ["remote_path", "local_path"])


class RestoreMode(enum.Enum):
    LATEST = "latest"
    VERSION = "version"
    RAW = "raw"


def strip_prefix(path: str, prefix: str) -> str:
    """Remove a leading prefix ending at a "/" boundary and any leading slashes."""
    prefix = prefix.rstrip("/")
    if prefix and (path == prefix or path.startswith(prefix + "/")):
        path = path[len(prefix):]
    return path.lstrip("/")


def resolve_restore_set(remote_files: Iterable[str], prefix: str, mode: RestoreMode,
                        version: Optional[str] = None) -> List[RestorePair]:
    """
    Compute which remote files to download and where to put them.

    Args:
        remote_files: Remote paths as listed by the storage backend
        prefix: The remote prefix that was listed; removed from local paths
        mode: Restore mode
        version: Generation token, required for RestoreMode.VERSION

    Returns:
        Pairs of (remote path, local path relative to the restore root),
        sorted by local path

    Raises:
        RestoreError: If VERSION mode is requested without a version
    """
    paths = [VersionedPath.parse(f) for f in remote_files]

    if mode is RestoreMode.LATEST:
        latest: Dict[str, VersionedPath] = {}
        for path in paths:
            if path.generation is None:
                logger.debug(f"Skipping {path.raw}: no generation segment")
                continue
            current = latest.get(path.normalized)
            # Greatest raw path in a group is the newest generation
            if current is None or path.raw > current.raw:
                latest[path.normalized] = path
        pairs = [RestorePair(p.raw, strip_prefix(p.normalized, prefix)) for p in latest.values()]

    elif mode is RestoreMode.VERSION:
        if not version:
            raise RestoreError("A version must be given to restore in version mode")
        marker = f"/{version}/"
        pairs = [RestorePair(p.raw, strip_prefix(p.normalized, prefix))
                 for p in paths if marker in p.raw]

    elif mode is RestoreMode.RAW:
        pairs = [RestorePair(p.raw, strip_prefix(p.raw, prefix)) for p in paths]

    else:
        raise RestoreError(f"Unknown restore mode: {mode}")

    pairs.sort(key=lambda pair: (pair.local_path, pair.remote_path))
    return pairs


class RestoreReport:
    """Outcome of a restore run."""

    def __init__(self):
        self.restored: List[Path] = []
        self.verified: List[Path] = []
        self.mismatches: List[Path] = []

    @property
    def ok(self) -> bool:
        return not self.mismatches


def digests_for_archive(archive: Archive) -> Dict[str, str]:
    """Map remote path to recorded SHA-256 for every file item of an archive."""
    return {item.remote_path: item.sha256 for item in archive.items if not item.is_dir and item.sha256}


def digests_for_index(index: ArchiveIndex) -> Dict[str, str]:
    """Map remote path to recorded SHA-256 across the whole catalog."""
    digests = {}
    for archive in index.archives:
        digests.update(digests_for_archive(archive))
    return digests


def restore_files(client: StorageClient, bucket: str, pairs: Iterable[RestorePair], dest_root,
                  digests: Optional[Dict[str, str]] = None, dry_run: bool = False) -> RestoreReport:
    """
    Download resolved pairs into a local directory.

    A hash mismatch is logged and reported but the file is kept, so one bad
    object does not stop the rest of the restore. Download failures propagate.

    Args:
        client: Storage backend
        bucket: Bucket name
        pairs: Output of resolve_restore_set()
        dest_root: Local directory to restore into
        digests: Optional remote path -> expected SHA-256 map
        dry_run: Only log what would be downloaded

    Returns:
        A RestoreReport
    """
    dest_root = Path(dest_root)
    digests = digests or {}
    report = RestoreReport()

    for pair in pairs:
        local_path = dest_root / pair.local_path
        if dry_run:
            logger.info(f"Would download {pair.remote_path} -> {local_path}")
            continue

        local_path.parent.mkdir(parents=True, exist_ok=True)
        client.download_file_by_name(bucket, pair.remote_path, local_path)
        report.restored.append(local_path)

        expected = digests.get(pair.remote_path)
        if not expected:
            continue

        actual = sha256_file(local_path)
        if actual == expected:
            report.verified.append(local_path)
        else:
            logger.warning(f"Checksum mismatch for {local_path}: expected {expected}, got {actual}")
            report.mismatches.append(local_path)

    logger.info(f"Restored {len(report.restored)} files "
                f"({len(report.verified)} verified, {len(report.mismatches)} mismatched)")
    return report


def restore_archive_by_id(client: StorageClient, bucket: str, index: ArchiveIndex, archive_id: str,
                          dest_root, dry_run: bool = False) -> RestoreReport:
    """
    Restore exactly the files of one catalogued archive, verifying hashes.

    Raises:
        ArchiveNotFound: If the id is not in the catalog
    """
    archive = index.find_by_id(archive_id)
    if archive is None:
        raise ArchiveNotFound(archive_id)

    destination = VersionedPath.parse(archive.destination + "/")
    remote_files = client.list_files(bucket, archive.destination)

    if destination.generation is None:
        pairs = resolve_restore_set(remote_files, archive.destination, RestoreMode.RAW)
    else:
        base = destination.normalized.rstrip("/")
        pairs = resolve_restore_set(remote_files, base, RestoreMode.VERSION,
                                    version=destination.generation.token)

    logger.info(f"Restoring archive {archive.id} ({len(pairs)} files) into {dest_root}")
    return restore_files(client, bucket, pairs, dest_root, digests_for_archive(archive), dry_run)
