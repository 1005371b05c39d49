"""Archive large files to remote storage, record them, then optionally delete them."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from kanri.archive.catalog import ArchiveIndex
from kanri.archive.generation import Generation, versioned_destination
from kanri.archive.models import Archive, ArchiveItem
from kanri.archive.storage import StorageClient, join_remote
from kanri.cleaners.large_files import LargeItem, find_large_items
from kanri.core.errors import CleanError
from kanri.core.utils import remove_path

logger = logging.getLogger("kanri.archive.archiver")

ARCHIVE_CLEANER_NAME = "large-files"


def plan_uploads(items: Sequence[LargeItem], search_path, destination: str) -> List[Tuple[LargeItem, str]]:
    """
    Pair each item with its remote path, keeping its path relative to the search root.

    Args:
        items: Items found under search_path
        search_path: Root the relative paths are computed from
        destination: Versioned remote destination

    Returns:
        (item, remote_path) pairs
    """
    search_path = Path(search_path)
    planned = []
    for item in items:
        try:
            relative = item.path.relative_to(search_path).as_posix()
        except ValueError:
            relative = item.path.name
        planned.append((item, join_remote(destination, relative)))
    return planned


def archive_large_files(client: StorageClient, bucket: str, search_path, destination: str,
                        min_size: int, extensions: Optional[Sequence[str]] = None,
                        include_files: bool = True, include_dirs: bool = True,
                        delete_after: bool = False, dry_run: bool = False,
                        index: Optional[ArchiveIndex] = None,
                        generation: Optional[Generation] = None):
    """
    Upload large files and directories and record them in the catalog.

    Uploads go to ``<destination>/<YYYYMMDD_HHMMSS>/<path relative to search_path>``.
    Local copies are only deleted after every upload succeeded and the
    catalog was saved.

    Args:
        client: Storage backend
        bucket: Bucket name
        search_path: Directory to search for large items
        destination: Remote prefix for this family of archives
        min_size: Minimum size in bytes
        extensions: Optional extension allowlist for files
        include_files: Archive files
        include_dirs: Archive directories
        delete_after: Delete local copies after archiving
        dry_run: Only compute and return the upload plan
        index: Catalog to record the archive in (the default location if None).
            Reloaded under its lock before the archive is appended.
        generation: Generation to archive under (defaults to now)

    Returns:
        The new Archive, or the list of (item, remote_path) pairs in dry-run
        mode, or None if nothing matched
    """
    items = find_large_items(search_path, min_size, extensions, include_dirs, include_files)
    if not items:
        logger.info(f"No items to archive under {search_path}")
        return None

    generation = generation or Generation.now()
    versioned = versioned_destination(destination, generation)
    planned = plan_uploads(items, search_path, versioned)

    if dry_run:
        for item, remote_path in planned:
            logger.info(f"Would upload {item.path} -> {remote_path}")
        return planned

    client.authorize()

    archive = Archive(ARCHIVE_CLEANER_NAME, versioned)
    for item, remote_path in planned:
        if item.is_dir:
            client.upload_directory(bucket, item.path, remote_path)
        else:
            client.upload_file(bucket, item.path, remote_path)
        archive.add_item(ArchiveItem.from_file(item.path, remote_path))
        logger.info(f"Archived {item.path} -> {remote_path}")

    if index is None:
        index = ArchiveIndex()
    with index.locked() as catalog:
        catalog.add_archive(archive)
    logger.info(f"Recorded archive {archive.id} ({len(archive.items)} items, {archive.total_size} bytes)")

    if delete_after:
        for item, _remote_path in planned:
            if not os.path.lexists(item.path):
                continue
            try:
                remove_path(item.path)
            except OSError as e:
                raise CleanError(f"Failed to remove {item.path}: {e}") from e
            logger.info(f"Deleted local copy {item.path}")

    return archive
