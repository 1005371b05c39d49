"""
Cleaner base class and interfaces.

This module defines the contract shared by every cleaner:
- scan() is a pure read that reports CleanableItem records with size and safety metadata
- clean_items() removes what a scan reported, in scan order
- Cleaner.clean() is a template method tying the two together
"""

import abc
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from kanri.core.errors import CleanError, CleanerError, ScanError
from kanri.core.utils import human_readable_size, remove_path

# Set up logger
logger = logging.getLogger("kanri.core")

__all__ = [
    "CleanableMetadata",
    "CleanableItem",
    "Cleaner",
    "CleanerError",
    "CleanError",
    "ScanError",
    "clean_items",
]

SAFE_LABEL = "safe"
UNVERIFIED_LABEL = "unverified"


class CleanableMetadata:
    """Optional safety information attached to a cleanable item."""

    def __init__(self, is_safe: Optional[bool] = None, safety_label: Optional[str] = None):
        self.is_safe = is_safe
        self.safety_label = safety_label

    def __repr__(self) -> str:
        return f"CleanableMetadata(is_safe={self.is_safe!r}, safety_label={self.safety_label!r})"


class CleanableItem:
    """
    A single reclaimable artifact reported by a scan.

    Items are produced fresh on every scan and never persisted. ``path`` is
    what gets displayed; ``targets`` are the paths actually removed, which is
    just ``[path]`` unless one project owns several artifact directories.
    """

    def __init__(self, name: str, path, size: int,
                 metadata: Optional[CleanableMetadata] = None,
                 targets: Optional[Sequence] = None):
        self.name = name
        self.path = Path(path)
        self.size = size
        self.metadata = metadata or CleanableMetadata()
        self.targets = [Path(t) for t in targets] if targets else [self.path]

    @property
    def is_safe(self) -> bool:
        # Unknown counts as safe so ordinary cleanup is not blocked
        if self.metadata.is_safe is None:
            return True
        return self.metadata.is_safe

    @property
    def safety_label(self) -> Optional[str]:
        return self.metadata.safety_label

    def formatted_size(self) -> str:
        """Get the size in a human-readable format."""
        return human_readable_size(self.size)

    def __repr__(self) -> str:
        return f"CleanableItem(name={self.name!r}, path={str(self.path)!r}, size={self.size})"


def clean_items(items: Sequence[CleanableItem]) -> List[str]:
    """
    Remove every item whose path still exists.

    The first removal failure aborts the remaining batch; callers that want
    to tolerate partial failure must loop themselves.

    Args:
        items: Items as returned by a scan

    Returns:
        Names of the items that were removed, in order

    Raises:
        CleanError: If removing any target fails
    """
    cleaned = []
    for item in items:
        if not os.path.lexists(item.path):
            logger.debug(f"Skipping {item.name}: {item.path} no longer exists")
            continue

        for target in item.targets:
            if not os.path.lexists(target):
                continue
            logger.info(f"Removing {target}")
            try:
                remove_path(target)
            except OSError as e:
                raise CleanError(f"Failed to remove {target}: {e}") from e

        cleaned.append(item.name)

    return cleaned


class Cleaner(abc.ABC):
    """Abstract base class for all cleaners."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Get the name of the cleaner."""
        pass

    @property
    @abc.abstractmethod
    def icon(self) -> str:
        """Get a short decorative symbol for the cleaner."""
        pass

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """Get a description of what this cleaner does."""
        pass

    @classmethod
    def from_args(cls, args) -> "Cleaner":
        """Build the cleaner from parsed command-line arguments."""
        return cls()

    @abc.abstractmethod
    def scan(self) -> List[CleanableItem]:
        """
        Find items that can be cleaned.

        Scanning never modifies the filesystem.

        Returns:
            List of cleanable items with size and safety metadata

        Raises:
            ScanError: If the search location cannot be read
        """
        pass

    def clean(self, dry_run: bool = False, items: Optional[List[CleanableItem]] = None) -> List[str]:
        """
        Main method to run the cleaner.

        This is a template method that defines the cleaning workflow.
        Subclasses should not override this method but implement scan().

        Args:
            dry_run: If True, only report what would be cleaned
            items: Items from an earlier scan() (scanned now if None)

        Returns:
            Names of the items that were (or would be) cleaned
        """
        logger.info(f"Running {self.name} cleaner (dry-run: {dry_run})")

        if items is None:
            items = self.scan()
        if not items:
            logger.info(f"No items found for {self.name} cleaner")
            return []

        total = sum(item.size for item in items)
        logger.info(f"Found {len(items)} items to clean for {self.name} ({human_readable_size(total)})")

        if dry_run:
            logger.info("DRY RUN: No items will be deleted")
            for item in items:
                self._log_item(item, "Would clean")
            return [item.name for item in items]

        cleaned = clean_items(items)
        for item in items:
            if item.name in cleaned:
                self._log_item(item, "Cleaned")
        logger.info(f"Successfully cleaned {len(cleaned)}/{len(items)} items")
        return cleaned

    def _log_item(self, item: CleanableItem, prefix: str = "Item") -> None:
        """
        Log information about an item in a consistent format.

        Args:
            item: The item to log
            prefix: Prefix for the log message
        """
        label = f" [{item.safety_label}]" if item.safety_label else ""
        logger.info(f"{prefix}: {item.name} -> {item.path} ({item.formatted_size()}){label}")
