"""Cleaner for application caches in the user cache directory."""

import logging
import os
from pathlib import Path
from typing import List

import platformdirs

from kanri.core.cleaner import (
    SAFE_LABEL,
    UNVERIFIED_LABEL,
    CleanableItem,
    CleanableMetadata,
    Cleaner,
)
from kanri.core.errors import ScanError
from kanri.core.utils import calculate_dir_size
from kanri.cleaners import CLEANER_REGISTRY

logger = logging.getLogger("kanri.cleaners.app_cache")

GIB = 1024 * 1024 * 1024

# Caches known to be re-downloadable or regenerated on demand
SAFE_CACHE_PATTERNS = [
    "Homebrew",
    "pip",
    "yarn",
    "npm",
    "pnpm",
    "CocoaPods",
    "com.apple.bird",
    "com.apple.metal",
    "com.spotify.client",
    "Google/Chrome",
    "Firefox",
    "com.microsoft.VSCode",
    "JetBrains",
    "Slack",
    "Discord",
    "com.docker.docker",
    "Xcode/DerivedData",
]


def is_safe_cache(name: str) -> bool:
    """
    Check whether a cache directory belongs to a known-safe owner.

    A name that matches no pattern is "unverified", not dangerous.

    Args:
        name: Cache directory name (e.g., "Homebrew", "com.example.App")

    Returns:
        True if any safe pattern is a substring of the name
    """
    return any(pattern in name for pattern in SAFE_CACHE_PATTERNS)


def default_cache_dir() -> Path:
    """Get the user cache directory (~/Library/Caches on macOS, ~/.cache on Linux)."""
    return Path(platformdirs.user_cache_dir())


def scan_user_caches(min_size: int, cache_dir=None) -> List[CleanableItem]:
    """
    Scan the immediate children of the user cache directory.

    Args:
        min_size: Minimum size in bytes; smaller caches are ignored
        cache_dir: Cache directory to scan (defaults to the platform cache directory)

    Returns:
        Cache entries with safety metadata, largest first

    Raises:
        ScanError: If the cache directory cannot be listed
    """
    cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
    if not cache_dir.is_dir():
        logger.debug(f"Cache directory not found: {cache_dir}")
        return []

    try:
        entries = sorted(os.scandir(cache_dir), key=lambda e: e.name)
    except OSError as e:
        raise ScanError(f"Failed to list cache directory {cache_dir}: {e}") from e

    items = []
    for entry in entries:
        if not entry.is_dir(follow_symlinks=False):
            continue

        size = calculate_dir_size(entry.path)
        if size < min_size:
            continue

        is_safe = is_safe_cache(entry.name)
        metadata = CleanableMetadata(
            is_safe=is_safe,
            safety_label=SAFE_LABEL if is_safe else UNVERIFIED_LABEL,
        )
        items.append(CleanableItem(entry.name, entry.path, size, metadata))

    items.sort(key=lambda item: item.size, reverse=True)
    return items


class AppCacheCleaner(Cleaner):
    """Cleaner for large application caches, labelled safe or unverified."""

    def __init__(self, min_size: int = GIB, cache_dir=None, safe_only: bool = False):
        self.min_size = min_size
        self.cache_dir = cache_dir
        self.safe_only = safe_only

    @classmethod
    def from_args(cls, args) -> "AppCacheCleaner":
        return cls(
            min_size=int(getattr(args, "min_size_gb", 1) * GIB),
            safe_only=getattr(args, "safe_only", False),
        )

    @property
    def name(self) -> str:
        return "Cache"

    @property
    def icon(self) -> str:
        return "💾"

    @property
    def description(self) -> str:
        return "Removes large application caches from the user cache directory"

    def scan(self) -> List[CleanableItem]:
        items = scan_user_caches(self.min_size, self.cache_dir)
        if self.safe_only:
            skipped = [item.name for item in items if not item.is_safe]
            if skipped:
                logger.info(f"Skipping unverified caches: {', '.join(skipped)}")
            items = [item for item in items if item.is_safe]
        return items


# Register this cleaner
CLEANER_REGISTRY["cache"] = AppCacheCleaner
